from __future__ import annotations


class CiteWideError(Exception):
    """Base exception for citation operations that abort a command."""


class InvalidUrl(CiteWideError):
    """Input did not pass basic URL validation."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL provided: {url!r}")


class MetadataFetchFailed(CiteWideError):
    """Network or parse failure while extracting citation metadata."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to extract citation data from {url}: {reason}")


class ExhaustedIdentifierSpace(CiteWideError):
    """Identifier draws kept colliding past the retry bound."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No free identifier found after {attempts} draws")
