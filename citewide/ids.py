from __future__ import annotations

import logging
import random
import re
import string
from typing import Iterable, Iterator, Optional

from .errors import ExhaustedIdentifierSpace

logger = logging.getLogger(__name__)

ALPHABETS = {
    "base36": string.digits + string.ascii_lowercase,
    "hex": string.digits + "abcdef",
}

_HAS_LETTER_RE = re.compile(r"[a-z]")
_HAS_DIGIT_RE = re.compile(r"\d")

DEFAULT_MAX_ATTEMPTS = 10_000


def is_valid_identifier(token: str) -> bool:
    """At least one letter and one digit, so ids never read as plain numbers or words."""
    return bool(_HAS_LETTER_RE.search(token or "")) and bool(_HAS_DIGIT_RE.search(token or ""))


class IdentifierPool:
    """
    Identifiers already issued in one editing session.
    - grows monotonically, never shrinks
    - not persisted: a new session starts empty
    """

    def __init__(self, issued: Optional[Iterable[str]] = None) -> None:
        self._issued: set[str] = set()
        for token in issued or ():
            self.add(token)

    def add(self, token: str) -> None:
        self._issued.add(str(token).lower())

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and token.lower() in self._issued

    def __len__(self) -> int:
        return len(self._issued)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._issued))


class IdentifierGenerator:
    def __init__(
        self,
        pool: IdentifierPool,
        *,
        length: int = 6,
        alphabet: str = "base36",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ) -> None:
        if alphabet not in ALPHABETS:
            raise ValueError(f"Unknown identifier alphabet: {alphabet!r}")
        if length < 2:
            raise ValueError("Identifier length must allow one letter and one digit")
        self.pool = pool
        self.length = int(length)
        self.alphabet = alphabet
        self.max_attempts = int(max_attempts)
        self._chars = ALPHABETS[alphabet]
        self._rng = rng or random.SystemRandom()

    def _draw(self) -> str:
        return "".join(self._rng.choice(self._chars) for _ in range(self.length))

    def issue(self) -> str:
        for _ in range(self.max_attempts):
            token = self._draw()
            if token in self.pool or not is_valid_identifier(token):
                continue
            self.pool.add(token)
            return token
        logger.error("Identifier space exhausted after %d draws (pool size %d)", self.max_attempts, len(self.pool))
        raise ExhaustedIdentifierSpace(self.max_attempts)

    def reserve(self, tokens: Iterable[str]) -> None:
        """Register ids that already exist elsewhere (e.g. footnotes in the document)."""
        for token in tokens:
            self.pool.add(token)
