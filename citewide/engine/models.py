from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

FOOTNOTE_PREFIX = "^"


class CitationRole(str, Enum):
    CITATION = "citation"
    REFERENCE_DEFINITION = "reference_definition"


class ReferenceMode(str, Enum):
    EXPLICIT = "explicit"  # only definition lines carry reference text
    TRAILING = "trailing"  # legacy: last occurrence of a numeric group is the reference


class RewriteMode(str, Enum):
    CONVERT_ALL = "convert_all"
    CONVERT_ONE = "convert_one"
    SYNTHESIZE = "synthesize"


def footnote_key(token: str) -> str:
    return f"{FOOTNOTE_PREFIX}{token}"


def is_footnote_key(key: str) -> bool:
    return key.startswith(FOOTNOTE_PREFIX)


class CitationOccurrence(BaseModel):
    key: str
    raw_text: str
    offset: int  # valid only against the scanned snapshot
    line_number: int
    column: int = 0
    line_text: str
    role: CitationRole = CitationRole.CITATION
    is_reference_source: bool = False

    @property
    def end(self) -> int:
        return self.offset + len(self.raw_text)

    @property
    def is_definition(self) -> bool:
        return self.role == CitationRole.REFERENCE_DEFINITION


class CitationGroup(BaseModel):
    key: str
    occurrences: list[CitationOccurrence] = Field(default_factory=list)
    reference_text: Optional[str] = None

    @property
    def is_footnote(self) -> bool:
        return is_footnote_key(self.key)

    @property
    def token(self) -> str:
        """Key without its namespace prefix, as written between the brackets."""
        return self.key[len(FOOTNOTE_PREFIX):] if self.is_footnote else self.key

    @property
    def display_key(self) -> str:
        return f"[{self.key}]"

    @property
    def citations(self) -> list[CitationOccurrence]:
        return [o for o in self.occurrences if not o.is_definition]

    @property
    def definitions(self) -> list[CitationOccurrence]:
        return [o for o in self.occurrences if o.is_definition]

    @property
    def reference_source(self) -> Optional[CitationOccurrence]:
        for occ in self.occurrences:
            if occ.is_reference_source:
                return occ
        return None


class TextEdit(BaseModel):
    start: int
    end: int
    replacement: str


class RewritePlan(BaseModel):
    ids: dict[str, str] = Field(default_factory=dict)
    edits: list[TextEdit] = Field(default_factory=list)
    appendix: list[str] = Field(default_factory=list)


class ConversionResult(BaseModel):
    content: str
    changed: bool = False
    citations_converted: int = 0
    ids: dict[str, str] = Field(default_factory=dict)
