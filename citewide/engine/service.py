from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings
from ..ids import IdentifierGenerator, IdentifierPool
from .grouping import group
from .models import (
    CitationGroup,
    CitationOccurrence,
    ConversionResult,
    ReferenceMode,
    RewriteMode,
    footnote_key,
)
from .rewrite import rewrite
from .scanner import footnote_tokens, match_definition, scan
from .text_utils import line_span, locate

logger = logging.getLogger(__name__)


def normalize_key(key: str) -> str:
    """Accept `1`, `[1]`, `^ab12cd` or `[^ab12cd]` and return the namespaced key."""
    k = (key or "").strip()
    if k.startswith("[") and k.endswith("]"):
        k = k[1:-1].strip()
    if k.startswith("^"):
        return footnote_key(k[1:].strip())
    return k


def _fits_role(document: str, occ: CitationOccurrence, pos: int) -> bool:
    ls, le = line_span(document, pos)
    on_definition_line = match_definition(document[ls:le]) is not None
    if occ.is_definition:
        return pos == ls and on_definition_line
    return not on_definition_line


def _relocate(document: str, occ: CitationOccurrence, lower_bound: int) -> Optional[int]:
    # A marker's text also appears at the head of its definition line; skip such hits.
    pos = locate(document, occ, lower_bound)
    while pos is not None and not _fits_role(document, occ, pos):
        pos = locate(document, occ, pos + 1)
    return pos


class CitationService:
    """
    One editing session: owns the identifier generator (and through it the
    pool), so ids issued by any command never collide within the session.
    """

    def __init__(
        self,
        generator: Optional[IdentifierGenerator] = None,
        *,
        reference_mode: ReferenceMode | str = ReferenceMode.EXPLICIT,
    ) -> None:
        self.generator = generator or IdentifierGenerator(IdentifierPool())
        self.reference_mode = ReferenceMode(reference_mode)

    @classmethod
    def from_settings(cls, settings: Settings, pool: Optional[IdentifierPool] = None) -> "CitationService":
        generator = IdentifierGenerator(
            pool if pool is not None else IdentifierPool(),
            length=settings.id_length,
            alphabet=settings.id_alphabet,
        )
        return cls(generator, reference_mode=settings.reference_mode)

    def new_identifier(self) -> str:
        return self.generator.issue()

    def extract_citations(self, document: str) -> list[CitationGroup]:
        occurrences = scan(document)
        # Footnote ids already in the text must never be handed out again.
        self.generator.reserve(footnote_tokens(occurrences))
        groups = group(occurrences, self.reference_mode)
        logger.debug("%d occurrence(s) in %d group(s)", len(occurrences), len(groups))
        return groups

    def find_group(self, document: str, key: str) -> Optional[CitationGroup]:
        wanted = normalize_key(key)
        for g in self.extract_citations(document):
            if g.key == wanted:
                return g
        return None

    def convert_all(self, document: str, *, synthesize: bool = False) -> ConversionResult:
        """
        Give every numeric citation group a fresh footnote id.

        Footnote groups are already in the target syntax and are left alone, so
        running this on converted text reports no change.
        """
        groups = [g for g in self.extract_citations(document) if not g.is_footnote]
        if not groups:
            return ConversionResult(content=document)
        ids = {g.key: self.generator.issue() for g in groups}
        mode = RewriteMode.SYNTHESIZE if synthesize else RewriteMode.CONVERT_ALL
        return rewrite(document, groups, ids, mode)

    def convert_one(self, document: str, key: str) -> ConversionResult:
        g = self.find_group(document, key)
        if g is None:
            logger.info("No citation group %r in document", key)
            return ConversionResult(content=document)
        ident = self.generator.issue()
        return rewrite(document, [g], {g.key: ident}, RewriteMode.CONVERT_ONE)

    def convert_group(self, document: str, stale: CitationGroup) -> ConversionResult:
        """
        Convert a group taken from an earlier scan. `document` may have changed
        since, so each occurrence is located again before any edit is planned.
        """
        relocated = []
        lower_bound = 0
        for occ in sorted(stale.occurrences, key=lambda o: o.offset):
            pos = _relocate(document, occ, lower_bound)
            if pos is None:
                logger.warning("%s on line %d no longer found; skipped", occ.raw_text, occ.line_number)
                continue
            relocated.append(occ.model_copy(update={"offset": pos}))
            lower_bound = pos + len(occ.raw_text)
        if not relocated:
            return ConversionResult(content=document)
        fresh = stale.model_copy(update={"occurrences": relocated})
        ident = self.generator.issue()
        return rewrite(document, [fresh], {fresh.key: ident}, RewriteMode.CONVERT_ONE)
