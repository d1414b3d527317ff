from __future__ import annotations

import logging
from typing import Iterable

from .models import CitationGroup, CitationOccurrence, ReferenceMode
from .scanner import match_definition, next_marker_column

logger = logging.getLogger(__name__)


def _definition_body(occ: CitationOccurrence) -> str:
    parsed = match_definition(occ.line_text)
    return (parsed[1] if parsed else "").strip()


def _trailing_text(occ: CitationOccurrence) -> str:
    # Stops at the next marker; that marker's own trailing text belongs to its group.
    start = occ.column + len(occ.raw_text)
    stop = next_marker_column(occ.line_text, start)
    return occ.line_text[start:stop].strip()


def group(
    occurrences: Iterable[CitationOccurrence],
    mode: ReferenceMode = ReferenceMode.EXPLICIT,
) -> list[CitationGroup]:
    """
    Partition occurrences by key, in order of first appearance.

    Reference text comes from the group's definition line (the later one wins
    when a key is defined twice). In `ReferenceMode.TRAILING`, a numeric group
    without any definition line treats its last occurrence as the reference and
    reads the rest of that line as the reference text.
    """
    groups: dict[str, CitationGroup] = {}
    for occ in sorted(occurrences, key=lambda o: o.offset):
        g = groups.get(occ.key)
        if g is None:
            g = CitationGroup(key=occ.key)
            groups[occ.key] = g
        g.occurrences.append(occ.model_copy(update={"is_reference_source": False}))

    for g in groups.values():
        definitions = g.definitions
        if definitions:
            source = definitions[-1]
            if len(definitions) > 1:
                logger.debug("%s defined %d times; using line %d", g.display_key, len(definitions), source.line_number)
            source.is_reference_source = True
            g.reference_text = _definition_body(source) or None
            continue

        if mode != ReferenceMode.TRAILING or g.is_footnote or not g.occurrences:
            continue
        source = max(g.occurrences, key=lambda o: o.offset)
        text = _trailing_text(source)
        if not text:
            continue
        source.is_reference_source = True
        g.reference_text = text
        logger.debug("%s: trailing occurrence on line %d used as reference", g.display_key, source.line_number)

    return list(groups.values())
