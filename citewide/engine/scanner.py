from __future__ import annotations

import logging
import re

from .models import FOOTNOTE_PREFIX, CitationOccurrence, CitationRole, footnote_key, is_footnote_key
from .text_utils import iter_lines_with_offsets

logger = logging.getLogger(__name__)

NUMERIC_CITATION_RE = re.compile(r"\[(\d+)\](?!:)")
FOOTNOTE_CITATION_RE = re.compile(r"\[\^([a-z0-9]+)\](?!:)")
NUMERIC_DEFINITION_RE = re.compile(r"^\s*\[(\d+)\]\s*:?\s*(.*)$")
FOOTNOTE_DEFINITION_RE = re.compile(r"^\s*\[\^([a-z0-9]+)\]\s*:?\s*(.*)$")


def match_definition(line: str) -> tuple[str, str] | None:
    """Return (namespaced key, body) if `line` is a reference definition."""
    m = NUMERIC_DEFINITION_RE.match(line)
    if m:
        return m.group(1), m.group(2)
    m = FOOTNOTE_DEFINITION_RE.match(line)
    if m:
        return footnote_key(m.group(1)), m.group(2)
    return None


def next_marker_column(line: str, start: int = 0) -> int | None:
    """Column of the first citation marker at or after `start`, if any."""
    cols = []
    for pat in (NUMERIC_CITATION_RE, FOOTNOTE_CITATION_RE):
        m = pat.search(line, start)
        if m:
            cols.append(m.start())
    return min(cols) if cols else None


def scan(document: str) -> list[CitationOccurrence]:
    """
    Find citation markers and reference-definition lines in document order.

    Offsets are absolute positions in `document`; they go stale as soon as the
    text is edited (see `text_utils.locate`).
    """
    out: list[CitationOccurrence] = []
    if not document or "[" not in document:
        return out

    for line_no, line_start, line in iter_lines_with_offsets(document):
        if "[" not in line:
            continue

        definition = match_definition(line)
        if definition is not None:
            key, _body = definition
            out.append(
                CitationOccurrence(
                    key=key,
                    raw_text=line,
                    offset=line_start,
                    line_number=line_no,
                    line_text=line,
                    role=CitationRole.REFERENCE_DEFINITION,
                )
            )
            logger.debug("line %d: reference definition for %s", line_no, key)
            # A definition line never also carries in-text citations.
            continue

        found: list[tuple[int, str, str]] = []
        for m in NUMERIC_CITATION_RE.finditer(line):
            found.append((m.start(), m.group(1), m.group(0)))
        for m in FOOTNOTE_CITATION_RE.finditer(line):
            found.append((m.start(), footnote_key(m.group(1)), m.group(0)))
        found.sort(key=lambda t: t[0])

        for col, key, raw in found:
            out.append(
                CitationOccurrence(
                    key=key,
                    raw_text=raw,
                    offset=line_start + col,
                    line_number=line_no,
                    column=col,
                    line_text=line,
                    role=CitationRole.CITATION,
                )
            )
        if found:
            logger.debug("line %d: %d citation marker(s)", line_no, len(found))

    return out


def footnote_tokens(occurrences: list[CitationOccurrence]) -> set[str]:
    """Footnote ids already present in a scanned document."""
    return {o.key[len(FOOTNOTE_PREFIX) :] for o in occurrences if is_footnote_key(o.key)}
