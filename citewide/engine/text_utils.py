from __future__ import annotations

from typing import Iterator, Optional

from .models import CitationOccurrence, TextEdit


def iter_lines_with_offsets(text: str) -> Iterator[tuple[int, int, str]]:
    """Yield (1-based line number, absolute start offset, line) for each `\\n`-separated line."""
    start = 0
    for i, line in enumerate(text.split("\n")):
        yield i + 1, start, line
        start += len(line) + 1


def locate(document: str, occurrence: CitationOccurrence, lower_bound: int = 0) -> Optional[int]:
    """
    Recompute where an occurrence sits in `document`, which may have been edited
    since the scan. Trust the recorded offset only if the text still matches there;
    otherwise search forward from `lower_bound`.
    """
    raw = occurrence.raw_text
    off = occurrence.offset
    if off >= lower_bound and document[off : off + len(raw)] == raw:
        return off
    found = document.find(raw, max(0, lower_bound))
    return found if found >= 0 else None


def apply_edits(document: str, edits: list[TextEdit]) -> str:
    """Apply non-overlapping edits right to left so pending offsets stay valid."""
    ordered = sorted(edits, key=lambda e: (e.start, e.end), reverse=True)
    out = document
    prev_start = len(document) + 1
    for e in ordered:
        if e.start < 0 or e.end > len(document) or e.start > e.end:
            raise ValueError(f"Edit out of range: {e.start}-{e.end}")
        if e.end > prev_start:
            raise ValueError(f"Overlapping edits at {e.start}-{e.end}")
        out = out[: e.start] + e.replacement + out[e.end :]
        prev_start = e.start
    return out


def line_span(document: str, start: int) -> tuple[int, int]:
    """(start, end) of the line containing `start`, end exclusive of the newline."""
    ls = document.rfind("\n", 0, start) + 1
    le = document.find("\n", start)
    if le < 0:
        le = len(document)
    return ls, le
