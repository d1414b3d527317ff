from __future__ import annotations

import re

_MARKER_PAT = r"\[(?:\d+|\^[A-Za-z0-9]+)\]"
_MARKER_RE = re.compile(_MARKER_PAT)
_MARKERS_BEFORE_PUNCT_RE = re.compile(rf"((?:{_MARKER_PAT})+)([.,])")
_ADJACENT_BRACKETS_RE = re.compile(r"\](?=\[)")

_REFERENCES_HEADING_RE = re.compile(r"^#+\s*(?:References|Sources|Footnotes)\s*$", re.IGNORECASE)
_HEADING_RE = re.compile(r"^#+")
_FENCE_RE = re.compile(r"^\s*```")


def _move_in_line(line: str) -> str:
    def _repl(m: re.Match) -> str:
        markers = _MARKER_RE.findall(m.group(1))
        return m.group(2) + " ".join(markers)

    return _MARKERS_BEFORE_PUNCT_RE.sub(_repl, line)


def move_markers_behind_punctuation(text: str) -> str:
    """
    `Text[1][2], more` -> `Text,[1] [2] more`.

    Body prose only: lines under a References/Sources/Footnotes heading (until
    the next heading) and fenced code blocks are left alone.
    """
    if not text or "[" not in text:
        return text

    out: list[str] = []
    in_refs = False
    in_fence = False
    for line in text.split("\n"):
        st = line.strip()
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        if _REFERENCES_HEADING_RE.match(st):
            in_refs = True
            out.append(line)
            continue
        if in_refs and _HEADING_RE.match(st):
            in_refs = False
        if in_refs:
            out.append(line)
            continue
        out.append(_move_in_line(line))
    return "\n".join(out)


def assure_spacing_between_adjacent_markers(text: str) -> str:
    """`][` -> `] [` anywhere; running it twice changes nothing more."""
    if not text:
        return text
    return _ADJACENT_BRACKETS_RE.sub("] ", text)


def format_citation_punctuation(text: str) -> str:
    return assure_spacing_between_adjacent_markers(move_markers_behind_punctuation(text))
