from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from .models import (
    CitationGroup,
    CitationOccurrence,
    ConversionResult,
    RewriteMode,
    RewritePlan,
    TextEdit,
)
from .scanner import next_marker_column
from .text_utils import apply_edits, line_span

logger = logging.getLogger(__name__)

_DEFINITION_LABEL_RE = re.compile(r"^(\s*)\[(?:\d+|\^[a-z0-9]+)\]\s*:?\s*")


def footnote_marker(ident: str) -> str:
    return f"[^{ident}]"


def citation_replacement(occ: CitationOccurrence, ident: str) -> str:
    # Some marker styles carry their own colon; keep it next to the new marker.
    suffix = ":" if occ.raw_text.endswith(":") else ""
    return footnote_marker(ident) + suffix


def relabel_definition_line(line: str, ident: str) -> str:
    """`[1] Text` / `[^old]:Text` -> `[^ident]: Text`; indentation and body kept verbatim."""
    m = _DEFINITION_LABEL_RE.match(line)
    if not m:
        return line
    return f"{m.group(1)}{footnote_marker(ident)}: {line[m.end():]}"


def synthesized_reference_line(ident: str, reference_text: str) -> str:
    body = reference_text.strip().rstrip(".").rstrip()
    return f"{footnote_marker(ident)}: {body}."


def _line_removal(document: str, occ: CitationOccurrence) -> TextEdit:
    ls, le = line_span(document, occ.offset)
    if le < len(document):
        le += 1
    return TextEdit(start=ls, end=le, replacement="")


def _trailing_source_removal(document: str, occ: CitationOccurrence) -> TextEdit:
    ls, le = line_span(document, occ.offset)
    line = document[ls:le]
    col = occ.offset - ls
    prefix = line[:col]
    if not prefix.strip():
        return _line_removal(document, occ)
    start = ls + len(prefix.rstrip())
    # A later marker on the same line keeps its place (and its own trailing text).
    nxt = next_marker_column(line, col + len(occ.raw_text))
    end = ls + len(line[:nxt].rstrip()) if nxt is not None else le
    return TextEdit(start=start, end=end, replacement="")


def plan_rewrite(
    document: str,
    groups: Iterable[CitationGroup],
    ids: Mapping[str, str],
    mode: RewriteMode = RewriteMode.CONVERT_ALL,
) -> RewritePlan:
    """
    Build every edit against the same snapshot of `document`.

    In the in-place modes a definition line keeps its body and only loses its
    label. In `SYNTHESIZE` the reference source is cut from the body and its
    text re-emitted once at the end; the two never apply to the same line.
    """
    plan = RewritePlan()
    for g in groups:
        ident = ids.get(g.key)
        if not ident:
            continue
        plan.ids[g.key] = ident

        if mode == RewriteMode.SYNTHESIZE:
            for occ in g.occurrences:
                if occ.is_definition:
                    plan.edits.append(_line_removal(document, occ))
                elif occ.is_reference_source:
                    plan.edits.append(_trailing_source_removal(document, occ))
                else:
                    plan.edits.append(
                        TextEdit(start=occ.offset, end=occ.end, replacement=citation_replacement(occ, ident))
                    )
            if g.reference_text:
                plan.appendix.append(synthesized_reference_line(ident, g.reference_text))
            continue

        for occ in g.occurrences:
            if occ.is_definition:
                replacement = relabel_definition_line(occ.raw_text, ident)
            else:
                replacement = citation_replacement(occ, ident)
            plan.edits.append(TextEdit(start=occ.offset, end=occ.end, replacement=replacement))

    if mode == RewriteMode.SYNTHESIZE:
        plan.edits = _drop_edits_inside_removals(plan.edits)
    return plan


def _drop_edits_inside_removals(edits: list[TextEdit]) -> list[TextEdit]:
    # A marker inside moved reference text travels with that text.
    removals = [e for e in edits if not e.replacement]
    kept: list[TextEdit] = []
    for e in edits:
        if any(r is not e and r.start <= e.start and e.end <= r.end for r in removals):
            logger.debug("marker at %d lies inside moved reference text; left as is", e.start)
            continue
        kept.append(e)
    return kept


def _append_block(document: str, lines: list[str]) -> str:
    if not lines:
        return document
    body = document.rstrip()
    block = "\n".join(lines)
    if not body:
        return block + "\n"
    return body + "\n\n" + block + "\n"


def rewrite(
    document: str,
    groups: Iterable[CitationGroup],
    ids: Mapping[str, str],
    mode: RewriteMode = RewriteMode.CONVERT_ALL,
) -> ConversionResult:
    groups = list(groups)
    plan = plan_rewrite(document, groups, ids, mode)
    if not plan.edits and not plan.appendix:
        return ConversionResult(content=document, changed=False, citations_converted=0, ids=plan.ids)

    content = apply_edits(document, plan.edits)
    if mode == RewriteMode.SYNTHESIZE:
        content = _append_block(content, plan.appendix)

    converted = len(plan.edits)
    logger.info("%s: %d occurrence(s) across %d group(s) rewritten", mode.value, converted, len(plan.ids))
    return ConversionResult(
        content=content,
        changed=content != document,
        citations_converted=converted,
        ids=dict(plan.ids),
    )
