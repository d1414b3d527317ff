from .grouping import group
from .models import (
    CitationGroup,
    CitationOccurrence,
    CitationRole,
    ConversionResult,
    ReferenceMode,
    RewriteMode,
)
from .punctuation import (
    assure_spacing_between_adjacent_markers,
    format_citation_punctuation,
    move_markers_behind_punctuation,
)
from .rewrite import rewrite
from .scanner import scan
from .service import CitationService

__all__ = [
    "CitationGroup",
    "CitationOccurrence",
    "CitationRole",
    "CitationService",
    "ConversionResult",
    "ReferenceMode",
    "RewriteMode",
    "assure_spacing_between_adjacent_markers",
    "format_citation_punctuation",
    "group",
    "move_markers_behind_punctuation",
    "rewrite",
    "scan",
]
