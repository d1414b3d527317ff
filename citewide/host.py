from __future__ import annotations

import logging
import re
import sys
from typing import Callable, NamedTuple, Optional, Protocol

import requests
from pydantic import BaseModel, Field

from .citation_store import CitationFileStore, CitationRecord
from .engine.models import CitationGroup
from .engine.punctuation import format_citation_punctuation
from .engine.references import add_colon_syntax_where_none, format_links_in_markdown_syntax
from .engine.service import CitationService
from .errors import CiteWideError
from .url_citation import UrlCitationService

logger = logging.getLogger(__name__)

_CITATION_WITH_URL_RE = re.compile(r'"?\[\^([a-zA-Z0-9]+)\]:\s*(https?://[^\s)]+)"?')
_URL_RE = re.compile(r"https?://[^\s]+")


class Position(NamedTuple):
    line: int  # 0-based
    ch: int


class DocumentAccess(Protocol):
    def get_text(self) -> str: ...

    def set_text(self, text: str) -> None: ...

    def get_selection(self) -> str: ...

    def get_selection_range(self) -> tuple[Position, Position]: ...

    def replace_selection(self, text: str) -> None: ...

    def get_cursor(self) -> Position: ...

    def set_cursor(self, pos: Position) -> None: ...

    def replace_range(self, text: str, start: Position, end: Optional[Position] = None) -> None: ...


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class ConsoleNotifier:
    def notify(self, message: str) -> None:
        print(message, file=sys.stderr, flush=True)


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        logger.info("notice: %s", message)
        self.messages.append(message)


def _offset_of(text: str, pos: Position) -> int:
    lines = text.split("\n")
    if pos.line >= len(lines):
        return len(text)
    start = sum(len(ln) + 1 for ln in lines[: max(0, pos.line)])
    return start + min(max(0, pos.ch), len(lines[max(0, pos.line)]))


def _position_of(text: str, offset: int) -> Position:
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    ch = offset - (text.rfind("\n", 0, offset) + 1)
    return Position(line, ch)


class TextDocument:
    """In-memory `DocumentAccess` over a plain string; selection and cursor are offsets."""

    def __init__(self, text: str = "", *, selection: Optional[tuple[int, int]] = None, cursor: int = 0) -> None:
        self._text = text
        self._sel = selection or (cursor, cursor)
        self._cursor = cursor

    @classmethod
    def select_all(cls, text: str) -> "TextDocument":
        return cls(text, selection=(0, len(text)))

    def get_text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        self._text = text
        self._cursor = min(self._cursor, len(text))
        self._sel = (min(self._sel[0], len(text)), min(self._sel[1], len(text)))

    def get_selection(self) -> str:
        a, b = self._sel
        return self._text[a:b]

    def get_selection_range(self) -> tuple[Position, Position]:
        a, b = self._sel
        return _position_of(self._text, a), _position_of(self._text, b)

    def replace_selection(self, text: str) -> None:
        a, b = self._sel
        self._text = self._text[:a] + text + self._text[b:]
        self._cursor = a + len(text)
        self._sel = (self._cursor, self._cursor)

    def get_cursor(self) -> Position:
        return _position_of(self._text, self._cursor)

    def set_cursor(self, pos: Position) -> None:
        self._cursor = _offset_of(self._text, pos)
        self._sel = (self._cursor, self._cursor)

    def replace_range(self, text: str, start: Position, end: Optional[Position] = None) -> None:
        a = _offset_of(self._text, start)
        b = _offset_of(self._text, end) if end is not None else a
        self._text = self._text[:a] + text + self._text[b:]


class CommandResult(BaseModel):
    changed: bool = False
    message: str = ""
    hex_id: Optional[str] = None


class CitationSummary(BaseModel):
    key: str
    display_key: str
    instances: int
    reference_text: Optional[str] = None
    lines: list[tuple[int, str]] = Field(default_factory=list)


def summarize_group(g: CitationGroup) -> CitationSummary:
    return CitationSummary(
        key=g.key,
        display_key=g.display_key,
        instances=len(g.occurrences),
        reference_text=g.reference_text,
        lines=[(o.line_number, o.line_text) for o in g.occurrences],
    )


class CiteWideCommands:
    """
    User-triggered commands. Each one computes its result in memory, writes to
    the document once, and turns collaborator failures into a notice instead
    of an exception.
    """

    def __init__(
        self,
        service: CitationService,
        notifier: Notifier,
        *,
        url_service: Optional[UrlCitationService] = None,
        store: Optional[CitationFileStore] = None,
    ) -> None:
        self.service = service
        self.notifier = notifier
        self.url_service = url_service
        self.store = store

    def _done(self, message: str, *, changed: bool, hex_id: Optional[str] = None) -> CommandResult:
        self.notifier.notify(message)
        return CommandResult(changed=changed, message=message, hex_id=hex_id)

    def _failed(self, prefix: str, err: Exception) -> CommandResult:
        logger.warning("%s: %s", prefix, err)
        return self._done(f"{prefix}: {err}", changed=False)

    def show_citations(self, doc: DocumentAccess) -> list[CitationSummary]:
        groups = self.service.extract_citations(doc.get_text())
        if not groups:
            self.notifier.notify("No citations found in the current document.")
        return [summarize_group(g) for g in groups]

    def convert_all_citations(self, doc: DocumentAccess, *, synthesize: bool = False) -> CommandResult:
        try:
            result = self.service.convert_all(doc.get_text(), synthesize=synthesize)
        except CiteWideError as e:
            return self._failed("Error processing citations", e)
        if not result.changed:
            return self._done("No citations needed conversion", changed=False)
        doc.set_text(result.content)
        return self._done(f"Updated {result.citations_converted} citations", changed=True)

    def convert_citation(self, doc: DocumentAccess, key: str) -> CommandResult:
        try:
            result = self.service.convert_one(doc.get_text(), key)
        except CiteWideError as e:
            return self._failed("Error converting citation", e)
        if not result.changed:
            return self._done(f"Citation {key} not found", changed=False)
        doc.set_text(result.content)
        hex_id = next(iter(result.ids.values()), None)
        return self._done(f"Converted [{key.strip('[]')}] to [^{hex_id}]", changed=True, hex_id=hex_id)

    def convert_group(self, doc: DocumentAccess, group: CitationGroup) -> CommandResult:
        try:
            result = self.service.convert_group(doc.get_text(), group)
        except CiteWideError as e:
            return self._failed("Error converting citation", e)
        if not result.changed:
            return self._done(f"Citation {group.display_key} no longer in document", changed=False)
        doc.set_text(result.content)
        hex_id = next(iter(result.ids.values()), None)
        return self._done(f"Converted {group.display_key} to [^{hex_id}]", changed=True, hex_id=hex_id)

    def format_citation_punctuation(self, doc: DocumentAccess) -> CommandResult:
        content = doc.get_text()
        processed = format_citation_punctuation(content)
        if processed == content:
            return self._done("No citations needed formatting", changed=False)
        doc.set_text(processed)
        return self._done("Formatted citations in document", changed=True)

    def insert_citation(self, doc: DocumentAccess, *, source_file: str = "") -> CommandResult:
        try:
            hex_id = self.service.new_identifier()
            text = doc.get_text()
            cursor = _offset_of(text, doc.get_cursor())
            marker = f"[^{hex_id}]"
            definition = f"{marker}: "
            updated = text[:cursor] + marker + text[cursor:] + "\n\n" + definition
            if self.store is not None:
                self.store.create_citation_file(hex_id, source_file=source_file)
        except (CiteWideError, OSError) as e:
            return self._failed("Error inserting citation", e)
        doc.set_text(updated)
        doc.set_cursor(_position_of(updated, len(updated)))
        return self._done(f"Inserted [^{hex_id}]", changed=True, hex_id=hex_id)

    def clean_references_section(self, doc: DocumentAccess) -> CommandResult:
        selection = doc.get_selection()
        if not selection:
            return self._done("Please select some text first", changed=False)
        processed = add_colon_syntax_where_none(selection)
        if processed == selection:
            return self._done("References already use colon syntax", changed=False)
        doc.replace_selection(processed)
        return self._done("References cleaned up successfully", changed=True)

    def format_links_in_selection(self, doc: DocumentAccess) -> CommandResult:
        selection = doc.get_selection()
        if not selection:
            return self._done("Please select the text containing references to format", changed=False)
        processed = format_links_in_markdown_syntax(selection)
        if processed == selection:
            return self._done("No links needed formatting in selection", changed=False)
        doc.replace_selection(processed)
        return self._done("Formatted links in selection", changed=True)

    def extract_citation_from_url(
        self,
        doc: DocumentAccess,
        *,
        source_file: str = "",
        use_existing: Optional[Callable[[CitationRecord], bool]] = None,
    ) -> CommandResult:
        """
        Replace a selected URL (or `[^id]: url` line) with a formatted reference.

        When the store already holds a record for the URL and `use_existing`
        accepts it, the existing id is reused and old markers are repointed.
        """
        if self.url_service is None:
            return self._done("URL citation extraction is not configured", changed=False)
        selection = doc.get_selection()
        if not selection:
            return self._done("Please select a URL first", changed=False)

        m = _CITATION_WITH_URL_RE.search(selection.strip())
        if m:
            hex_id, url = m.group(1), m.group(2)
        else:
            um = _URL_RE.search(selection)
            if not um:
                return self._done("Selected text does not appear to be a valid URL or citation reference", changed=False)
            url = um.group(0)
            try:
                hex_id = self.service.new_identifier()
            except CiteWideError as e:
                return self._failed("Error extracting citation", e)

        try:
            store = self.store
            existing = store.find_citation_by_url(url) if store is not None else None
            if store is not None and existing is not None and use_existing is not None and use_existing(existing):
                return self._reuse_existing(doc, store, existing, old_id=hex_id, source_file=source_file)

            if not self.url_service.has_api_key():
                self.notifier.notify("Tip: Adding a Jina.ai API key in settings can avoid rate limits")
            result = self.url_service.extract_citation_from_url(url, hex_id)
            if self.store is not None:
                self.store.create_citation_file_with_data(result.hex_id, result.data, source_file)
        except (CiteWideError, requests.RequestException, OSError) as e:
            return self._failed("Error extracting citation", e)

        doc.replace_selection(result.citation)
        return self._done(f"Citation extracted successfully: {result.hex_id}", changed=True, hex_id=result.hex_id)

    def _reuse_existing(
        self,
        doc: DocumentAccess,
        store: CitationFileStore,
        existing: CitationRecord,
        *,
        old_id: str,
        source_file: str,
    ) -> CommandResult:
        citation_text = store.get_citation_text(existing.hex_id) or f"[^{existing.hex_id}]"
        text = doc.get_text()
        sel_start, sel_end = doc.get_selection_range()
        a, b = _offset_of(text, sel_start), _offset_of(text, sel_end)
        head, tail = text[:a], text[b:]
        if old_id != existing.hex_id:
            old_marker = re.compile(rf"\[\^{re.escape(old_id)}\](?!:)")
            head = old_marker.sub(f"[^{existing.hex_id}]", head)
            tail = old_marker.sub(f"[^{existing.hex_id}]", tail)
        updated = head + citation_text + tail

        if old_id != existing.hex_id:
            store.delete(old_id)
        store.update_citation_usage(existing.hex_id, source_file)
        doc.set_text(updated)
        doc.set_cursor(_position_of(updated, len(head) + len(citation_text)))
        return self._done(f"Used existing citation: {existing.hex_id}", changed=True, hex_id=existing.hex_id)
