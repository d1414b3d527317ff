from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, ValidationError

from .url_citation import CitationData

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"^---\n(.*?)\n---", re.DOTALL)
_LINK_TITLE_RE = re.compile(r"\[([^\]^]+)\]\s*\(https?://[^\s]+\)")
_AUTHOR_PATTERNS = (
    re.compile(r"by\s+([^,.]+)", re.IGNORECASE),
    re.compile(r"author[:\s]+([^,.]+)", re.IGNORECASE),
    re.compile(r"written\s+by\s+([^,.]+)", re.IGNORECASE),
)
_DATE_PATTERNS = (
    re.compile(r"(\d{1,2}/\d{1,2}/\d{4})"),
    re.compile(r"(\d{1,2}-\d{1,2}-\d{4})"),
    re.compile(r"(\d{4})"),
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CitationRecord(BaseModel):
    hex_id: str
    title: Optional[str] = None
    author: Optional[str] = None
    url: Optional[str] = None
    date: Optional[str] = None
    source: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created: str = Field(default_factory=_now)
    last_modified: str = Field(default_factory=_now)
    reference_text: Optional[str] = None
    usage_count: int = 1
    files_used_in: list[str] = Field(default_factory=list)


def extract_metadata_from_reference(reference_text: Optional[str], url: Optional[str] = None) -> dict[str, str]:
    """Best-effort title/author/date/source guesses from a free-form reference line."""
    meta: dict[str, str] = {}
    if url:
        meta["url"] = url
        host = urlparse(url).hostname
        if host:
            meta["source"] = host
    if not reference_text:
        return meta

    m = _LINK_TITLE_RE.search(reference_text)
    if m:
        meta["title"] = m.group(1)
    for pat in _AUTHOR_PATTERNS:
        m = pat.search(reference_text)
        if m:
            meta["author"] = m.group(1).strip()
            break
    for pat in _DATE_PATTERNS:
        m = pat.search(reference_text)
        if m:
            meta["date"] = m.group(1)
            break
    return meta


def assemble_citation_text(record: CitationRecord) -> str:
    """Rebuild a `[^id]: ...` reference line from a stored record."""
    parts: list[str] = []
    url_domain = ""
    if record.url:
        url_domain = (urlparse(record.url).hostname or "").replace("www.", "")

    if record.title and record.url:
        parts.append(f'"[{record.title} | {url_domain or "Source"}]({record.url})"')
    elif record.url:
        parts.append(f'"{record.url}"')

    if record.author:
        parts.append(f"by {record.author}")
    if record.date:
        parts.append(record.date)
    if record.source and record.url and record.source.lower() != url_domain.lower():
        parts.append(f"[{record.source}](https://{record.source})")

    return f"[^{record.hex_id}]: {'. '.join(parts)}."


class CitationFileStore:
    """
    One markdown file per citation id:
    - YAML frontmatter with the record fields
    - a short human-readable body (reference, usage, source, notes)
    """

    def __init__(self, citations_dir: Path) -> None:
        self._dir = Path(citations_dir)

    @property
    def citations_dir(self) -> Path:
        return self._dir

    def path_for(self, hex_id: str) -> Path:
        return self._dir / f"{hex_id}.md"

    def _ensure_dir(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _frontmatter(record: CitationRecord) -> str:
        data = {k: v for k, v in record.model_dump().items() if v is not None and v != []}
        dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True).rstrip("\n")
        return f"---\n{dumped}\n---"

    def _render(self, record: CitationRecord) -> str:
        out = self._frontmatter(record) + "\n\n"
        if record.reference_text:
            out += f"# {record.title or 'Citation'}\n\n"
            out += f"## Reference\n\n{record.reference_text}\n\n"
        else:
            out += f"# Citation {record.hex_id}\n\n"
        out += f"## Usage\n\nThis citation has been used {record.usage_count} time(s).\n\n"
        if record.url:
            out += f"## Source\n\n[{record.url}]({record.url})\n\n"
        out += "## Notes\n\nAdd your notes about this citation here.\n\n"
        return out

    def _write(self, record: CitationRecord) -> CitationRecord:
        self._ensure_dir()
        self.path_for(record.hex_id).write_text(self._render(record), encoding="utf-8")
        logger.info("Citation file written: %s", self.path_for(record.hex_id).name)
        return record

    def read_record(self, path: Path) -> Optional[CitationRecord]:
        text = Path(path).read_text(encoding="utf-8")
        m = _FRONTMATTER_RE.match(text)
        if not m:
            return None
        try:
            data: Any = yaml.safe_load(m.group(1)) or {}
            if not isinstance(data, dict):
                return None
            data["hex_id"] = str(data.get("hex_id") or Path(path).stem)
            return CitationRecord.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            logger.warning("Unreadable citation file %s: %s", path, e)
            return None

    def get(self, hex_id: str) -> Optional[CitationRecord]:
        path = self.path_for(hex_id)
        if not path.is_file():
            return None
        return self.read_record(path)

    def create_citation_file(
        self,
        hex_id: str,
        reference_text: Optional[str] = None,
        url: Optional[str] = None,
        source_file: str = "",
    ) -> CitationRecord:
        existing = self.get(hex_id)
        if existing is not None:
            return self.update_citation_usage(hex_id, source_file) or existing
        meta = extract_metadata_from_reference(reference_text, url)
        record = CitationRecord(
            hex_id=hex_id,
            reference_text=reference_text or None,
            files_used_in=[source_file] if source_file else [],
            **meta,
        )
        return self._write(record)

    def create_citation_file_with_data(self, hex_id: str, data: CitationData, source_file: str = "") -> CitationRecord:
        """Overwrites any existing record for `hex_id`."""
        record = CitationRecord(
            hex_id=hex_id,
            title=data.title or None,
            author=data.author,
            url=data.url or None,
            date=data.date,
            source=data.site_name,
            files_used_in=[source_file] if source_file else [],
        )
        return self._write(record)

    def update_citation_usage(self, hex_id: str, source_file: str = "") -> Optional[CitationRecord]:
        path = self.path_for(hex_id)
        if not path.is_file():
            return None
        record = self.read_record(path)
        if record is None:
            return None
        record.usage_count += 1
        record.last_modified = _now()
        if source_file and source_file not in record.files_used_in:
            record.files_used_in.append(source_file)

        content = path.read_text(encoding="utf-8")
        new_content = _FRONTMATTER_RE.sub(lambda _m: self._frontmatter(record), content, count=1)
        path.write_text(new_content, encoding="utf-8")
        return record

    def delete(self, hex_id: str) -> bool:
        path = self.path_for(hex_id)
        if not path.is_file():
            return False
        path.unlink()
        logger.info("Deleted citation file: %s", path.name)
        return True

    def all_citation_files(self) -> list[Path]:
        if not self._dir.is_dir():
            return []
        return sorted(p for p in self._dir.rglob("*.md") if p.is_file())

    def find_citation_by_url(self, url: str) -> Optional[CitationRecord]:
        for path in self.all_citation_files():
            record = self.read_record(path)
            if record is not None and record.url == url:
                return record
        return None

    def get_citation_text(self, hex_id: str) -> Optional[str]:
        record = self.get(hex_id)
        return assemble_citation_text(record) if record else None
