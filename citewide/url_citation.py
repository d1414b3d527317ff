from __future__ import annotations

import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional
from urllib.parse import quote, urlparse

import requests
from pydantic import BaseModel

from .config import Settings
from .errors import InvalidUrl, MetadataFetchFailed

logger = logging.getLogger(__name__)

_USER_AGENT = "cite-wide/1.0 (Citation Extractor)"
_AUTHOR_PATTERNS = (
    re.compile(r"by\s+([^,\n]+)", re.IGNORECASE),
    re.compile(r"author[:\s]+([^,\n]+)", re.IGNORECASE),
    re.compile(r"Written by\s+([^,\n]+)", re.IGNORECASE),
)


class CitationData(BaseModel):
    title: str
    url: str
    author: Optional[str] = None
    date: Optional[str] = None
    site_name: Optional[str] = None


class UrlCitationResult(BaseModel):
    hex_id: str
    citation: str
    data: CitationData


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def extract_site_name_from_url(url: str) -> str:
    """`https://www.bobs-been-reading.com/x` -> `Bobs Been Reading`."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        host = ""
    if not host:
        return "Unknown Site"
    domain = re.sub(r"^www\.", "", host)
    first = domain.split(".")[0]
    return " ".join(w[:1].upper() + w[1:] for w in first.split("-"))


def get_site_url(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.hostname:
        return url
    return f"{parsed.scheme}://{parsed.hostname}"


def format_published_date(value: Any) -> Optional[str]:
    """ISO or RFC 2822 timestamp -> `Mar 2022`; None if it cannot be read."""
    s = str(value or "").strip()
    if not s:
        return None
    dt: Optional[datetime] = None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt = parsedate_to_datetime(s)
        except (TypeError, ValueError):
            dt = None
    if dt is None:
        logger.warning("Could not parse published time: %s", s)
        return None
    return dt.strftime("%b %Y")


def parse_reader_response(payload: Any, original_url: str) -> CitationData:
    """Pull citation fields out of a reader API response (fields nest under `data`)."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        data = payload if isinstance(payload, dict) else {}
    meta = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}

    title = str(data.get("title") or meta.get("og:title") or meta.get("title") or "Unknown Title").strip()

    published = (
        data.get("publishedTime")
        or meta.get("article:published_time")
        or meta.get("og:article:published_time")
    )
    date = format_published_date(published) if published else None

    author: Optional[str] = None
    if meta.get("author"):
        author = str(meta["author"]).strip()
    elif meta.get("twitter:data1"):
        author = str(meta["twitter:data1"]).strip()
    elif isinstance(data.get("content"), str):
        for pat in _AUTHOR_PATTERNS:
            m = pat.search(data["content"])
            if m:
                author = m.group(1).strip()
                break

    site_name = str(meta.get("og:site_name") or "").strip() or extract_site_name_from_url(original_url)

    return CitationData(
        title=title,
        url=original_url,
        author=author or None,
        date=date,
        site_name=site_name or None,
    )


def format_reference_body(data: CitationData) -> str:
    parts: list[str] = []
    if data.date:
        parts.append(data.date)
    site = data.site_name or extract_site_name_from_url(data.url)
    parts.append(f'"[{data.title or "Unknown Title"} | {site}]({data.url})"')
    if data.author:
        parts.append(data.author)
    if data.site_name:
        parts.append(f"[{data.site_name}]({get_site_url(data.url) or data.url})")
    return ". ".join(parts) + "."


def format_citation(data: CitationData, hex_id: str) -> str:
    return f"[^{hex_id}]: {format_reference_body(data)}"


class UrlCitationService:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        reader_url: str = "https://r.jina.ai/",
        timeout_s: float = 20.0,
    ) -> None:
        self._api_key = api_key or None
        self._reader_url = reader_url if reader_url.endswith("/") else reader_url + "/"
        self._timeout_s = float(timeout_s)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UrlCitationService":
        return cls(api_key=settings.api_key, reader_url=settings.reader_url, timeout_s=settings.timeout_s)

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._api_key = (api_key or "").strip() or None

    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def fetch_citation_data(self, url: str) -> CitationData:
        reader_url = f"{self._reader_url}{quote(url, safe='')}"
        headers = {"Accept": "application/json", "User-Agent": _USER_AGENT}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        try:
            resp = requests.get(reader_url, headers=headers, timeout=self._timeout_s)
        except requests.RequestException as e:
            logger.warning("Reader request for %s failed: %s", url, e)
            raise MetadataFetchFailed(url, str(e)) from e
        if resp.status_code != 200:
            raise MetadataFetchFailed(url, f"Reader API request failed: {resp.status_code} {resp.reason or ''}".strip())
        try:
            payload = resp.json()
        except ValueError as e:
            raise MetadataFetchFailed(url, "Reader API returned invalid JSON") from e
        return parse_reader_response(payload, url)

    def extract_citation_from_url(self, url: str, hex_id: str) -> UrlCitationResult:
        """Validate, fetch and format; raises before anything is written anywhere."""
        url = (url or "").strip()
        if not is_valid_url(url):
            raise InvalidUrl(url)
        data = self.fetch_citation_data(url)
        logger.info("Extracted citation data for %s: %s", url, data.title)
        return UrlCitationResult(hex_id=hex_id, citation=format_citation(data, hex_id), data=data)
