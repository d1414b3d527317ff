from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    reader_url: str
    citations_dir: Path
    id_length: int
    id_alphabet: str
    reference_mode: str
    timeout_s: float


def _strip_quotes(value: str) -> str:
    # Users often set env vars with quotes (e.g. cmd.exe: set JINA_API_KEY="jina_...").
    if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
        return value[1:-1].strip()
    return value


def load_settings() -> Settings:
    api_key = (os.environ.get("CITEWIDE_JINA_API_KEY") or os.environ.get("JINA_API_KEY") or "").strip()
    api_key = _strip_quotes(api_key) or None

    reader_url = (os.environ.get("CITEWIDE_READER_URL") or "https://r.jina.ai/").strip()
    if not reader_url.endswith("/"):
        reader_url = reader_url + "/"

    citations_dir = Path(os.environ.get("CITEWIDE_CITATIONS_DIR", "Citations")).expanduser()

    id_length = int(os.environ.get("CITEWIDE_ID_LENGTH", "6"))
    id_alphabet = (os.environ.get("CITEWIDE_ID_ALPHABET") or "base36").strip().lower()
    if id_alphabet not in {"base36", "hex"}:
        raise ValueError(f"CITEWIDE_ID_ALPHABET must be 'base36' or 'hex', got {id_alphabet!r}")

    reference_mode = (os.environ.get("CITEWIDE_REFERENCE_MODE") or "explicit").strip().lower()
    if reference_mode not in {"explicit", "trailing"}:
        raise ValueError(f"CITEWIDE_REFERENCE_MODE must be 'explicit' or 'trailing', got {reference_mode!r}")

    timeout_s = float(os.environ.get("CITEWIDE_TIMEOUT_S", "20"))

    return Settings(
        api_key=api_key,
        reader_url=reader_url,
        citations_dir=citations_dir,
        id_length=id_length,
        id_alphabet=id_alphabet,
        reference_mode=reference_mode,
        timeout_s=timeout_s,
    )
