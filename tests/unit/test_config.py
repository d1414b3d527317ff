from pathlib import Path

import pytest
from citewide.config import load_settings

_VARS = (
    "CITEWIDE_JINA_API_KEY",
    "JINA_API_KEY",
    "CITEWIDE_READER_URL",
    "CITEWIDE_CITATIONS_DIR",
    "CITEWIDE_ID_LENGTH",
    "CITEWIDE_ID_ALPHABET",
    "CITEWIDE_REFERENCE_MODE",
    "CITEWIDE_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.api_key is None
    assert s.reader_url == "https://r.jina.ai/"
    assert s.citations_dir == Path("Citations")
    assert s.id_length == 6
    assert s.id_alphabet == "base36"
    assert s.reference_mode == "explicit"
    assert s.timeout_s == 20.0


def test_quoted_api_key_and_fallback(monkeypatch):
    monkeypatch.setenv("JINA_API_KEY", '"jina_abc"')
    assert load_settings().api_key == "jina_abc"
    monkeypatch.setenv("CITEWIDE_JINA_API_KEY", "'jina_xyz'")
    assert load_settings().api_key == "jina_xyz"


def test_overrides(monkeypatch):
    monkeypatch.setenv("CITEWIDE_READER_URL", "http://localhost:3000")
    monkeypatch.setenv("CITEWIDE_ID_LENGTH", "8")
    monkeypatch.setenv("CITEWIDE_ID_ALPHABET", "HEX")
    monkeypatch.setenv("CITEWIDE_REFERENCE_MODE", "trailing")
    s = load_settings()
    assert s.reader_url == "http://localhost:3000/"
    assert s.id_length == 8
    assert s.id_alphabet == "hex"
    assert s.reference_mode == "trailing"


def test_invalid_values(monkeypatch):
    monkeypatch.setenv("CITEWIDE_ID_ALPHABET", "base64")
    with pytest.raises(ValueError):
        load_settings()
    monkeypatch.setenv("CITEWIDE_ID_ALPHABET", "hex")
    monkeypatch.setenv("CITEWIDE_REFERENCE_MODE", "guess")
    with pytest.raises(ValueError):
        load_settings()
