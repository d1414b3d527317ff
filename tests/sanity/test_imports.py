import pytest


def test_imports():
    """
    Smoke test to ensure the core modules import without error.
    Catches syntax errors, missing dependencies and circular imports.
    """
    try:
        from citewide.citation_store import CitationFileStore
        from citewide.engine import CitationService, scan
        from citewide.host import CiteWideCommands
        from citewide.runner import main
        from citewide.url_citation import UrlCitationService
    except ImportError as e:
        pytest.fail(f"Failed to import core modules: {e}")


def test_runner_list(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("CITEWIDE_CITATIONS_DIR", str(tmp_path / "Citations"))
    from citewide.runner import main

    note = tmp_path / "note.md"
    note.write_text("Claim [1].\n\n[1] Source", encoding="utf-8")
    main(["list", str(note)])
    out = capsys.readouterr().out
    assert "[1] (2 instances) -> Source" in out


def test_runner_convert_in_place(tmp_path, monkeypatch):
    monkeypatch.setenv("CITEWIDE_CITATIONS_DIR", str(tmp_path / "Citations"))
    from citewide.runner import main

    note = tmp_path / "note.md"
    note.write_text("Claim [1].\n\n[1] Source", encoding="utf-8")
    main(["convert", "-i", str(note)])
    text = note.read_text(encoding="utf-8")
    assert "[1]" not in text
    assert text.count("Source") == 1
