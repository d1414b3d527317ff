import pytest
from citewide.engine.models import CitationOccurrence, CitationRole, TextEdit
from citewide.engine.scanner import match_definition, next_marker_column, scan
from citewide.engine.text_utils import apply_edits, iter_lines_with_offsets, locate


def test_scan_offsets_point_at_markers():
    doc = "ab\ncd [1] x [^f00ba1]"
    occs = scan(doc)
    assert [o.key for o in occs] == ["1", "^f00ba1"]
    for o in occs:
        assert doc[o.offset : o.end] == o.raw_text
        assert o.line_number == 2
        assert o.role == CitationRole.CITATION
    assert occs[0].column == 3


def test_definition_line_is_not_scanned_for_citations():
    doc = "Claim [2].\n[1] See also [2] for more"
    occs = scan(doc)
    assert len(occs) == 2
    definition = occs[1]
    assert definition.key == "1"
    assert definition.is_definition
    assert definition.raw_text == "[1] See also [2] for more"
    assert definition.offset == doc.index("[1]")


def test_numeric_and_footnote_keys_never_collide():
    occs = scan("A [1] and [^1].")
    assert {o.key for o in occs} == {"1", "^1"}


def test_marker_followed_by_colon_mid_line_is_ignored():
    assert scan("note [1]: not a citation") == []


def test_uppercase_footnote_is_not_a_marker():
    assert scan("Text [^ABC] here") == []


def test_indented_footnote_definition():
    occs = scan("Body\n  [^abc1]: Body text")
    assert len(occs) == 1
    assert occs[0].key == "^abc1"
    assert occs[0].raw_text == "  [^abc1]: Body text"


def test_match_definition():
    assert match_definition("[3]: Smith 2020") == ("3", "Smith 2020")
    assert match_definition("[^ab12] Jones") == ("^ab12", "Jones")
    assert match_definition("Text [3]") is None


def test_iter_lines_with_offsets():
    rows = list(iter_lines_with_offsets("a\nbc\n"))
    assert rows == [(1, 0, "a"), (2, 2, "bc"), (3, 5, "")]


def test_locate_after_edit():
    doc = "See [1] now."
    occ = scan(doc)[0]
    assert locate(doc, occ) == 4
    assert locate("Intro.\n" + doc, occ) == 11
    assert locate("See nothing now.", occ) is None


def test_locate_respects_lower_bound():
    occ = CitationOccurrence(key="1", raw_text="[1]", offset=0, line_number=1, line_text="[1] and [1]")
    assert locate("[1] and [1]", occ, lower_bound=3) == 8


def test_apply_edits_right_to_left():
    edits = [TextEdit(start=0, end=1, replacement="xx"), TextEdit(start=2, end=3, replacement="yy")]
    assert apply_edits("abc", edits) == "xxbyy"


def test_apply_edits_rejects_overlap():
    edits = [TextEdit(start=0, end=2, replacement=""), TextEdit(start=1, end=3, replacement="")]
    with pytest.raises(ValueError):
        apply_edits("abc", edits)


def test_next_marker_column():
    line = "More [1] Alpha [^ab12] x [2]"
    assert next_marker_column(line, 8) == 15
    assert next_marker_column(line, 23) == 25
    assert next_marker_column("no markers", 0) is None
