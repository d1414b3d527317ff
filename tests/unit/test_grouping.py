from citewide.engine.grouping import group
from citewide.engine.models import ReferenceMode
from citewide.engine.scanner import scan


def test_groups_in_first_appearance_order():
    groups = group(scan("b [2] a [1] c [2]\n[1] One\n[2] Two"))
    assert [g.key for g in groups] == ["2", "1"]
    assert len(groups[0].occurrences) == 3
    assert groups[0].reference_text == "Two"


def test_last_definition_wins():
    groups = group(scan("x [1]\n[1] First\n[1]: Second"))
    assert len(groups) == 1
    g = groups[0]
    assert g.reference_text == "Second"
    assert g.reference_source is g.definitions[-1]
    assert sum(o.is_reference_source for o in g.occurrences) == 1


def test_explicit_mode_ignores_trailing_text():
    groups = group(scan("See [4] now.\nLater [4] Smith 2020"))
    assert groups[0].reference_text is None
    assert groups[0].reference_source is None


def test_trailing_mode_uses_last_occurrence():
    groups = group(scan("See [4] now.\nLater [4] Smith 2020"), ReferenceMode.TRAILING)
    g = groups[0]
    assert g.reference_text == "Smith 2020"
    assert g.reference_source.line_number == 2


def test_trailing_mode_prefers_definition_line():
    groups = group(scan("See [4] now [4] tail\n[4] Real source"), ReferenceMode.TRAILING)
    assert groups[0].reference_text == "Real source"
    assert groups[0].reference_source.is_definition


def test_trailing_mode_skips_footnotes():
    groups = group(scan("See [^ab12] tail text"), ReferenceMode.TRAILING)
    assert groups[0].reference_text is None


def test_group_does_not_mutate_input():
    occs = scan("x [1]\n[1] Source")
    group(occs)
    assert not any(o.is_reference_source for o in occs)


def test_definition_only_group():
    groups = group(scan("No markers here.\n[7] Orphan source"))
    assert [g.key for g in groups] == ["7"]
    assert groups[0].citations == []
    assert groups[0].display_key == "[7]"


def test_trailing_text_stops_at_next_marker():
    groups = group(scan("Later [4] Smith 2020 [5] Other"), ReferenceMode.TRAILING)
    assert [g.reference_text for g in groups] == ["Smith 2020", "Other"]
