from citewide.engine.punctuation import (
    assure_spacing_between_adjacent_markers,
    format_citation_punctuation,
    move_markers_behind_punctuation,
)


def test_markers_move_behind_comma():
    assert move_markers_behind_punctuation("a[1][2],b") == "a,[1] [2]b"


def test_single_marker_before_period():
    assert move_markers_behind_punctuation("Text[1].") == "Text.[1]"
    assert move_markers_behind_punctuation("Text[^ab12cd].") == "Text.[^ab12cd]"


def test_marker_without_punctuation_untouched():
    assert move_markers_behind_punctuation("Text [1] more") == "Text [1] more"


def test_references_section_is_skipped():
    md = "Claim[1].\n## References\n[1]. Source, x[2].\n## Next\nMore[3],"
    expected = "Claim.[1]\n## References\n[1]. Source, x[2].\n## Next\nMore,[3]"
    assert move_markers_behind_punctuation(md) == expected


def test_fenced_code_is_skipped():
    md = "```\nlist[0].append(x)\n```\nText[1]."
    assert move_markers_behind_punctuation(md) == "```\nlist[0].append(x)\n```\nText.[1]"


def test_spacing_between_markers():
    assert assure_spacing_between_adjacent_markers("[1][2][^a1]") == "[1] [2] [^a1]"


def test_spacing_is_idempotent():
    once = assure_spacing_between_adjacent_markers("x[1][2] y[^ab][^cd].")
    assert assure_spacing_between_adjacent_markers(once) == once


def test_format_citation_punctuation():
    assert format_citation_punctuation("x[1][2].") == "x.[1] [2]"
    assert format_citation_punctuation("") == ""
