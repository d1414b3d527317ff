from citewide.engine.references import add_colon_syntax_where_none, format_links_in_markdown_syntax


def test_add_colon_where_missing():
    text = "[^ab12] Source\n[^cd34]: Already\nText"
    assert add_colon_syntax_where_none(text) == "[^ab12]: Source\n[^cd34]: Already\nText"


def test_add_colon_to_bare_label():
    assert add_colon_syntax_where_none("  [^ab12]") == "  [^ab12]:"


def test_format_links_with_format_tag():
    line = "[^ab12]: [PDF] Annual Report https://x.org/r.pdf"
    assert format_links_in_markdown_syntax(line) == "[^ab12]: [Annual Report, PDF](https://x.org/r.pdf)"


def test_format_plain_link():
    line = "[^ab12]: Some Title https://example.com/a"
    assert format_links_in_markdown_syntax(line) == "[^ab12]: [Some Title](https://example.com/a)"


def test_format_links_leaves_other_lines():
    text = "Body text https://example.com\n[^ab12]: [Done](https://example.com)"
    assert format_links_in_markdown_syntax(text) == text
