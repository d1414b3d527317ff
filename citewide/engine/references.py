from __future__ import annotations

import re

_FOOTNOTE_WITHOUT_COLON_RE = re.compile(r"^(\s*)(\[\^[A-Za-z0-9]+\])(?!:)\s*(.*)$")
_REFERENCE_LINK_RE = re.compile(
    r"^(\[\^[^\]]+\]:)\s+(?:\[(PDF|DOC|HTML)\]\s+)?(.+?)\s+(https?://[^\s\]]+)",
    re.IGNORECASE,
)


def add_colon_syntax_where_none(text: str) -> str:
    """`[^ab12cd] Source` -> `[^ab12cd]: Source` for footnote lines missing the colon."""
    out: list[str] = []
    for line in text.split("\n"):
        m = _FOOTNOTE_WITHOUT_COLON_RE.match(line)
        if m:
            indent, label, body = m.groups()
            line = f"{indent}{label}: {body}".rstrip() if body else f"{indent}{label}:"
        out.append(line)
    return "\n".join(out)


def format_links_in_markdown_syntax(text: str) -> str:
    """
    Turn plain reference lines into markdown links:
      [^id]: [PDF] Title https://x -> [^id]: [Title, PDF](https://x)
      [^id]: Title https://x       -> [^id]: [Title](https://x)
    """
    out: list[str] = []
    for line in text.split("\n"):
        m = _REFERENCE_LINK_RE.match(line.strip())
        if m:
            prefix, fmt, title, url = m.groups()
            link_text = f"{title}, {fmt}" if fmt else title
            out.append(f"{prefix} [{link_text}]({url})")
        else:
            out.append(line)
    return "\n".join(out)
