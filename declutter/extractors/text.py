"""Plain-text projection of content markup, and the word/reading-time metrics."""

from __future__ import annotations

import math
import re

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

_WS_RE = re.compile(r"\s+")
_AROUND_NEWLINE_RE = re.compile(r" *\n *")
_EXCESSIVE_NEWLINES_RE = re.compile(r"\n{3,}")

# Elements that start a new paragraph in the text projection
_BLOCK_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "blockquote", "details", "dl", "div",
        "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
        "header", "hr", "main", "nav", "ol", "p", "pre", "section", "summary",
        "table", "ul",
    },
)
# Elements that start a new line
_LINE_TAGS: frozenset[str] = frozenset(
    {"li", "dt", "dd", "tr", "figcaption", "caption", "thead", "tbody", "tfoot"},
)
_CELL_TAGS: frozenset[str] = frozenset({"td", "th"})
_HIDDEN_TAGS: frozenset[str] = frozenset({"script", "style", "template", "noscript", "head"})


class _Verbatim(str):
    """Text from inside <pre>; exempt from whitespace cleanup."""


def _tidy(text: str) -> str:
    text = _AROUND_NEWLINE_RE.sub("\n", text)
    return _EXCESSIVE_NEWLINES_RE.sub("\n\n", text)


def _walk(node: Tag, chunks: list[str], in_pre: bool) -> None:
    for child in node.children:
        if isinstance(child, PreformattedString):
            # comments, CDATA, doctype, processing instructions
            continue
        if isinstance(child, NavigableString):
            text = str(child)
            chunks.append(_Verbatim(text) if in_pre else _WS_RE.sub(" ", text))
            continue
        if not isinstance(child, Tag):
            continue
        name = child.name
        if name in _HIDDEN_TAGS:
            continue
        if name == "br":
            chunks.append("\n")
            continue
        if name in _BLOCK_TAGS:
            chunks.append("\n\n")
        elif name in _LINE_TAGS:
            chunks.append("\n")
        _walk(child, chunks, in_pre or name == "pre")
        # line-level elements only break before themselves, so siblings stay adjacent
        if name in _BLOCK_TAGS:
            chunks.append("\n\n")
        elif name in _CELL_TAGS:
            chunks.append(" ")


def html_to_text(html: str) -> str:
    """Strip all markup from *html*, decoding entities.

    Block elements become paragraph breaks, list items / rows become line
    breaks, and runs of spaces collapse to one.  ``response.text_content`` is
    always exactly ``html_to_text(response.content)``.
    """
    if not html or not html.strip():
        return ""
    soup = BeautifulSoup(f"<body>{html}</body>", "lxml")
    root = soup.body or soup
    chunks: list[str] = []
    _walk(root, chunks, in_pre=False)
    parts: list[str] = []
    pending: list[str] = []
    for chunk in chunks:
        if isinstance(chunk, _Verbatim):
            parts.append(_tidy("".join(pending)))
            parts.append(chunk)
            pending = []
        else:
            pending.append(chunk)
    parts.append(_tidy("".join(pending)))
    return "".join(parts).strip()


def count_words(text: str) -> int:
    return len(text.split())


def reading_time(word_count: int, wpm: int = 200) -> int:
    """Estimated reading time in whole minutes (at least 1)."""
    return max(1, math.ceil(word_count / max(wpm, 1)))
