"""Markdown projection of standardized content (``ExtractionConfig.markdown``)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from markdownify import markdownify

if TYPE_CHECKING:
    from declutter.items import Response

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")
_TRAILING_WHITESPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def _code_language(el: object) -> str:
    """markdownify callback: the fence language from a ``language-*`` class."""
    getter = getattr(el, "get", None)
    classes = (getter("class") if getter else None) or []
    for cls in classes:
        if isinstance(cls, str) and cls.startswith("language-"):
            return cls[len("language-"):]
    # standardized markup puts the class on the inner <code>
    find = getattr(el, "find", None)
    code = find("code") if find else None
    if code is not None and code is not el:
        return _code_language(code)
    return ""


def html_to_markdown(html: str) -> str:
    """Convert standardized content markup to Markdown.

    ATX headings, ``-`` bullets and fenced code blocks carrying the language
    hint; trailing whitespace and runs of blank lines are cleaned up.
    """
    if not html or not html.strip():
        return ""
    md = markdownify(
        html,
        heading_style="ATX",
        bullets="-",
        code_language_callback=_code_language,
    )
    md = _TRAILING_WHITESPACE_RE.sub("", md)
    md = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", md)
    return md.strip()


def render_markdown_document(response: Response) -> str:
    """A standalone Markdown document: title, byline, excerpt, then the content."""
    lines: list[str] = []
    if response.title:
        lines += [f"# {response.title}", ""]

    byline = [
        part
        for part in (
            f"**Author:** {response.author}" if response.author else "",
            f"**Published:** {response.published}" if response.published else "",
            f"**Source:** {response.site_name or response.metadata.domain}"
            if response.site_name or response.metadata.domain
            else "",
        )
        if part
    ]
    if byline:
        lines += [*byline, ""]
    if response.excerpt:
        lines += [f"> {response.excerpt}", ""]

    lines += ["---", "", response.content_markdown or html_to_markdown(response.content)]
    return "\n".join(lines)
