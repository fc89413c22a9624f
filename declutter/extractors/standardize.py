"""Normalize selected content markup and compute derived metrics.

Steps, in order:

1. remove comments and anything non-renderable that slipped through
2. ``role="heading"`` elements become real ``<hN>`` headings
3. lazy-loaded media (``data-src`` and friends) become ordinary references
4. relative URLs are made absolute against the page URL
5. tracking pixels and tiny decorative images are dropped
6. a leading heading that repeats the page title is dropped
7. code blocks keep a normalized ``language-*`` class
8. non-semantic wrappers are unwrapped (skipped in debug mode)
9. attributes are reduced to an allow-list
10. empty elements are removed (skipped in debug mode)
11. whitespace is collapsed outside ``<pre>``
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from declutter.extractors.main_content import inner_html, parse_fragment
from declutter.extractors.patterns import TRACKING_IMAGE_RE
from declutter.extractors.text import count_words, html_to_text, reading_time
from declutter.settings import MIN_IMAGE_SIZE, ExtractionConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

_STRIP_TAGS: tuple[str, ...] = (
    "script", "style", "noscript", "template", "iframe", "object", "embed",
    "form", "button", "input", "select", "textarea", "svg", "link", "meta",
)

_LAZY_SRC_ATTRS: tuple[str, ...] = (
    "data-src", "data-lazy-src", "data-original", "data-url", "data-hi-res-src",
    "data-full-src",
)
_LAZY_SRCSET_ATTRS: tuple[str, ...] = ("data-srcset", "data-lazy-srcset")
_PLACEHOLDER_RE = re.compile(r"^data:|placeholder|blank\.(?:gif|png)|spacer|lazy", re.IGNORECASE)

_URL_ATTRS: tuple[str, ...] = ("href", "src", "poster", "cite")
_SKIP_URL_PREFIXES: tuple[str, ...] = ("#", "data:", "mailto:", "tel:")

_ALLOWED_ATTRS: frozenset[str] = frozenset(
    {
        "href", "src", "srcset", "alt", "title", "width", "height", "colspan",
        "rowspan", "datetime", "cite", "poster", "controls", "type", "start",
        "lang",
    },
)

_CODE_LANG_PREFIXES: tuple[str, ...] = ("language-", "lang-", "highlight-source-", "highlight-")

_PRESENTATIONAL_INLINE: tuple[str, ...] = ("span", "font", "center", "big", "small", "nobr")
_WRAPPER_BLOCKS: tuple[str, ...] = ("div", "section", "article", "main", "header", "footer")
_PROTECTED_CLASS_RE = re.compile(r"article|content|footnote|reference|bibliography", re.IGNORECASE)

_BLOCK_CHILDREN: frozenset[str] = frozenset(
    {
        "p", "div", "section", "article", "h1", "h2", "h3", "h4", "h5", "h6",
        "ul", "ol", "dl", "pre", "blockquote", "table", "figure", "hr",
        "header", "footer", "main", "aside", "nav", "details",
    },
)

# An element holding any of these is not empty even without text
_NON_EMPTY_MARKERS: frozenset[str] = frozenset(
    {"img", "video", "audio", "picture", "source", "td", "th"},
)
_REMOVABLE_WHEN_EMPTY: tuple[str, ...] = (
    "p", "div", "section", "span", "a", "strong", "em", "b", "i", "u",
    "blockquote", "figure", "figcaption", "li", "ul", "ol", "dl", "h1", "h2",
    "h3", "h4", "h5", "h6", "pre", "code", "table",
)

_WS_RE = re.compile(r"\s+")
_TRIM_EDGES: frozenset[str] = _BLOCK_CHILDREN | {"li", "td", "th", "figcaption", "dt", "dd"}


@dataclass(frozen=True)
class StandardizedContent:
    content: str
    text_content: str
    word_count: int
    reading_time_minutes: int


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def _remove_non_content(soup: BeautifulSoup) -> None:
    for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        node.extract()
    for el in soup.find_all(list(_STRIP_TAGS)):
        if not el.decomposed:
            el.decompose()


def _convert_role_headings(soup: BeautifulSoup) -> None:
    for el in soup.find_all(attrs={"role": "heading"}):
        if el.name in ("h1", "h2", "h3", "h4", "h5", "h6"):
            continue
        try:
            level = int(str(el.get("aria-level") or "2"))
        except ValueError:
            level = 2
        el.name = f"h{min(max(level, 1), 6)}"


def _resolve_lazy_media(soup: BeautifulSoup) -> None:
    for el in soup.find_all(["img", "source", "video", "audio"]):
        src = str(el.get("src") or "")
        if not src or _PLACEHOLDER_RE.search(src):
            for attr in _LAZY_SRC_ATTRS:
                candidate = str(el.get(attr) or "").strip()
                if candidate:
                    el["src"] = candidate
                    break
        if not el.get("srcset"):
            for attr in _LAZY_SRCSET_ATTRS:
                candidate = str(el.get(attr) or "").strip()
                if candidate:
                    el["srcset"] = candidate
                    break


def _absolute(base: str, value: str) -> str:
    value = value.strip()
    if not value or value.startswith(_SKIP_URL_PREFIXES):
        return value
    return urljoin(base, value)


def _absolutize_urls(soup: BeautifulSoup, base: str) -> None:
    for el in soup.find_all(True):
        for attr in _URL_ATTRS:
            value = el.get(attr)
            if isinstance(value, str):
                el[attr] = _absolute(base, value)
        srcset = el.get("srcset")
        if isinstance(srcset, str) and srcset.strip():
            entries = []
            for entry in srcset.split(","):
                parts = entry.strip().split(None, 1)
                if not parts:
                    continue
                parts[0] = _absolute(base, parts[0])
                entries.append(" ".join(parts))
            el["srcset"] = ", ".join(entries)


def _dimension(value: object) -> int | None:
    if value is None:
        return None
    try:
        return int(float(str(value).strip().removesuffix("px")))
    except ValueError:
        return None


def is_tiny_or_tracking(src: str, width: object = None, height: object = None) -> bool:
    if TRACKING_IMAGE_RE.search(src):
        return True
    w, h = _dimension(width), _dimension(height)
    return (w is not None and w < MIN_IMAGE_SIZE) or (h is not None and h < MIN_IMAGE_SIZE)


def _clean_images(soup: BeautifulSoup) -> None:
    for img in soup.find_all("img"):
        src = str(img.get("src") or "").strip()
        if not src or src.startswith("data:") or is_tiny_or_tracking(
            src, img.get("width"), img.get("height"),
        ):
            img.decompose()
            continue
        if not img.has_attr("alt"):
            img["alt"] = ""


def _norm(text: str) -> str:
    return _WS_RE.sub(" ", text).strip().lower()


def _remove_title_heading(soup: BeautifulSoup, title: str | None) -> None:
    if not title:
        return
    wanted = _norm(title)
    heading = soup.find(["h1", "h2"])
    if heading is not None and _norm(heading.get_text(" ")) == wanted:
        heading.decompose()


def code_language(el: Tag) -> str | None:
    """Language hint from an element's classes (``language-x``, ``lang-x``, ...)."""
    for cls in el.get("class") or []:
        for prefix in _CODE_LANG_PREFIXES:
            if cls.startswith(prefix) and len(cls) > len(prefix):
                return cls[len(prefix):]
    return None


def _is_protected(el: Tag) -> bool:
    if el.has_attr("role") or el.has_attr("aria-label") or el.has_attr("itemscope"):
        return True
    classes = " ".join(el.get("class") or [])
    return bool(classes and _PROTECTED_CLASS_RE.search(classes))


def _unwrap_wrappers(soup: BeautifulSoup) -> None:
    for el in reversed(soup.find_all(list(_PRESENTATIONAL_INLINE + _WRAPPER_BLOCKS))):
        if el.decomposed or el.parent is None:
            continue
        if el.name in _PRESENTATIONAL_INLINE:
            el.unwrap()
            continue
        if _is_protected(el):
            continue
        if any(isinstance(c, Tag) and c.name in _BLOCK_CHILDREN for c in el.children):
            el.unwrap()
        else:
            el.name = "p"


def _strip_attributes(soup: BeautifulSoup) -> None:
    for el in soup.find_all(True):
        language = code_language(el) if el.name in ("pre", "code") else None
        el.attrs = {k: v for k, v in el.attrs.items() if k in _ALLOWED_ATTRS}
        if language:
            el["class"] = [f"language-{language}"]


def _remove_empty(soup: BeautifulSoup) -> None:
    for el in reversed(soup.find_all(list(_REMOVABLE_WHEN_EMPTY))):
        if el.decomposed:
            continue
        if el.get_text(strip=True):
            continue
        if el.find(list(_NON_EMPTY_MARKERS)) is not None:
            continue
        el.decompose()


def _collapse_whitespace(soup: BeautifulSoup) -> None:
    root = soup.body or soup
    for node in list(root.find_all(string=True)):
        if isinstance(node, PreformattedString):
            continue
        if node.find_parent(["pre", "textarea"]) is not None:
            continue
        text = str(node)
        collapsed = _WS_RE.sub(" ", text)
        parent = node.parent
        if parent is root and not collapsed.strip():
            collapsed = "\n"
        elif parent is not None and parent.name in _TRIM_EDGES:
            if node is parent.contents[0]:
                collapsed = collapsed.lstrip()
            if node is parent.contents[-1]:
                collapsed = collapsed.rstrip()
        if collapsed != text:
            if collapsed:
                node.replace_with(NavigableString(collapsed))
            else:
                node.extract()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def standardize_html(
    html: str,
    title: str | None = None,
    base_url: str | None = None,
    debug: bool = False,
) -> str:
    """Return normalized content markup (steps listed in the module docstring)."""
    soup = parse_fragment(html)
    _remove_non_content(soup)
    _convert_role_headings(soup)
    _resolve_lazy_media(soup)
    if base_url:
        _absolutize_urls(soup, base_url)
    _clean_images(soup)
    _remove_title_heading(soup, title)
    if not debug:
        _unwrap_wrappers(soup)
    _strip_attributes(soup)
    if not debug:
        _remove_empty(soup)
    _collapse_whitespace(soup)
    return inner_html(soup).strip()


def standardize_content(
    html: str,
    title: str | None,
    base_url: str | None,
    config: ExtractionConfig,
) -> StandardizedContent:
    content = standardize_html(html, title=title, base_url=base_url, debug=config.debug)
    text = html_to_text(content)
    words = count_words(text)
    logger.debug("Standardized content: %d chars, %d words", len(content), words)
    return StandardizedContent(
        content=content,
        text_content=text,
        word_count=words,
        reading_time_minutes=reading_time(words, config.words_per_minute),
    )
