"""Single-pass streaming scan over raw HTML.

The scanner is an lxml *parser target*: libxml2 tokenizes the input and calls
``start`` / ``end`` / ``data`` / ``close`` on it in document order, so no tree
is ever built.  The only state held during the pass is the open-element stack,
the :class:`~declutter.extractors.collector.MetadataCollector` and the content
buffer being filled.

Content in ``<body>`` is cut into *fragments* (block-level leaves such as
paragraphs, headings, lists, code blocks, figures, plus runs of loose inline
text) and *groups* (the grouping elements that enclose them: div, section,
article, ...).  Removal and preservation selectors are evaluated as each
element opens, but nothing is deleted here: matches are recorded on the
fragments/groups and as ``data-declutter-*`` markers in fragment markup, and
resolved later by whichever extraction attempt is running.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from html import escape
from typing import NamedTuple

from lxml import etree

from declutter.errors import ParseError
from declutter.extractors.collector import MetadataCollector
from declutter.extractors.patterns import CONTAINER_SELECTORS, EXACT_RULES, matches_partial
from declutter.extractors.selectors import Element, OpenElements, compile_selectors
from declutter.settings import ExtractionConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Element classification
# ---------------------------------------------------------------------------

# Never rendered as readable content; their subtrees are not buffered.
_SKIP_TAGS: frozenset[str] = frozenset(
    {
        "script", "style", "noscript", "template", "svg", "math", "iframe",
        "object", "embed", "canvas", "button", "input", "select", "textarea",
        "option", "datalist", "output", "map",
    },
)

_INLINE_TAGS: frozenset[str] = frozenset(
    {
        "a", "abbr", "b", "bdi", "bdo", "big", "br", "cite", "code", "data",
        "del", "dfn", "em", "font", "i", "ins", "kbd", "label", "mark", "nobr",
        "q", "s", "samp", "small", "span", "strike", "strong", "sub", "sup",
        "time", "tt", "u", "var", "wbr",
    },
)

_FRAGMENT_KINDS: dict[str, str] = {
    "p": "paragraph",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
    "pre": "code",
    "ul": "list",
    "ol": "list",
    "dl": "list",
    "blockquote": "quote",
    "table": "table",
    "figure": "image",
    "picture": "image",
    "img": "image",
    "video": "media",
    "audio": "media",
}

VOID_TAGS: frozenset[str] = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input", "link",
        "meta", "param", "source", "track", "wbr",
    },
)

REMOVE_MARKER = "data-declutter-remove"
PRESERVE_MARKER = "data-declutter-preserve"

# Removal categories recorded by the scanner
EXACT = "exact"
PARTIAL = "partial"
CUSTOM = "custom"

_XML_DECL_RE = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
_MARKUP_RE = re.compile(r"<[a-zA-Z!/?]")

_SKIP, _OUTSIDE, _GROUP, _ROOT, _INNER = range(5)


# ---------------------------------------------------------------------------
# Buffer records
# ---------------------------------------------------------------------------

class TextRun(NamedTuple):
    text: str
    in_link: bool
    marks: frozenset[str]
    preserved: bool


@dataclass(frozen=True, slots=True)
class Group:
    """A grouping element (div, section, article, ...) opened inside <body>."""

    id: int
    tag: str
    tokens: str
    parent: int | None
    depth: int
    container: bool
    marks: frozenset[str]       # own removal categories
    categories: frozenset[str]  # own + inherited from ancestors
    preserved: bool


@dataclass(frozen=True, slots=True)
class Fragment:
    """A block-level leaf of content, serialized with its descendants."""

    index: int
    kind: str  # heading|paragraph|text|code|list|quote|table|image|media
    tag: str
    level: int | None
    ancestors: tuple[int, ...]
    markup: str
    runs: tuple[TextRun, ...]
    tokens: str
    categories: frozenset[str]
    preserved: bool

    @property
    def word_count(self) -> int:
        return sum(len(run.text.split()) for run in self.runs)


@dataclass(frozen=True)
class ContentBuffer:
    fragments: tuple[Fragment, ...]
    groups: tuple[Group, ...]

    def fragments_in(self, group_id: int) -> list[Fragment]:
        return [frag for frag in self.fragments if group_id in frag.ancestors]


@dataclass(frozen=True)
class ScannedDocument:
    """Everything one scan produced; read-only for the extraction attempts."""

    url: str | None
    config: ExtractionConfig
    collector: MetadataCollector
    buffer: ContentBuffer


# ---------------------------------------------------------------------------
# Scanner internals
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class _Frame:
    element: Element
    kind: int
    group: Group | None = None


def _tokens(attrs: dict[str, str]) -> str:
    return f"{attrs.get('class', '')} {attrs.get('id', '')}".strip()


def _start_tag(element: Element, marks: frozenset[str], preserved: bool) -> str:
    parts = [element.tag]
    for name, value in element.attrs.items():
        if name.startswith("data-declutter-"):
            continue
        parts.append(f'{name}="{escape(value, quote=True)}"')
    if marks:
        parts.append(f'{REMOVE_MARKER}="{" ".join(sorted(marks))}"')
    if preserved:
        parts.append(f'{PRESERVE_MARKER}=""')
    return "<" + " ".join(parts) + ">"


@dataclass
class _FragmentBuilder:
    kind: str
    tag: str
    level: int | None
    base: int
    ancestors: tuple[int, ...]
    tokens: str
    categories: frozenset[str]
    preserved: bool
    parts: list[str] = field(default_factory=list)
    runs: list[TextRun] = field(default_factory=list)
    has_media: bool = False
    _open: list[tuple[str, frozenset[str], bool]] = field(default_factory=list)
    _links: int = 0

    def open(self, element: Element, marks: frozenset[str], preserved: bool) -> None:
        if element.tag == "a":
            self._links += 1
        if element.tag in ("img", "video", "audio", "source", "picture"):
            self.has_media = True
        outer_marks, outer_preserved = (
            (self._open[-1][1], self._open[-1][2]) if self._open else (frozenset(), False)
        )
        self._open.append((element.tag, outer_marks | marks, outer_preserved or preserved))
        self.parts.append(_start_tag(element, marks, preserved))

    def close(self) -> None:
        tag, _, _ = self._open.pop()
        if tag == "a":
            self._links -= 1
        if tag not in VOID_TAGS:
            self.parts.append(f"</{tag}>")

    def text(self, text: str) -> None:
        self.parts.append(escape(text, quote=False))
        if text.strip():
            marks, preserved = (
                (self._open[-1][1], self._open[-1][2]) if self._open else (frozenset(), False)
            )
            self.runs.append(TextRun(text, self._links > 0, marks, preserved))

    def build(self, index: int) -> Fragment | None:
        if not self.runs and not self.has_media:
            return None
        while self._open:
            self.close()
        markup = "".join(self.parts)
        if self.kind == "text":
            attrs = f' {PRESERVE_MARKER}=""' if self.preserved else ""
            markup = f"<p{attrs}>{markup}</p>"
        return Fragment(
            index=index,
            kind=self.kind,
            tag=self.tag,
            level=self.level,
            ancestors=self.ancestors,
            markup=markup,
            runs=tuple(self.runs),
            tokens=self.tokens,
            categories=self.categories,
            preserved=self.preserved,
        )


class _StreamingScanner:
    """lxml parser target: receives element/text events, builds the buffer."""

    def __init__(self, config: ExtractionConfig) -> None:
        self.config = config
        self.collector = MetadataCollector()
        self.fragments: list[Fragment] = []
        self.groups: list[Group] = []
        self.events = 0

        self._frames: list[_Frame] = []
        self._elements = OpenElements()
        self._open_groups: list[Group] = []
        self._skip = 0
        self._in_body = False
        self._title_buf: list[str] | None = None
        self._ld_buf: list[str] | None = None
        self._fragment: _FragmentBuilder | None = None

        self._remove_rules = compile_selectors(config.remove_selectors)
        self._preserve_rules = compile_selectors(config.preserve_selectors)
        self._container_rules = compile_selectors(
            CONTAINER_SELECTORS + tuple(config.content_selectors),
        )

    # ------------------------------------------------------------------
    # Parser target interface
    # ------------------------------------------------------------------

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        self.events += 1
        tag = tag.lower() if isinstance(tag, str) else ""
        element = self._elements.push(tag, {str(k).lower(): str(v) for k, v in attrib.items()})

        if self._skip:
            self._skip += 1
            self._frames.append(_Frame(element, _SKIP))
            return

        self._collect(element)

        if tag in _SKIP_TAGS:
            self._skip = 1
            self._frames.append(_Frame(element, _SKIP))
            if tag == "script" and "ld+json" in element.attrs.get("type", "").lower():
                self._ld_buf = []
            return

        if tag == "body":
            self._in_body = True
        if not self._in_body or tag in ("head", "title", "meta", "link", "base"):
            self._frames.append(_Frame(element, _OUTSIDE))
            return

        self._handle_content_start(element)

    def end(self, tag: str) -> None:
        if not self._frames:
            return
        frame = self._frames.pop()
        self._elements.pop()

        if frame.kind == _SKIP:
            self._skip -= 1
            if self._skip == 0 and self._ld_buf is not None:
                self.collector.add_structured_data("".join(self._ld_buf))
                self._ld_buf = None
            return

        if frame.kind == _OUTSIDE:
            if frame.element.tag == "title" and self._title_buf is not None:
                self.collector.set_title("".join(self._title_buf))
                self._title_buf = None
            return

        if frame.kind == _INNER:
            if self._fragment is not None:
                self._fragment.close()
        elif frame.kind == _ROOT:
            if self._fragment is not None:
                self._fragment.close()
            self._close_fragment()
        elif frame.kind == _GROUP:
            self._close_fragment()
            if self._open_groups:
                self._open_groups.pop()
            if frame.element.tag == "body":
                self._in_body = False

    def data(self, text: str) -> None:
        if self._skip:
            if self._ld_buf is not None:
                self._ld_buf.append(text)
            return
        if self._title_buf is not None:
            self._title_buf.append(text)
            return
        if not self._in_body:
            return
        if self._fragment is None:
            if not text.strip() or not self._open_groups:
                return
            self._open_fragment("text", "p", None, frozenset(), False, "")
        self._fragment.text(text)

    def close(self) -> None:
        # libxml2 closes unterminated elements itself; anything left is ours.
        while self._frames:
            self.end(self._frames[-1].element.tag)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def _collect(self, element: Element) -> None:
        tag, attrs = element.tag, element.attrs
        collector = self.collector
        if tag == "html":
            collector.set_language(attrs.get("lang") or attrs.get("xml:lang"))
            if "amp" in attrs or "⚡" in attrs:
                collector.is_amp = True
        elif tag == "meta":
            collector.add_meta(attrs)
        elif tag == "link":
            collector.add_link(attrs)
        elif tag == "base":
            if attrs.get("href") and collector.base_href is None:
                collector.base_href = attrs["href"].strip()
        elif tag == "title":
            if collector.title is None and not self._in_body:
                self._title_buf = []
        elif tag == "time":
            collector.note_time(attrs.get("datetime"))
        elif tag == "img" and any(g.container for g in self._open_groups):
            collector.add_image(attrs)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _classify(self, element: Element) -> tuple[frozenset[str], bool, bool]:
        marks: set[str] = set()
        if EXACT_RULES.matches(element):
            marks.add(EXACT)
        container = self._container_rules.matches(element)
        if (
            not container
            and (element.tag not in _INLINE_TAGS or element.tag == "span")
            and matches_partial(element.attrs)
        ):
            marks.add(PARTIAL)
        if self._remove_rules.matches(element):
            marks.add(CUSTOM)
        preserved = self._preserve_rules.matches(element)
        return frozenset(marks), preserved, container

    def _handle_content_start(self, element: Element) -> None:
        tag = element.tag
        marks, preserved, container = self._classify(element)
        fragment = self._fragment

        if fragment is not None and (
            fragment.kind != "text"
            or len(self._frames) > fragment.base
            or tag in _INLINE_TAGS
        ):
            fragment.open(element, marks, preserved)
            self._frames.append(_Frame(element, _INNER))
            return
        if fragment is not None:
            self._close_fragment()

        if tag in _INLINE_TAGS:
            if not self._open_groups:
                self._frames.append(_Frame(element, _OUTSIDE))
                return
            self._open_fragment("text", "p", None, frozenset(), False, "")
            self._fragment.open(element, marks, preserved)
            self._frames.append(_Frame(element, _INNER))
            return

        kind = _FRAGMENT_KINDS.get(tag)
        level = int(tag[1]) if kind == "heading" else None
        if kind is None and element.attrs.get("role") == "heading":
            kind = "heading"
            level = _aria_level(element.attrs.get("aria-level"))
        if kind is not None and self._open_groups:
            self._open_fragment(kind, tag, level, marks, preserved, _tokens(element.attrs))
            self._fragment.open(element, marks, preserved or self._fragment.preserved)
            self._frames.append(_Frame(element, _ROOT))
            return

        group = self._open_group(element, marks, preserved, container)
        self._frames.append(_Frame(element, _GROUP, group))

    def _open_group(
        self, element: Element, marks: frozenset[str], preserved: bool, container: bool,
    ) -> Group:
        parent = self._open_groups[-1] if self._open_groups else None
        group = Group(
            id=len(self.groups),
            tag=element.tag,
            tokens=_tokens(element.attrs),
            parent=parent.id if parent else None,
            depth=len(self._open_groups),
            container=container,
            marks=marks,
            categories=marks | (parent.categories if parent else frozenset()),
            preserved=preserved or (parent.preserved if parent else False),
        )
        self.groups.append(group)
        self._open_groups.append(group)
        return group

    def _open_fragment(
        self,
        kind: str,
        tag: str,
        level: int | None,
        marks: frozenset[str],
        preserved: bool,
        tokens: str,
    ) -> None:
        parent = self._open_groups[-1]
        self._fragment = _FragmentBuilder(
            kind=kind,
            tag=tag,
            level=level,
            base=len(self._frames),
            ancestors=tuple(g.id for g in self._open_groups),
            tokens=tokens,
            categories=marks | parent.categories,
            preserved=preserved or parent.preserved,
        )

    def _close_fragment(self) -> None:
        builder, self._fragment = self._fragment, None
        if builder is None:
            return
        fragment = builder.build(len(self.fragments))
        if fragment is not None:
            self.fragments.append(fragment)


def _aria_level(value: str | None) -> int:
    try:
        level = int(value or "2")
    except ValueError:
        return 2
    return min(max(level, 1), 6)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def scan_document(
    html: str | bytes,
    config: ExtractionConfig | None = None,
    url: str | None = None,
) -> ScannedDocument:
    """Run the streaming scan over *html* and return the collected document.

    Raises :class:`~declutter.errors.ParseError` when the input is empty or
    carries no element structure at all.
    """
    config = config or ExtractionConfig()
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")
    if not html or not html.strip():
        raise ParseError("empty HTML input", url=url)

    html = _XML_DECL_RE.sub("", html.replace("\x00", ""), count=1)
    if not _MARKUP_RE.search(html):
        raise ParseError("input contains no HTML markup", url=url)

    scanner = _StreamingScanner(config)
    parser = etree.HTMLParser(target=scanner, recover=True, remove_comments=True)
    try:
        parser.feed(html)
        parser.close()
    except (etree.LxmlError, ValueError) as exc:
        raise ParseError(f"could not tokenize HTML: {exc}", url=url) from exc

    if scanner.events == 0:
        raise ParseError("no element structure found", url=url)

    collector = scanner.collector
    logger.debug(
        "Scanned %d elements: %d fragments, %d groups, %d structured-data nodes",
        scanner.events,
        len(scanner.fragments),
        len(scanner.groups),
        len(collector.schemas),
    )
    for anomaly in collector.skipped:
        logger.debug("Scan anomaly: %s", anomaly)

    return ScannedDocument(
        url=url,
        config=config,
        collector=collector,
        buffer=ContentBuffer(tuple(scanner.fragments), tuple(scanner.groups)),
    )
