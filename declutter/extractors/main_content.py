"""Main content extraction: the generic density-scoring strategy.

The scanner has already cut the page into fragments and recorded which ones
sit under clutter.  This module picks the best-scoring region, stitches its
fragments back together and resolves the deferred removal markers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from bs4 import BeautifulSoup, Tag

from declutter.errors import ExtractionError
from declutter.extractors.scanner import (
    PRESERVE_MARKER,
    REMOVE_MARKER,
    Fragment,
    ScannedDocument,
)
from declutter.extractors.scoring import (
    DEFAULT_WEIGHTS,
    ExtractionRules,
    ScoringWeights,
    select_region,
)
from declutter.items import ExtractedContent
from declutter.settings import ExtractionConfig

logger = logging.getLogger(__name__)

_MEDIA_TAGS: tuple[str, ...] = ("img", "picture", "figure", "video", "audio", "source")


def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse an HTML fragment; the content ends up under ``soup.body``."""
    return BeautifulSoup(f"<body>{markup}</body>", "lxml")


def inner_html(soup: BeautifulSoup) -> str:
    root = soup.body or soup
    return "".join(str(child) for child in root.contents)


def join_fragments(fragments: Iterable[Fragment], max_words: int | None = None) -> tuple[str, int]:
    """Concatenate fragment markup in document order.

    Stops before the fragment that would take the total past *max_words*,
    but always keeps the first one.  Returns ``(markup, word_count)``.
    """
    parts: list[str] = []
    words = 0
    for fragment in fragments:
        count = fragment.word_count
        if max_words is not None and parts and words + count > max_words:
            logger.debug("Region capped at %d words (max %d)", words, max_words)
            break
        parts.append(fragment.markup)
        words += count
    return "\n".join(parts), words


def _is_preserved(el: Tag) -> bool:
    return el.has_attr(PRESERVE_MARKER) or el.find_parent(attrs={PRESERVE_MARKER: True}) is not None


def prune_region(markup: str, rules: ExtractionRules, config: ExtractionConfig) -> str:
    """Drop elements marked for removal under *rules* and apply media/link options."""
    soup = parse_fragment(markup)

    dropped = 0
    for el in soup.find_all(attrs={REMOVE_MARKER: True}):
        if el.decomposed:
            continue
        categories = set(str(el.get(REMOVE_MARKER, "")).split())
        if not categories & rules.categories or _is_preserved(el):
            continue
        el.decompose()
        dropped += 1

    if not config.include_images:
        for el in soup.find_all(list(_MEDIA_TAGS)):
            if not el.decomposed:
                el.decompose()
    if not config.include_links:
        for a in soup.find_all("a"):
            a.unwrap()

    if dropped:
        logger.debug("Dropped %d marked elements inside the region", dropped)
    return inner_html(soup)


def first_heading(markup: str) -> str | None:
    soup = parse_fragment(markup)
    h1 = soup.find("h1")
    if h1 is None:
        return None
    text = " ".join(h1.get_text(" ").split())
    return text or None


def has_text(markup: str) -> bool:
    soup = parse_fragment(markup)
    return bool(soup.get_text(" ").strip()) or soup.find(list(_MEDIA_TAGS)) is not None


# ---------------------------------------------------------------------------
# Generic strategy
# ---------------------------------------------------------------------------

class GenericExtractor:
    """Fallback strategy: density scoring over the buffered fragments."""

    name = "generic"

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
        self.weights = weights

    def can_extract(self, url: str | None, schemas: list[dict[str, Any]]) -> bool:
        return True

    def extract(self, document: ScannedDocument, rules: ExtractionRules) -> ExtractedContent:
        config = document.config
        choice = select_region(document.buffer, rules, self.weights)
        if choice.group is None or not choice.fragments:
            raise ExtractionError("no content found", url=document.url)

        markup, _ = join_fragments(choice.fragments, config.max_content_length)
        content = prune_region(markup, rules, config)
        if not has_text(content):
            raise ExtractionError("no content found", url=document.url)

        return ExtractedContent(
            content=content,
            variables={
                "group": choice.group.id,
                "group_tag": choice.group.tag,
                "score": round(choice.score, 2),
                "fragments": len(choice.fragments),
                "first_heading": first_heading(content),
            },
        )
