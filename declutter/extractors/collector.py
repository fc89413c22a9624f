"""Mutable metadata record filled in by the streaming scanner.

One :class:`MetadataCollector` belongs to exactly one scan.  Writes are
first-wins per key; deciding which *kind* of key outranks another (e.g.
``og:title`` over ``<title>``) happens later in :mod:`.metadata`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from declutter.items import MetaTagItem

logger = logging.getLogger(__name__)

# Content images remembered as thumbnail candidates
_MAX_IMAGE_CANDIDATES = 20


@dataclass
class ImageCandidate:
    src: str
    width: int | None = None
    height: int | None = None


def _parse_dimension(value: str | None) -> int | None:
    if not value:
        return None
    digits = value.strip().removesuffix("px")
    try:
        return int(float(digits))
    except ValueError:
        return None


def flatten_structured_data(raw: Any) -> list[dict[str, Any]]:
    """Return the schema.org nodes in *raw*, with ``@graph`` arrays expanded."""
    nodes: list[dict[str, Any]] = []
    pending = raw if isinstance(raw, list) else [raw]
    for node in pending:
        if not isinstance(node, dict):
            continue
        graph = node.get("@graph")
        if isinstance(graph, list):
            nodes.extend(n for n in graph if isinstance(n, dict))
            continue
        nodes.append(node)
    return nodes


@dataclass
class MetadataCollector:
    title: str | None = None
    meta_tags: list[MetaTagItem] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)
    schemas: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    language: str | None = None
    canonical_url: str | None = None
    amp_url: str | None = None
    base_href: str | None = None
    favicon: str | None = None
    is_amp: bool = False
    first_time: str | None = None
    mini_app_raw: str | None = None
    images: list[ImageCandidate] = field(default_factory=list)

    _favicon_rank: int = field(default=99, repr=False)

    # ------------------------------------------------------------------
    # Writers (called by the scanner)
    # ------------------------------------------------------------------

    def set_title(self, text: str) -> None:
        text = " ".join(text.split())
        if text and self.title is None:
            self.title = text

    def set_language(self, lang: str | None) -> None:
        if lang and lang.strip() and self.language is None:
            self.language = lang.strip()

    def add_meta(self, attrs: dict[str, str]) -> None:
        content = attrs.get("content")
        if content is None:
            charset = attrs.get("charset")
            if charset:
                self.meta.setdefault("charset", charset)
            return

        name = attrs.get("name")
        prop = attrs.get("property")
        self.meta_tags.append(
            MetaTagItem(name=name, property=prop, content=content.strip()),
        )

        keys = [
            attrs.get(attr, "").strip().lower()
            for attr in ("property", "name", "itemprop", "http-equiv")
        ]
        for key in keys:
            if key:
                self.meta.setdefault(key, content.strip())

        if "fc:frame" in keys and self.mini_app_raw is None:
            self.mini_app_raw = content

    def add_link(self, attrs: dict[str, str]) -> None:
        href = (attrs.get("href") or "").strip()
        if not href:
            return
        rels = (attrs.get("rel") or "").lower().split()
        if "canonical" in rels and self.canonical_url is None:
            self.canonical_url = href
        if "amphtml" in rels and self.amp_url is None:
            self.amp_url = href
        if "icon" in rels:
            rank = 0 if rels == ["icon"] else 1
        elif "apple-touch-icon" in rels:
            rank = 2
        else:
            return
        if rank < self._favicon_rank:
            self._favicon_rank = rank
            self.favicon = href

    def add_structured_data(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            self.skipped.append(f"ld+json: {exc.msg} at line {exc.lineno}")
            logger.debug("Skipping unparsable structured data: %s", exc)
            return
        self.schemas.extend(flatten_structured_data(raw))

    def note_time(self, value: str | None) -> None:
        if value and value.strip() and self.first_time is None:
            self.first_time = value.strip()

    def add_image(self, attrs: dict[str, str]) -> None:
        if len(self.images) >= _MAX_IMAGE_CANDIDATES:
            return
        src = (attrs.get("src") or attrs.get("data-src") or "").strip()
        if not src or src.startswith("data:"):
            return
        self.images.append(
            ImageCandidate(
                src=src,
                width=_parse_dimension(attrs.get("width")),
                height=_parse_dimension(attrs.get("height")),
            ),
        )

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get(self, *keys: str) -> str | None:
        """Return the first non-empty meta value among *keys*."""
        for key in keys:
            value = self.meta.get(key)
            if value:
                return value
        return None
