"""Resolve page metadata from what the scanner collected.

Priority chain per field (highest → lowest):
    structured data (JSON-LD) → Open Graph → Twitter Card → other <meta> → document tags

Strategy-provided values are layered on top of this by the response assembler.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import dateparser
from pydantic import ValidationError

from declutter.extractors.collector import MetadataCollector
from declutter.items import MiniAppEmbed

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_WS_RE = re.compile(r"\s+")
_URL_LIKE_RE = re.compile(r"^(?:https?:)?//", re.IGNORECASE)

_DATE_SETTINGS: dict[str, Any] = {
    "RETURN_AS_TIMEZONE_AWARE": True,
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
    "PREFER_DAY_OF_MONTH": "first",
    "PREFER_LOCALE_DATE_ORDER": False,
    # Absolute formats only: relative phrases ("2 days ago") would make the
    # result depend on the wall clock.
    "PARSERS": ["timestamp", "custom-formats", "absolute-time"],
}


def _first(*values: Any) -> Any:
    """Return the first non-empty, non-None value."""
    for v in values:
        if v:
            return v
    return None


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = _WS_RE.sub(" ", value).strip()
    return value or None


def parse_date(raw: str | None) -> str | None:
    """Parse a date string to ISO 8601 (UTC when no offset is given).

    Returns None on failure or when the year falls outside 1990-2099
    (catches epoch defaults like 1970-01-01 and far-future typos).
    """
    if not raw:
        return None
    raw = _WS_RE.sub(" ", raw.strip())
    try:
        parsed = dateparser.parse(raw, settings=_DATE_SETTINGS)
    except (ValueError, OverflowError, TypeError) as exc:
        logger.debug("Date parse failed for %r: %s", raw, exc)
        return None
    if parsed is None or not (1990 <= parsed.year <= 2099):
        return None
    return parsed.isoformat()


def normalize_date(raw: str | None) -> str | None:
    """ISO-8601 form of *raw*, or the trimmed raw value when it cannot be parsed."""
    if not raw or not raw.strip():
        return None
    return parse_date(raw) or raw.strip()


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------

ARTICLE_TYPES: frozenset[str] = frozenset(
    {
        "article",
        "blogging",
        "blogposting",
        "newsarticle",
        "techarticle",
        "scholarlyarticle",
        "liveblogposting",
        "reportage",
        "report",
        "analysisnewsarticle",
        "opinionnewsarticle",
        "reviewnewsarticle",
    },
)

_PAGE_TYPES: frozenset[str] = frozenset({"webpage", "website", "itempage", "aboutpage"})


def schema_types(node: dict[str, Any]) -> set[str]:
    raw = node.get("@type", "")
    values = raw if isinstance(raw, list) else [raw]
    return {str(v).lower() for v in values if v}


def is_article(node: dict[str, Any]) -> bool:
    return bool(schema_types(node) & ARTICLE_TYPES)


def primary_schema(schemas: list[dict[str, Any]]) -> dict[str, Any]:
    """Pick the node describing the page: the first article, else the first web page."""
    fallback: dict[str, Any] = {}
    for node in schemas:
        types = schema_types(node)
        if types & ARTICLE_TYPES:
            return node
        if types & _PAGE_TYPES and not fallback:
            fallback = node
    return fallback


def _name_of(value: Any) -> str | None:
    if isinstance(value, dict):
        return _clean(value.get("name"))
    return _clean(value)


def author_from_schema(node: dict[str, Any]) -> str | None:
    author = node.get("author") or node.get("creator")
    if isinstance(author, list):
        names = [n for n in (_name_of(a) for a in author) if n]
        return ", ".join(names) if names else None
    return _name_of(author)


def image_from_schema(node: dict[str, Any]) -> str | None:
    image = node.get("image") or node.get("thumbnailUrl")
    if isinstance(image, list) and image:
        image = image[0]
    if isinstance(image, dict):
        return _clean(image.get("url") or image.get("contentUrl"))
    return _clean(image)


def _type_label(node: dict[str, Any]) -> str | None:
    raw = node.get("@type")
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    return _clean(raw)


# ---------------------------------------------------------------------------
# Mini-app embeds
# ---------------------------------------------------------------------------

def parse_mini_app(raw: str | None) -> MiniAppEmbed | None:
    """Parse the JSON carried by an ``fc:frame`` meta tag."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.debug("Ignoring malformed fc:frame embed: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    try:
        return MiniAppEmbed.model_validate(data)
    except ValidationError as exc:
        logger.debug("Ignoring invalid fc:frame embed: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageMetadata:
    title: str | None
    author: str | None
    published: str | None
    excerpt: str | None
    site_name: str | None
    content_type: str | None
    image: str | None
    language: str | None
    canonical_url: str | None
    amp_url: str | None
    favicon: str | None
    mini_app: MiniAppEmbed | None


def _meta_author(collector: MetadataCollector) -> str | None:
    for key in ("author", "byl", "article:author", "dc.creator", "twitter:creator"):
        value = _clean(collector.meta.get(key))
        if not value:
            continue
        if key == "article:author" and _URL_LIKE_RE.match(value):
            continue
        if key == "byl":
            value = re.sub(r"^by\s+", "", value, flags=re.IGNORECASE)
        return value
    return None


def _locale_to_language(locale: str | None) -> str | None:
    if not locale:
        return None
    return locale.strip().replace("_", "-") or None


def resolve_metadata(collector: MetadataCollector) -> PageMetadata:
    """Apply the precedence chains to *collector*."""
    node = primary_schema(collector.schemas)
    get = collector.get

    title = _first(
        _clean(node.get("headline")),
        _clean(node.get("name")) if is_article(node) else None,
        _clean(get("og:title")),
        _clean(get("twitter:title")),
        _clean(get("title")),
        collector.title,
    )

    published = _first(
        _clean(node.get("datePublished")),
        _clean(get("article:published_time", "og:article:published_time")),
        _clean(get("publish_date", "publishdate", "pubdate", "date", "dc.date.issued", "dc.date")),
        collector.first_time,
    )

    publisher = node.get("publisher")
    site_name = _first(
        _clean(get("og:site_name")),
        _name_of(publisher),
        _clean(get("application-name")),
        _clean(get("twitter:site")),
    )

    language = _first(
        collector.language,
        _clean(get("content-language", "language")),
        _locale_to_language(get("og:locale")),
        _clean(node.get("inLanguage")),
    )

    return PageMetadata(
        title=title,
        author=_first(author_from_schema(node), _meta_author(collector)),
        published=normalize_date(published),
        excerpt=_first(
            _clean(node.get("description")),
            _clean(get("description")),
            _clean(get("og:description")),
            _clean(get("twitter:description")),
        ),
        site_name=site_name,
        content_type=_first(_type_label(node), _clean(get("og:type"))),
        image=_first(
            image_from_schema(node),
            _clean(get("og:image", "og:image:url", "og:image:secure_url")),
            _clean(get("twitter:image", "twitter:image:src")),
        ),
        language=language,
        canonical_url=_first(collector.canonical_url, _clean(get("og:url"))),
        amp_url=collector.amp_url,
        favicon=collector.favicon,
        mini_app=parse_mini_app(collector.mini_app_raw),
    )
