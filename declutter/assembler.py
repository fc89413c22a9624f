"""Merge resolved page metadata with the winning extraction attempt.

Per field: strategy-provided value → structured data → meta tags →
first-observed document value (the last three already ordered by
:func:`declutter.extractors.metadata.resolve_metadata`).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup

from declutter.extractors.markdown import html_to_markdown
from declutter.extractors.standardize import is_tiny_or_tracking
from declutter.extractors.urlnorm import (
    document_base,
    extract_domain,
    is_mobile_host,
    resolve_url,
)
from declutter.items import Response, ResponseMetadata
from declutter.language import detect_language
from declutter.retry import RetryOutcome, pick_title
from declutter.settings import EXCERPT_LENGTH

if TYPE_CHECKING:
    from declutter.extractors.metadata import PageMetadata
    from declutter.extractors.scanner import ScannedDocument

logger = logging.getLogger(__name__)


def _excerpt_from_text(text: str, limit: int = EXCERPT_LENGTH) -> str | None:
    paragraph = text.split("\n\n", 1)[0].strip()
    paragraph = " ".join(paragraph.split())
    if not paragraph:
        return None
    if len(paragraph) <= limit:
        return paragraph
    cut = paragraph[:limit].rsplit(" ", 1)[0]
    return cut + "…"


def _first_content_image(content: str) -> str | None:
    soup = BeautifulSoup(f"<body>{content}</body>", "lxml")
    for img in soup.find_all("img"):
        src = str(img.get("src") or "").strip()
        if src and not src.startswith("data:"):
            return src
    return None


def _candidate_image(document: ScannedDocument, base: str | None) -> str | None:
    for image in document.collector.images:
        if not is_tiny_or_tracking(image.src, image.width, image.height):
            return resolve_url(base, image.src)
    return None


def assemble_response(
    document: ScannedDocument,
    page: PageMetadata,
    strategy_name: str,
    outcome: RetryOutcome,
) -> Response:
    config = document.config
    extracted = outcome.attempt.extracted
    standardized = outcome.attempt.standardized
    url = document.url
    base = document_base(url, document.collector.base_href)

    language = page.language
    if language is None and config.detect_language:
        language = detect_language(standardized.text_content)

    thumbnail = (
        resolve_url(base, page.image)
        or _first_content_image(standardized.content)
        or _candidate_image(document, base)
    )

    metadata = ResponseMetadata(
        canonical_url=resolve_url(base, page.canonical_url),
        amp_url=resolve_url(base, page.amp_url),
        thumbnail=thumbnail,
        favicon=resolve_url(base, page.favicon),
        word_count=standardized.word_count,
        reading_time_minutes=standardized.reading_time_minutes,
        domain=extract_domain(url),
        schemas=list(document.collector.schemas),
        mini_app=page.mini_app,
        retried=outcome.retried,
    )

    response = Response(
        title=pick_title(extracted, page.title),
        content=standardized.content,
        text_content=standardized.text_content,
        content_markdown=html_to_markdown(standardized.content) if config.markdown else None,
        excerpt=extracted.excerpt or page.excerpt or _excerpt_from_text(standardized.text_content),
        author=extracted.author or page.author,
        site_name=extracted.site_name or page.site_name,
        published=extracted.published or page.published,
        language=language,
        content_type=extracted.content_type or page.content_type,
        is_mobile=document.collector.is_amp or is_mobile_host(url),
        extractor_used=strategy_name,
        meta_tags=list(document.collector.meta_tags),
        metadata=metadata,
    )
    logger.debug(
        "Assembled response: %r by %s, %d words (%s)",
        response.title, strategy_name, metadata.word_count,
        "relaxed" if outcome.retried else "initial",
    )
    return response
