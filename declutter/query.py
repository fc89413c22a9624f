"""declutter.query - the extraction entry points.

Basic usage::

    from declutter import extract

    response = extract(html, url="https://example.com/blog/some-post")
    print(response.title)
    print(response.text_content)
    print(response.metadata.word_count, response.extractor_used)

    # As a plain dict
    data = extract(html).model_dump()

Options are passed as an :class:`~declutter.settings.ExtractionConfig` or a
plain mapping::

    response = extract(html, config={"min_content_length": 50, "markdown": True})

From async code, :func:`extract_async` runs the identical computation in a
worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from declutter.assembler import assemble_response
from declutter.errors import ExtractionError, InvalidInput
from declutter.extractors.metadata import resolve_metadata
from declutter.extractors.registry import DEFAULT_REGISTRY, ExtractorRegistry
from declutter.extractors.scanner import scan_document
from declutter.extractors.urlnorm import normalize_source_url
from declutter.items import Response
from declutter.retry import RetryController
from declutter.settings import ExtractionConfig

logger = logging.getLogger(__name__)


def extract(
    html: str | bytes,
    url: str | None = None,
    config: ExtractionConfig | Mapping[str, Any] | None = None,
    *,
    registry: ExtractorRegistry | None = None,
) -> Response:
    """Extract the main content and metadata from *html*.

    Args:
        html:     Raw HTML of the page.
        url:      Page URL, used for strategy selection, ``domain`` and
                  resolving relative links.  An unusable URL is logged and
                  ignored.
        config:   Extraction options (defaults when omitted).
        registry: Strategy registry (the process-wide default when omitted).

    Returns:
        A :class:`~declutter.items.Response`.

    Raises:
        :class:`~declutter.errors.ParseError`: the input has no element structure.
        :class:`~declutter.errors.ExtractionError`: no content survived either attempt, with the
            selected strategy and then with the generic fallback.
    """
    config = ExtractionConfig.coerce(dict(config) if isinstance(config, Mapping) else config)
    registry = registry or DEFAULT_REGISTRY

    try:
        url = normalize_source_url(url)
    except InvalidInput as exc:
        logger.warning("Ignoring source URL %r: %s", exc.url or url, exc)
        url = None

    document = scan_document(html, config, url=url)
    page = resolve_metadata(document.collector)

    strategy = registry.select(url, document.collector.schemas)
    log = logger.info if config.debug else logger.debug
    log("Using %s extractor for %s", strategy.name, url or "<no url>")

    try:
        outcome = RetryController(strategy, document, page_title=page.title).run()
    except ExtractionError as exc:
        if strategy is registry.fallback:
            raise
        log("%s extractor gave up (%s), falling back to %s", strategy.name, exc,
            registry.fallback.name)
        strategy = registry.fallback
        outcome = RetryController(strategy, document, page_title=page.title).run()
    return assemble_response(document, page, strategy.name, outcome)


async def extract_async(
    html: str | bytes,
    url: str | None = None,
    config: ExtractionConfig | Mapping[str, Any] | None = None,
    *,
    registry: ExtractorRegistry | None = None,
) -> Response:
    """Awaitable :func:`extract`; same inputs, same result, same errors."""
    return await asyncio.to_thread(extract, html, url, config, registry=registry)
