"""Extractor registry: ordered strategy selection with a generic fallback.

A strategy is any object with a ``name`` and the two methods of
:class:`Extractor`; no base class is needed::

    from declutter import DEFAULT_REGISTRY, extract

    class ExampleDocs:
        name = "example_docs"

        def can_extract(self, url, schemas):
            return bool(url) and "docs.example.com" in url

        def extract(self, document, rules):
            ...

    registry = DEFAULT_REGISTRY.extended(ExampleDocs())
    response = extract(html, url=url, registry=registry)

Registries are immutable: ``extended()`` returns a new registry and leaves the
process-wide default untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from declutter.extractors.main_content import GenericExtractor
from declutter.extractors.sites import FarcasterExtractor, SchemaArticleBodyExtractor

if TYPE_CHECKING:
    from declutter.extractors.scanner import ScannedDocument
    from declutter.extractors.scoring import ExtractionRules
    from declutter.items import ExtractedContent

logger = logging.getLogger(__name__)


@runtime_checkable
class Extractor(Protocol):
    """Extraction strategy contract."""

    name: str

    def can_extract(self, url: str | None, schemas: list[dict[str, Any]]) -> bool:
        """Return True if this strategy applies to *url* / the page's schemas."""
        ...

    def extract(self, document: ScannedDocument, rules: ExtractionRules) -> ExtractedContent:
        """Return the page content, or raise ``ExtractionError``."""
        ...


class ExtractorRegistry:
    """Fixed-priority list of strategies; the first applicable one wins."""

    def __init__(
        self,
        extractors: Iterable[Extractor] = (),
        fallback: Extractor | None = None,
    ) -> None:
        extractors = tuple(extractors)
        for extractor in extractors:
            if not isinstance(extractor, Extractor):
                raise TypeError(f"{extractor!r} does not implement the Extractor protocol")
        self._extractors = extractors
        self._fallback = fallback if fallback is not None else GenericExtractor()

    @property
    def extractors(self) -> tuple[Extractor, ...]:
        return self._extractors

    @property
    def fallback(self) -> Extractor:
        return self._fallback

    def names(self) -> list[str]:
        return [e.name for e in self._extractors] + [self._fallback.name]

    def select(self, url: str | None, schemas: list[dict[str, Any]]) -> Extractor:
        for extractor in self._extractors:
            if extractor.can_extract(url, schemas):
                return extractor
        return self._fallback

    def extended(self, *extractors: Extractor) -> ExtractorRegistry:
        """Return a new registry with *extractors* appended after the current ones."""
        return ExtractorRegistry(self._extractors + extractors, self._fallback)

    def __repr__(self) -> str:
        return f"ExtractorRegistry({self.names()!r})"


DEFAULT_REGISTRY = ExtractorRegistry(
    (FarcasterExtractor(), SchemaArticleBodyExtractor()),
    fallback=GenericExtractor(),
)
