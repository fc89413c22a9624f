"""declutter.parser - reusable parser object.

Bundles one configuration and one strategy registry so repeated calls do not
have to pass them around.

Usage::

    from declutter import Declutter

    parser = Declutter(min_content_length=100, include_links=False)
    response = parser.parse(html, url="https://example.com/blog/post")

    # Per-site options from a YAML profile
    parser = Declutter.from_profile("profiles.yaml", "https://example.com/blog/post")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from declutter.extractors.registry import DEFAULT_REGISTRY, ExtractorRegistry
from declutter.profiles import load_profile
from declutter.query import extract, extract_async
from declutter.settings import ExtractionConfig

if TYPE_CHECKING:
    from declutter.extractors.registry import Extractor
    from declutter.items import Response


class Declutter:
    """High-level parser holding a config and a registry.

    Args:
        config:    An :class:`ExtractionConfig`.  Mutually exclusive with
                   keyword options.
        registry:  Strategy registry (defaults to the process-wide one).
        **options: Individual :class:`ExtractionConfig` fields.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        registry: ExtractorRegistry | None = None,
        **options: Any,
    ) -> None:
        if config is not None and options:
            raise TypeError("pass either a config or keyword options, not both")
        self._config = config if config is not None else ExtractionConfig(**options)
        self._registry = registry or DEFAULT_REGISTRY

    @classmethod
    def from_profile(cls, path: str | Path, url: str, **kwargs: Any) -> Declutter:
        return cls(config=load_profile(path, url), **kwargs)

    @property
    def config(self) -> ExtractionConfig:
        return self._config

    @property
    def registry(self) -> ExtractorRegistry:
        return self._registry

    def with_extractors(self, *extractors: Extractor) -> Declutter:
        """Return a parser whose registry tries *extractors* after the current ones."""
        return Declutter(self._config, self._registry.extended(*extractors))

    def parse(self, html: str | bytes, url: str | None = None) -> Response:
        """Extract content from pre-fetched HTML.  See :func:`declutter.extract`."""
        return extract(html, url=url, config=self._config, registry=self._registry)

    async def parse_async(self, html: str | bytes, url: str | None = None) -> Response:
        return await extract_async(html, url=url, config=self._config, registry=self._registry)
