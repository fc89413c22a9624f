"""declutter - extract clean, readable article content from raw HTML.

Quick usage::

    from declutter import extract

    response = extract(html, url="https://example.com/blog/some-post")
    print(response.title)
    print(response.content)          # cleaned HTML
    print(response.text_content)     # plain text
    print(response.metadata.word_count, response.metadata.reading_time_minutes)

Site-specific strategies::

    from declutter import DEFAULT_REGISTRY, extract

    class ExampleDocs:
        name = "example_docs"
        def can_extract(self, url, schemas):
            return bool(url) and "docs.example.com" in url
        def extract(self, document, rules):
            ...

    registry = DEFAULT_REGISTRY.extended(ExampleDocs())
    response = extract(html, url=url, registry=registry)
"""

from declutter.errors import DeclutterError, ExtractionError, InvalidInput, ParseError
from declutter.extractors.registry import DEFAULT_REGISTRY, Extractor, ExtractorRegistry
from declutter.items import ExtractedContent, MetaTagItem, MiniAppEmbed, Response, ResponseMetadata
from declutter.parser import Declutter
from declutter.profiles import load_profile
from declutter.query import extract, extract_async
from declutter.settings import ExtractionConfig

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_REGISTRY",
    "Declutter",
    "DeclutterError",
    "ExtractedContent",
    "ExtractionConfig",
    "ExtractionError",
    "Extractor",
    "ExtractorRegistry",
    "InvalidInput",
    "MetaTagItem",
    "MiniAppEmbed",
    "ParseError",
    "Response",
    "ResponseMetadata",
    "extract",
    "extract_async",
    "load_profile",
]
