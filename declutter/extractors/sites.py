"""Site- and schema-specific extraction strategies.

Each strategy is a plain class satisfying the
:class:`~declutter.extractors.registry.Extractor` protocol.  They are tried
in registry order before the generic scorer.
"""

from __future__ import annotations

import logging
from html import escape
from typing import Any

from declutter.errors import ExtractionError
from declutter.extractors.main_content import has_text, join_fragments, prune_region
from declutter.extractors.metadata import (
    author_from_schema,
    is_article,
    normalize_date,
    parse_mini_app,
)
from declutter.extractors.scanner import ScannedDocument
from declutter.extractors.scoring import ExtractionRules, fragment_stats, select_region
from declutter.items import ExtractedContent, MiniAppEmbed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Farcaster mini apps
# ---------------------------------------------------------------------------

FARCASTER_HOSTS: tuple[str, ...] = (
    "crowdfund.seedclub.com",
    "yoink.party",
    "farcaster.xyz",
    "warpcast.com",
)


def _embed_markup(embed: MiniAppEmbed) -> str:
    parts: list[str] = []
    title = escape(embed.button.title)
    if embed.image_url:
        parts.append(
            f'<figure><img src="{escape(embed.image_url)}" alt="{title}"></figure>',
        )
    if embed.button.title:
        url = embed.button.action.url
        if url:
            parts.append(f'<p><a href="{escape(url)}">{title}</a></p>')
        else:
            parts.append(f"<p>{title}</p>")
    return "\n".join(parts)


class FarcasterExtractor:
    """Mini-app pages: keep the whole (de-cluttered) body, no density scoring.

    Mini-app shells often render client-side and ship an almost empty body;
    the ``fc:frame`` embed then stands in as the content.
    """

    name = "farcaster"

    def can_extract(self, url: str | None, schemas: list[dict[str, Any]]) -> bool:
        return bool(url) and any(host in url for host in FARCASTER_HOSTS)

    def extract(self, document: ScannedDocument, rules: ExtractionRules) -> ExtractedContent:
        config = document.config
        fragments = [f for f in document.buffer.fragments if not rules.excludes(f)]
        markup, _ = join_fragments(fragments, config.max_content_length)
        content = prune_region(markup, rules, config) if markup else ""

        embed = parse_mini_app(document.collector.mini_app_raw)
        if not has_text(content) and embed is not None:
            logger.debug("Farcaster page has no body text, using the fc:frame embed")
            content = prune_region(_embed_markup(embed), rules, config)

        if not content or not has_text(content):
            raise ExtractionError("no content found", url=document.url)

        return ExtractedContent(
            title=embed.button.title if embed else "",
            content=content,
            variables={"fragments": len(fragments), "mini_app": embed is not None},
        )


# ---------------------------------------------------------------------------
# schema.org articleBody
# ---------------------------------------------------------------------------

# Shorter bodies are usually teasers or truncated paywall copies
MIN_ARTICLE_BODY_WORDS = 50


def _article_body_node(schemas: list[dict[str, Any]]) -> dict[str, Any] | None:
    for node in schemas:
        body = node.get("articleBody")
        if (
            is_article(node)
            and isinstance(body, str)
            and len(body.split()) >= MIN_ARTICLE_BODY_WORDS
        ):
            return node
    return None


def _region_words(document: ScannedDocument, rules: ExtractionRules) -> int:
    choice = select_region(document.buffer, rules)
    return sum(fragment_stats(f, rules)[0] for f in choice.fragments)


class SchemaArticleBodyExtractor:
    """Pages that publish the full article text as schema.org ``articleBody``.

    ``articleBody`` is plain text, so it only wins when the page markup has
    less to offer: with a content region of at least as many words the
    strategy steps aside and the page goes to the generic scorer, which keeps
    headings, code and images.
    """

    name = "schema_article_body"

    def can_extract(self, url: str | None, schemas: list[dict[str, Any]]) -> bool:
        return _article_body_node(schemas) is not None

    def extract(self, document: ScannedDocument, rules: ExtractionRules) -> ExtractedContent:
        node = _article_body_node(document.collector.schemas)
        if node is None:
            raise ExtractionError("no articleBody found", url=document.url)

        body_words = len(node["articleBody"].split())
        page_words = _region_words(document, rules)
        if page_words >= body_words:
            raise ExtractionError(
                f"page region has {page_words} words, articleBody only {body_words}",
                url=document.url,
            )

        paragraphs = [" ".join(line.split()) for line in node["articleBody"].splitlines()]
        paragraphs = [p for p in paragraphs if p]

        max_words = document.config.max_content_length
        kept: list[str] = []
        words = 0
        for p in paragraphs:
            count = len(p.split())
            if max_words is not None and kept and words + count > max_words:
                break
            kept.append(f"<p>{escape(p, quote=False)}</p>")
            words += count

        def text_field(key: str) -> str | None:
            value = node.get(key)
            return value if isinstance(value, str) else None

        return ExtractedContent(
            title=text_field("headline") or text_field("name") or "",
            content="\n".join(kept),
            author=author_from_schema(node),
            published=normalize_date(text_field("datePublished")),
            excerpt=text_field("description"),
            variables={"paragraphs": len(paragraphs)},
        )
