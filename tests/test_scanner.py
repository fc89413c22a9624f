"""Unit tests for the streaming scanner and the metadata collector."""

from __future__ import annotations

import pytest

from declutter.errors import ParseError
from declutter.extractors.collector import MetadataCollector, flatten_structured_data
from declutter.extractors.patterns import matches_partial
from declutter.extractors.scanner import (
    CUSTOM,
    EXACT,
    PARTIAL,
    PRESERVE_MARKER,
    REMOVE_MARKER,
    scan_document,
)
from declutter.settings import ExtractionConfig


def _texts(document) -> list[str]:
    return [" ".join(run.text for run in f.runs).strip() for f in document.buffer.fragments]


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class TestScanInput:
    def test_empty_string_raises(self):
        with pytest.raises(ParseError):
            scan_document("")

    def test_whitespace_raises(self):
        with pytest.raises(ParseError):
            scan_document("   \n\t ")

    def test_plain_text_raises(self):
        with pytest.raises(ParseError):
            scan_document("just some words without any markup")

    def test_bytes_input(self):
        doc = scan_document(b"<html><body><p>Hello bytes</p></body></html>")
        assert _texts(doc) == ["Hello bytes"]

    def test_xml_declaration_stripped(self):
        html = '<?xml version="1.0" encoding="utf-8"?><html><body><p>Hi there</p></body></html>'
        doc = scan_document(html)
        assert _texts(doc) == ["Hi there"]

    def test_url_recorded(self):
        doc = scan_document("<p>x</p>", url="https://example.com/a")
        assert doc.url == "https://example.com/a"


# ---------------------------------------------------------------------------
# Fragments and groups
# ---------------------------------------------------------------------------

class TestFragments:
    def test_fragment_kinds(self):
        html = (
            "<body><div><h2>Heading</h2><p>Para</p><ul><li>Item</li></ul>"
            "<pre>code()</pre><blockquote>Quote</blockquote>"
            '<img src="/a.png"></div></body>'
        )
        doc = scan_document(html)
        kinds = [f.kind for f in doc.buffer.fragments]
        assert kinds == ["heading", "paragraph", "list", "code", "quote", "image"]

    def test_heading_level(self):
        doc = scan_document("<body><h3>Sub</h3></body>")
        assert doc.buffer.fragments[0].level == 3

    def test_role_heading(self):
        doc = scan_document('<body><div role="heading" aria-level="4">Title</div></body>')
        frag = doc.buffer.fragments[0]
        assert frag.kind == "heading"
        assert frag.level == 4

    def test_loose_text_wrapped_in_paragraph(self):
        doc = scan_document("<body><div>Loose <b>bold</b> text</div></body>")
        frag = doc.buffer.fragments[0]
        assert frag.kind == "text"
        assert frag.markup.startswith("<p>")
        assert frag.markup.endswith("</p>")
        assert frag.word_count == 3

    def test_block_breaks_loose_text(self):
        doc = scan_document("<body><div>Before<p>Inside</p>After</div></body>")
        assert _texts(doc) == ["Before", "Inside", "After"]

    def test_scripts_and_styles_not_buffered(self):
        html = (
            "<body><p>Visible</p><script>var hidden = 1;</script>"
            "<style>p { color: red }</style><noscript>No JS</noscript></body>"
        )
        doc = scan_document(html)
        assert _texts(doc) == ["Visible"]

    def test_link_runs_flagged(self):
        doc = scan_document('<body><p>Read <a href="/x">this link</a></p></body>')
        runs = doc.buffer.fragments[0].runs
        assert [r.in_link for r in runs] == [False, True]

    def test_markup_escaped(self):
        doc = scan_document("<body><p>1 &lt; 2 &amp; 3</p></body>")
        assert "1 &lt; 2 &amp; 3" in doc.buffer.fragments[0].markup

    def test_group_hierarchy(self):
        doc = scan_document("<body><section><div><p>Deep</p></div></section></body>")
        groups = doc.buffer.groups
        assert [g.tag for g in groups] == ["body", "section", "div"]
        assert groups[2].parent == groups[1].id
        assert doc.buffer.fragments[0].ancestors == (0, 1, 2)
        assert doc.buffer.fragments_in(1) == list(doc.buffer.fragments)

    def test_container_groups(self):
        doc = scan_document('<body><article><p>A</p></article><div role="main"><p>B</p></div></body>')
        containers = [g.tag for g in doc.buffer.groups if g.container]
        assert containers == ["article", "div"]

    def test_custom_content_selector_marks_container(self):
        config = ExtractionConfig(content_selectors={".story-body"})
        doc = scan_document('<body><div class="story-body"><p>A</p></div></body>', config)
        assert doc.buffer.groups[1].container


# ---------------------------------------------------------------------------
# Removal and preservation markers
# ---------------------------------------------------------------------------

class TestMarkers:
    def test_exact_rule_recorded_on_group_and_fragment(self):
        doc = scan_document("<body><nav><ul><li><a href='/'>Home</a></li></ul></nav></body>")
        nav = doc.buffer.groups[1]
        assert EXACT in nav.marks
        assert EXACT in doc.buffer.fragments[0].categories

    def test_partial_rule(self):
        doc = scan_document('<body><div class="related-posts"><p>Other</p></div></body>')
        assert PARTIAL in doc.buffer.fragments[0].categories

    def test_partial_not_applied_to_containers(self):
        doc = scan_document('<body><article class="ad-free"><p>Text</p></article></body>')
        assert doc.buffer.fragments[0].categories == frozenset()

    def test_partial_token_boundaries(self):
        assert matches_partial({"class": "share-buttons"})
        assert matches_partial({"id": "sidebar"})
        assert not matches_partial({"class": "shareholder-letter"})
        assert matches_partial({"data-testid": "ad-slot"})

    def test_custom_rule(self):
        config = ExtractionConfig(remove_selectors={".promo-box"})
        doc = scan_document('<body><div class="promo-box"><p>Buy</p></div></body>', config)
        assert CUSTOM in doc.buffer.fragments[0].categories

    def test_custom_rule_with_sibling_combinator(self):
        config = ExtractionConfig(remove_selectors={"h2 + p"})
        doc = scan_document(
            "<body><h2>Sponsored</h2><p>Ad copy</p><p>Real text</p></body>", config,
        )
        heading, ad, text = doc.buffer.fragments
        assert CUSTOM not in heading.categories
        assert CUSTOM in ad.categories
        assert CUSTOM not in text.categories

    def test_custom_rule_with_negation(self):
        config = ExtractionConfig(remove_selectors={"aside:not(.related)"})
        doc = scan_document(
            '<body><aside class="related"><p>See also</p></aside>'
            "<aside><p>Newsletter</p></aside></body>",
            config,
        )
        related, newsletter = doc.buffer.fragments
        assert CUSTOM not in related.categories
        assert CUSTOM in newsletter.categories

    def test_inline_marker_written_into_markup(self):
        config = ExtractionConfig(remove_selectors={".note"})
        doc = scan_document('<body><p>Keep <span class="note">drop</span></p></body>', config)
        frag = doc.buffer.fragments[0]
        assert f'{REMOVE_MARKER}="custom"' in frag.markup
        assert frag.categories == frozenset()
        assert CUSTOM in frag.runs[1].marks

    def test_preserve_recorded(self):
        config = ExtractionConfig(preserve_selectors={".keep"})
        doc = scan_document('<body><nav class="keep"><p>Kept nav</p></nav></body>', config)
        frag = doc.buffer.fragments[0]
        assert frag.preserved
        assert EXACT in frag.categories
        assert PRESERVE_MARKER in frag.markup

    def test_scan_does_not_depend_on_removal_toggles(self):
        html = "<body><nav><p>Menu text</p></nav></body>"
        a = scan_document(html)
        b = scan_document(html, ExtractionConfig(remove_exact_selectors=False))
        assert a.buffer == b.buffer


# ---------------------------------------------------------------------------
# Metadata collection
# ---------------------------------------------------------------------------

class TestCollection:
    def test_article_metadata(self, article_html):
        collector = scan_document(article_html).collector
        assert collector.title == "Streaming Parsers in Practice | Tech Blog"
        assert collector.language == "en"
        assert collector.canonical_url == "/blog/streaming-parsers"
        assert collector.amp_url == "https://example.com/amp/blog/streaming-parsers"
        assert collector.favicon == "/favicon.ico"
        assert collector.first_time == "2024-01-15"
        assert collector.schemas[0]["@type"] == "BlogPosting"

    def test_meta_tags_in_document_order(self, article_html):
        tags = scan_document(article_html).collector.meta_tags
        assert tags[0].name == "description"
        assert tags[1].property == "og:title"

    def test_content_images_become_candidates(self, article_html):
        images = scan_document(article_html).collector.images
        assert images[0].src == "/images/pipeline.png"
        assert images[0].width == 800

    def test_first_head_title_wins(self):
        html = "<html><head><title>Real</title></head><body><p>x</p><title>Fake</title></body></html>"
        assert scan_document(html).collector.title == "Real"

    def test_malformed_structured_data_skipped(self, broken_jsonld_html):
        collector = scan_document(broken_jsonld_html).collector
        assert collector.schemas == []
        assert len(collector.skipped) == 1
        assert collector.skipped[0].startswith("ld+json")

    def test_graph_flattened(self, article_body_html):
        schemas = scan_document(article_body_html).collector.schemas
        assert [s["@type"] for s in schemas] == ["WebSite", "NewsArticle"]

    def test_amp_document(self):
        doc = scan_document("<html amp><body><p>x</p></body></html>")
        assert doc.collector.is_amp

    def test_base_href(self):
        doc = scan_document('<html><head><base href="https://cdn.example.com/"></head><body><p>x</p></body></html>')
        assert doc.collector.base_href == "https://cdn.example.com/"


class TestMetadataCollector:
    def test_meta_first_wins(self):
        c = MetadataCollector()
        c.add_meta({"property": "og:title", "content": "First"})
        c.add_meta({"property": "og:title", "content": "Second"})
        assert c.get("og:title") == "First"
        assert len(c.meta_tags) == 2

    def test_meta_keys_lowercased(self):
        c = MetadataCollector()
        c.add_meta({"name": "Description", "content": "  Text  "})
        assert c.get("description") == "Text"

    def test_charset_meta_not_a_tag(self):
        c = MetadataCollector()
        c.add_meta({"charset": "utf-8"})
        assert c.meta_tags == []
        assert c.get("charset") == "utf-8"

    def test_fc_frame_recorded(self):
        c = MetadataCollector()
        c.add_meta({"name": "fc:frame", "content": '{"version": "next"}'})
        assert c.mini_app_raw == '{"version": "next"}'

    def test_favicon_prefers_plain_icon(self):
        c = MetadataCollector()
        c.add_link({"rel": "apple-touch-icon", "href": "/touch.png"})
        c.add_link({"rel": "shortcut icon", "href": "/short.ico"})
        c.add_link({"rel": "icon", "href": "/icon.png"})
        assert c.favicon == "/icon.png"

    def test_get_skips_empty(self):
        c = MetadataCollector()
        c.add_meta({"name": "title", "content": ""})
        c.add_meta({"name": "twitter:title", "content": "Tw"})
        assert c.get("title", "twitter:title") == "Tw"

    def test_image_candidates_capped(self):
        c = MetadataCollector()
        for i in range(30):
            c.add_image({"src": f"/img{i}.png"})
        assert len(c.images) == 20

    def test_flatten_list_and_graph(self):
        raw = [{"@type": "A"}, {"@graph": [{"@type": "B"}, "junk"]}, 3]
        assert [n["@type"] for n in flatten_structured_data(raw)] == ["A", "B"]
