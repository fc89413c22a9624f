"""Unit tests for the two-attempt retry controller."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from declutter.errors import ExtractionError
from declutter.extractors.main_content import GenericExtractor
from declutter.extractors.scanner import scan_document
from declutter.items import ExtractedContent
from declutter.retry import AttemptState, RetryController, pick_title
from declutter.settings import ExtractionConfig


def _counting(strategy):
    """Wrap *strategy* so every ``extract`` call is recorded."""
    spy = MagicMock(wraps=strategy)
    spy.name = strategy.name
    return spy


class _FailsInitially:
    name = "fails_initially"

    def can_extract(self, url, schemas):
        return True

    def extract(self, document, rules):
        if rules.label == "initial":
            raise ExtractionError("nothing under strict rules")
        return ExtractedContent(content="<p>Relaxed content only.</p>")


class _ShrinksWhenRelaxed:
    name = "shrinks_when_relaxed"

    def can_extract(self, url, schemas):
        return True

    def extract(self, document, rules):
        if rules.label == "initial":
            return ExtractedContent(content="<p>The initial attempt found six words.</p>")
        return ExtractedContent(content="<p>Fewer words.</p>")


class _AlwaysFails:
    name = "always_fails"

    def can_extract(self, url, schemas):
        return True

    def extract(self, document, rules):
        raise ExtractionError("never any content")


class TestRetryController:
    def test_single_attempt_when_long_enough(self, article_html):
        doc = scan_document(article_html)
        strategy = _counting(GenericExtractor())
        controller = RetryController(strategy, doc)
        outcome = controller.run()
        assert strategy.extract.call_count == 1
        assert outcome.attempts == 1
        assert not outcome.retried
        assert controller.history == [AttemptState.INITIAL]
        assert controller.state is AttemptState.DONE

    def test_retry_on_short_content(self, short_article_html):
        doc = scan_document(short_article_html)
        strategy = _counting(GenericExtractor())
        controller = RetryController(strategy, doc)
        outcome = controller.run()
        assert strategy.extract.call_count == 2
        assert outcome.retried
        assert controller.history == [AttemptState.INITIAL, AttemptState.RELAXED]
        assert "Only five words live here." in outcome.attempt.standardized.text_content

    def test_threshold_is_configurable(self, short_article_html):
        doc = scan_document(short_article_html, ExtractionConfig(min_content_length=5))
        strategy = _counting(GenericExtractor())
        outcome = RetryController(strategy, doc).run()
        assert strategy.extract.call_count == 1
        assert outcome.attempt.state is AttemptState.INITIAL

    def test_never_more_than_two_attempts(self, short_article_html):
        doc = scan_document(short_article_html, ExtractionConfig(min_content_length=10_000))
        strategy = _counting(GenericExtractor())
        RetryController(strategy, doc).run()
        assert strategy.extract.call_count == 2

    def test_initial_error_recovered_by_relaxed(self, short_article_html):
        doc = scan_document(short_article_html)
        outcome = RetryController(_FailsInitially(), doc).run()
        assert outcome.retried
        assert outcome.attempt.standardized.text_content == "Relaxed content only."

    def test_both_attempts_failing_raises(self, short_article_html):
        doc = scan_document(short_article_html)
        with pytest.raises(ExtractionError) as excinfo:
            RetryController(_AlwaysFails(), doc).run()
        assert isinstance(excinfo.value.__cause__, ExtractionError)

    def test_relaxed_attempt_uses_relaxed_rules(self, short_article_html):
        doc = scan_document(short_article_html)
        strategy = _counting(GenericExtractor())
        RetryController(strategy, doc).run()
        labels = [call.args[1].label for call in strategy.extract.call_args_list]
        assert labels == ["initial", "relaxed"]

    def test_same_scan_reused(self, short_article_html):
        doc = scan_document(short_article_html)
        strategy = _counting(GenericExtractor())
        RetryController(strategy, doc).run()
        documents = {id(call.args[0]) for call in strategy.extract.call_args_list}
        assert documents == {id(doc)}

    def test_run_only_once(self, article_html):
        controller = RetryController(GenericExtractor(), scan_document(article_html))
        controller.run()
        with pytest.raises(RuntimeError):
            controller.run()

    def test_clutter_only_page_recovered(self):
        doc = scan_document(
            "<html><body><aside><p>The only text on this page sits in an aside.</p></aside>"
            "</body></html>",
        )
        outcome = RetryController(GenericExtractor(), doc).run()
        assert outcome.retried
        assert "only text" in outcome.attempt.standardized.text_content

    def test_relaxed_stays_in_initial_region(self):
        story = " ".join(f"story{i}" for i in range(75))
        comments = "".join(
            "<p>" + " ".join(f"reply{i}x{j}" for j in range(60)) + "</p>" for i in range(5)
        )
        doc = scan_document(
            f"<html><body><article><p>{story}</p><p>{story}</p></article>"
            f"<div id='comments'>{comments}</div></body></html>",
        )
        strategy = _counting(GenericExtractor())
        outcome = RetryController(strategy, doc).run()
        text = outcome.attempt.standardized.text_content
        assert outcome.attempts == 2
        assert "story0" in text
        assert "reply" not in text
        initial_rules, relaxed_rules = (c.args[1] for c in strategy.extract.call_args_list)
        assert initial_rules.scope is None
        assert relaxed_rules.scope is not None

    def test_relaxed_with_fewer_words_discarded(self, short_article_html):
        doc = scan_document(short_article_html)
        controller = RetryController(_ShrinksWhenRelaxed(), doc)
        outcome = controller.run()
        assert outcome.attempts == 2
        assert not outcome.retried
        assert outcome.attempt.standardized.word_count == 6
        assert controller.history == [AttemptState.INITIAL, AttemptState.RELAXED]


class TestPickTitle:
    def test_strategy_title_first(self):
        extracted = ExtractedContent(title="Strategy", content="<p>x</p>")
        assert pick_title(extracted, "Page") == "Strategy"

    def test_page_title_next(self):
        extracted = ExtractedContent(content="<p>x</p>", variables={"first_heading": "H1"})
        assert pick_title(extracted, "Page") == "Page"

    def test_first_heading_last(self):
        extracted = ExtractedContent(content="<p>x</p>", variables={"first_heading": "H1"})
        assert pick_title(extracted, None) == "H1"

    def test_empty(self):
        assert pick_title(ExtractedContent(content="<p>x</p>"), None) == ""
