"""Smart retry: at most two extraction attempts per call.

::

    INITIAL ──(words < min_content_length, or ExtractionError)──▶ RELAXED ──▶ DONE
       └──────────────────────(enough words)──────────────────────────────▶ DONE

The initial attempt runs with every configured removal category and the
negative class/id patterns active; the relaxed attempt re-runs the *same*
strategy over the *same* scan with all of them disabled.  When the initial
attempt settled on a region, the relaxed one stays inside it and only gets
back what the removal rules took out there; it never trades the article for
another part of the page.  The relaxed result is kept only when it holds at
least as many words as the initial one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from declutter.errors import ExtractionError
from declutter.extractors.scoring import ExtractionRules
from declutter.extractors.standardize import StandardizedContent, standardize_content
from declutter.extractors.urlnorm import document_base
from declutter.items import ExtractedContent

if TYPE_CHECKING:
    from declutter.extractors.registry import Extractor
    from declutter.extractors.scanner import ScannedDocument

logger = logging.getLogger(__name__)


class AttemptState(StrEnum):
    INITIAL = "initial"
    RELAXED = "relaxed"
    DONE = "done"


@dataclass(frozen=True)
class Attempt:
    state: AttemptState
    extracted: ExtractedContent
    standardized: StandardizedContent


@dataclass(frozen=True)
class RetryOutcome:
    attempt: Attempt
    attempts: int

    @property
    def retried(self) -> bool:
        """True when the relaxed attempt produced the final content."""
        return self.attempt.state is AttemptState.RELAXED


def pick_title(extracted: ExtractedContent, page_title: str | None) -> str:
    """Strategy title, then the resolved page title, then the region's first <h1>."""
    heading = extracted.variables.get("first_heading")
    return extracted.title or page_title or (heading if isinstance(heading, str) else "") or ""


def _region_of(attempt: Attempt | None) -> int | None:
    """Group id the attempt's content came from, when the strategy reports one."""
    if attempt is None:
        return None
    group = attempt.extracted.variables.get("group")
    return group if isinstance(group, int) and not isinstance(group, bool) else None


@dataclass
class RetryController:
    strategy: Extractor
    document: ScannedDocument
    page_title: str | None = None
    state: AttemptState = AttemptState.INITIAL
    history: list[AttemptState] = field(default_factory=list)

    def _attempt(self, rules: ExtractionRules) -> Attempt:
        document = self.document
        self.history.append(self.state)
        extracted = self.strategy.extract(document, rules)
        standardized = standardize_content(
            extracted.content,
            title=pick_title(extracted, self.page_title),
            base_url=document_base(document.url, document.collector.base_href),
            config=document.config,
        )
        if not standardized.content:
            raise ExtractionError("no content left after standardization", url=document.url)
        return Attempt(self.state, extracted, standardized)

    def _try(self, rules: ExtractionRules) -> tuple[Attempt | None, ExtractionError | None]:
        try:
            return self._attempt(rules), None
        except ExtractionError as exc:
            logger.debug("%s attempt with %s failed: %s", self.state, self.strategy.name, exc)
            return None, exc

    def run(self) -> RetryOutcome:
        if self.state is not AttemptState.INITIAL:
            raise RuntimeError("RetryController.run() may only be called once")
        config = self.document.config
        log = logger.info if config.debug else logger.debug

        initial, _ = self._try(ExtractionRules.initial(config))
        if initial is not None and initial.standardized.word_count >= config.min_content_length:
            self.state = AttemptState.DONE
            return RetryOutcome(initial, attempts=1)

        log(
            "Retrying %s extraction with relaxed rules (%s)",
            self.strategy.name,
            "no content" if initial is None
            else f"{initial.standardized.word_count} < {config.min_content_length} words",
        )
        self.state = AttemptState.RELAXED
        relaxed, error = self._try(ExtractionRules.relaxed(_region_of(initial)))
        self.state = AttemptState.DONE

        if relaxed is not None and (
            initial is None
            or relaxed.standardized.word_count >= initial.standardized.word_count
        ):
            return RetryOutcome(relaxed, attempts=2)
        if initial is not None:
            return RetryOutcome(initial, attempts=2)
        raise ExtractionError(
            "no content found", url=self.document.url,
        ) from error
