"""Content-density scoring over the buffered fragments.

Each fragment gets::

    score = α·words − β·link_density·words − γ·[words < low] + δ·pattern_bonus

and each group aggregates the fragments beneath it as
``factor · positive_sum − negative_sum``, where a fragment credits its parent
in full and more distant ancestors with a decaying share.  The decay makes
the smallest grouping that holds the prose win over the page-wide wrappers
around it.  The group with the highest aggregate is the main content region;
ties go to the group opened first.  The winner is then widened to its parent
while the parent only adds substantial, prose-like content, so an article
split into sections is not cut down to its longest section.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from declutter.extractors.patterns import NEGATIVE_RE, POSITIVE_RE
from declutter.extractors.scanner import (
    CUSTOM,
    EXACT,
    PARTIAL,
    ContentBuffer,
    Fragment,
    Group,
)
from declutter.settings import ExtractionConfig

logger = logging.getLogger(__name__)

# Fragment kinds that read as prose and are penalized when very short
_PROSE_KINDS: frozenset[str] = frozenset({"paragraph", "text", "list", "quote", "table"})
_MEDIA_KINDS: frozenset[str] = frozenset({"image", "media"})


@dataclass(frozen=True)
class ScoringWeights:
    alpha: float = 1.0       # per word
    beta: float = 1.0        # link density × words
    gamma: float = 3.0       # short-fragment penalty
    low_threshold: int = 10  # words
    delta: float = 10.0      # class/id pattern bonus
    container_boost: float = 0.5
    token_boost: float = 0.25
    min_factor: float = 0.1
    viability_floor: float = 0.0
    # Widening to the parent: the fragments it adds must be worth this share
    # of the current region (and at least low_threshold), and not mostly links.
    sibling_ratio: float = 0.1
    max_sibling_link_density: float = 0.25
    # Share of a fragment's score credited to its parent, grandparent, ...;
    # the last value applies to every ancestor further up.
    level_decay: tuple[float, ...] = (1.0, 0.5, 0.3, 0.2, 0.1)

    def decay(self, level: int) -> float:
        return self.level_decay[min(level, len(self.level_decay) - 1)]


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ExtractionRules:
    """What one extraction attempt is allowed to remove."""

    label: str
    categories: frozenset[str]
    negative_patterns: bool
    # Group id the region is pinned to; None lets scoring choose.
    scope: int | None = None

    @classmethod
    def initial(cls, config: ExtractionConfig) -> ExtractionRules:
        categories = {CUSTOM}
        if config.remove_exact_selectors:
            categories.add(EXACT)
        if config.remove_partial_selectors:
            categories.add(PARTIAL)
        return cls("initial", frozenset(categories), negative_patterns=True)

    @classmethod
    def relaxed(cls, scope: int | None = None) -> ExtractionRules:
        return cls("relaxed", frozenset(), negative_patterns=False, scope=scope)

    def excludes(self, fragment: Fragment) -> bool:
        """True when *fragment* is removed under these rules."""
        return bool(fragment.categories & self.categories) and not fragment.preserved

    def excludes_group(self, group: Group) -> bool:
        return bool(group.categories & self.categories) and not group.preserved


@dataclass(frozen=True)
class RegionChoice:
    group: Group | None
    score: float
    fragments: tuple[Fragment, ...]


def _pattern_bonus(tokens: str, rules: ExtractionRules) -> int:
    if not tokens:
        return 0
    bonus = 0
    if POSITIVE_RE.search(tokens):
        bonus += 1
    if rules.negative_patterns and NEGATIVE_RE.search(tokens):
        bonus -= 1
    return bonus


def fragment_stats(fragment: Fragment, rules: ExtractionRules) -> tuple[int, float]:
    """Return ``(word_count, link_density)`` over the text that survives *rules*."""
    words = 0
    chars = 0
    link_chars = 0
    for run in fragment.runs:
        if run.marks & rules.categories and not run.preserved:
            continue
        words += len(run.text.split())
        size = len(run.text.strip())
        chars += size
        if run.in_link:
            link_chars += size
    density = link_chars / chars if chars else 0.0
    return words, density


def score_fragment(
    fragment: Fragment,
    rules: ExtractionRules,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    if fragment.kind in _MEDIA_KINDS:
        return 0.0
    words, density = fragment_stats(fragment, rules)
    score = weights.alpha * words - weights.beta * density * words
    if fragment.kind in _PROSE_KINDS and words < weights.low_threshold:
        score -= weights.gamma
    score += weights.delta * _pattern_bonus(fragment.tokens, rules)
    return score


def group_factor(group: Group, rules: ExtractionRules, weights: ScoringWeights) -> float:
    factor = 1.0
    if group.container:
        factor += weights.container_boost
    if group.tokens:
        if POSITIVE_RE.search(group.tokens):
            factor += weights.token_boost
        if rules.negative_patterns and NEGATIVE_RE.search(group.tokens):
            factor -= weights.token_boost
    return max(factor, weights.min_factor)


def _link_density(fragments: list[Fragment], rules: ExtractionRules) -> float:
    words = 0
    linked = 0.0
    for fragment in fragments:
        count, density = fragment_stats(fragment, rules)
        words += count
        linked += count * density
    return linked / words if words else 0.0


def _widen(
    group: Group,
    buffer: ContentBuffer,
    kept: list[Fragment],
    scores: dict[int, float],
    rules: ExtractionRules,
    weights: ScoringWeights,
) -> Group:
    """Climb from *group* to its parent while the parent adds real content.

    Stops at a content container, below ``<body>``, at a parent excluded under
    *rules*, or when the added fragments are too small or too link-heavy.
    """
    current = group
    while current.parent is not None and not current.container:
        parent = buffer.groups[current.parent]
        if parent.tag == "body" or rules.excludes_group(parent):
            break
        inside = [f for f in kept if current.id in f.ancestors]
        added = [
            f for f in kept if parent.id in f.ancestors and current.id not in f.ancestors
        ]
        held = sum(max(scores[f.index], 0.0) for f in inside)
        gain = sum(scores[f.index] for f in added)
        if gain < max(weights.low_threshold, weights.sibling_ratio * held):
            break
        if _link_density(added, rules) > weights.max_sibling_link_density:
            break
        logger.debug(
            "Widened region from <%s> group %d to <%s> group %d (+%.1f)",
            current.tag, current.id, parent.tag, parent.id, gain,
        )
        current = parent
    return current


def select_region(
    buffer: ContentBuffer,
    rules: ExtractionRules,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> RegionChoice:
    """Pick the group whose fragments add up to the highest aggregate score.

    Fragments excluded under *rules* do not contribute.  When ``rules.scope``
    is set the region is that group, whatever its rank.  Returns a choice with
    ``group=None`` when nothing clears the viability floor.
    """
    positive: dict[int, float] = {}
    negative: dict[int, float] = {}
    scores: dict[int, float] = {}
    kept: list[Fragment] = []
    for fragment in buffer.fragments:
        if rules.excludes(fragment):
            continue
        kept.append(fragment)
        score = score_fragment(fragment, rules, weights)
        scores[fragment.index] = score
        bucket = positive if score >= 0 else negative
        for level, gid in enumerate(reversed(fragment.ancestors)):
            bucket[gid] = bucket.get(gid, 0.0) + abs(score) * weights.decay(level)

    aggregates: dict[int, float] = {}
    for group in buffer.groups:
        if group.id not in positive or rules.excludes_group(group):
            continue
        aggregates[group.id] = (
            group_factor(group, rules, weights) * positive[group.id]
            - negative.get(group.id, 0.0)
        )

    best: Group | None = None
    if rules.scope is not None:
        if aggregates.get(rules.scope, weights.viability_floor) > weights.viability_floor:
            best = buffer.groups[rules.scope]
    else:
        best_score = weights.viability_floor
        for group in buffer.groups:
            aggregate = aggregates.get(group.id)
            # strict comparison keeps the earliest group on ties
            if aggregate is not None and aggregate > best_score:
                best, best_score = group, aggregate
        if best is not None:
            best = _widen(best, buffer, kept, scores, rules, weights)

    if best is None:
        logger.debug("No group cleared the viability floor (%s rules)", rules.label)
        return RegionChoice(None, 0.0, ())

    fragments = tuple(f for f in kept if best.id in f.ancestors)
    score = aggregates[best.id]
    logger.debug(
        "Selected <%s> group %d (%s) score=%.1f with %d fragments (%s rules)",
        best.tag, best.id, best.tokens or "-", score, len(fragments), rules.label,
    )
    return RegionChoice(best, score, fragments)
