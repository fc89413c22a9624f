"""Static pattern tables: removal selectors and class/id token classifiers.

Everything here is compiled once at import time and never mutated.
"""

from __future__ import annotations

import re

from declutter.extractors.selectors import SelectorGroup, compile_selectors

# ---------------------------------------------------------------------------
# Exact removal rules (structural clutter)
# ---------------------------------------------------------------------------

EXACT_SELECTORS: tuple[str, ...] = (
    "nav",
    "header",
    "footer",
    "aside",
    "menu",
    "dialog",
    ".navigation",
    ".sidebar",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    '[role="complementary"]',
    '[role="dialog"]',
    '[role="alert"]',
    "[hidden]",
    '[aria-hidden="true"]',
    '[itemprop="comment"]',
    "#comments",
    "#disqus_thread",
)

EXACT_RULES: SelectorGroup = compile_selectors(EXACT_SELECTORS)

# ---------------------------------------------------------------------------
# Partial removal rules (token matches on identifying attributes)
# ---------------------------------------------------------------------------

# Attributes whose values are tested against the partial clutter pattern
PARTIAL_TEST_ATTRIBUTES: tuple[str, ...] = (
    "class",
    "id",
    "data-component",
    "data-testid",
    "data-test-id",
    "data-qa",
    "data-cy",
)

_PARTIAL_TOKENS: tuple[str, ...] = (
    r"ads?",
    r"adsense",
    r"ad-(?:slot|unit|wrapper|container)",
    r"advert\w*",
    r"banner",
    r"breadcrumbs?",
    r"comments?",
    r"comment-\w+",
    r"cookie\w*",
    r"consent",
    r"disqus",
    r"masthead",
    r"menu",
    r"modal",
    r"newsletter",
    r"outbrain",
    r"paywall",
    r"popup",
    r"promo\w*",
    r"related",
    r"related-\w+",
    r"share",
    r"sharing",
    r"share-\w+",
    r"sidebar",
    r"social",
    r"sponsor\w*",
    r"subscribe",
    r"subscription",
    r"taboola",
    r"toolbar",
    r"widget",
)

PARTIAL_RE: re.Pattern[str] = re.compile(
    r"(?:^|[^a-z0-9])(?:" + "|".join(_PARTIAL_TOKENS) + r")(?=$|[^a-z0-9])",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Scoring classifiers (class/id tokens)
# ---------------------------------------------------------------------------

POSITIVE_RE: re.Pattern[str] = re.compile(
    r"article|body|content|entry|hentry|h-entry|main|page|post|text|blog|story|prose",
    re.IGNORECASE,
)

NEGATIVE_RE: re.Pattern[str] = re.compile(
    r"combx|comment|contact|foot|footnote|masthead|media|meta|outbrain|promo|related|"
    r"scroll|shoutbox|sidebar|skyscraper|sponsor|shopping|tags|tool|widget|"
    r"breadcrumb|crumb|pagination|pager|popup|modal|overlay|cookie|consent|"
    r"newsletter|subscribe|signup|\bnav\b|\bmenu\b|byline|author|dateline",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

TRACKING_IMAGE_RE: re.Pattern[str] = re.compile(
    r"pixel|tracking|tracker|analytics|beacon|1x1|spacer", re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Content containers
# ---------------------------------------------------------------------------

CONTAINER_SELECTORS: tuple[str, ...] = (
    "article",
    "main",
    '[role="main"]',
    '[itemprop="articleBody"]',
)

CONTAINER_RULES: SelectorGroup = compile_selectors(CONTAINER_SELECTORS)


def matches_partial(attrs: dict[str, str]) -> bool:
    """True when any identifying attribute carries a clutter token."""
    for name in PARTIAL_TEST_ATTRIBUTES:
        value = attrs.get(name)
        if value and PARTIAL_RE.search(value):
            return True
    return False
