"""Defaults and the per-call extraction configuration.

Module-level constants hold the tunable defaults; :class:`ExtractionConfig`
is the immutable record built once per :func:`declutter.extract` call.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field, field_validator

from declutter.extractors.selectors import compile_selector

# ---------------------------------------------------------------------------
# Smart retry
# ---------------------------------------------------------------------------
# Initial attempts yielding fewer words than this are re-run with relaxed rules.
MIN_CONTENT_LENGTH = 200

# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------
WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 200

# Images smaller than this (either side, in px) are treated as decoration.
MIN_IMAGE_SIZE = 50

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


# ---------------------------------------------------------------------------
# Per-call configuration
# ---------------------------------------------------------------------------

class ExtractionConfig(BaseModel):
    """Options recognised by the extraction pipeline.

    Selector sets accept any iterable of strings (or a single string) and are
    validated with soupsieve at construction time.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    include_images: bool = True
    include_links: bool = True
    min_content_length: int = Field(default=MIN_CONTENT_LENGTH, ge=0)
    max_content_length: int | None = Field(default=None, ge=1)
    debug: bool = False
    remove_exact_selectors: bool = True
    remove_partial_selectors: bool = True
    remove_selectors: frozenset[str] = frozenset()
    preserve_selectors: frozenset[str] = frozenset()
    content_selectors: frozenset[str] = frozenset()

    markdown: bool = False
    words_per_minute: int = Field(default=WORDS_PER_MINUTE, ge=1)
    detect_language: bool = True

    @field_validator(
        "remove_selectors", "preserve_selectors", "content_selectors", mode="before",
    )
    @classmethod
    def compile_check(cls, v: Any) -> Any:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, Iterable):
            return v
        cleaned = frozenset(s.strip() for s in v if isinstance(s, str) and s.strip())
        for selector in cleaned:
            compile_selector(selector)  # raises ValueError on invalid syntax
        return cleaned

    @classmethod
    def coerce(cls, config: ExtractionConfig | dict[str, Any] | None) -> ExtractionConfig:
        """Accept a config, a plain mapping of options, or None (defaults)."""
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        return cls.model_validate(config)
