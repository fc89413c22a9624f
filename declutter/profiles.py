"""YAML-based site profiles.

A profile file holds a ``default`` mapping plus per-domain overrides; the
longest matching domain suffix wins::

    default:
      min_content_length: 150
    domains:
      example.com:
        content_selectors: [".story-body"]
        remove_selectors: [".inline-promo"]
      blog.example.com:
        preserve_selectors: [".pull-quote"]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from declutter.settings import ExtractionConfig


def profile_options(path: str | Path, url: str | None) -> dict[str, Any]:
    """Load the YAML profile and return the merged option mapping for *url*."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    default = data.get("default", {}) if isinstance(data, dict) else {}
    domains = data.get("domains", {}) if isinstance(data, dict) else {}

    netloc = (urlparse(url).hostname or "").lower() if url else ""
    best_key = ""
    best_cfg: dict[str, Any] = {}
    if netloc and isinstance(domains, dict):
        for key, cfg in domains.items():
            if not isinstance(key, str) or not isinstance(cfg, dict):
                continue
            key_lower = key.lower()
            if (netloc == key_lower or netloc.endswith("." + key_lower)) and (
                len(key_lower) > len(best_key)
            ):
                best_key = key_lower
                best_cfg = cfg

    merged: dict[str, Any] = {}
    if isinstance(default, dict):
        merged.update(default)
    merged.update(best_cfg)
    return merged


def load_profile(path: str | Path, url: str | None, **overrides: Any) -> ExtractionConfig:
    """Build an :class:`ExtractionConfig` from the profile entry for *url*.

    Keyword *overrides* are applied last.  Unknown keys are rejected.
    """
    options = profile_options(path, url)
    options.update(overrides)
    return ExtractionConfig.model_validate(options)
