"""Language detection fallback for pages that do not declare a language."""

from __future__ import annotations

import logging
import threading

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

logger = logging.getLogger(__name__)

# Seeded once so repeated calls on the same text agree
DetectorFactory.seed = 0

# langdetect loads its language profiles lazily into a module global on the
# first call; concurrent first calls can see a half-loaded factory.
_detect_lock = threading.Lock()

_MIN_SAMPLE_CHARS = 40
_MAX_SAMPLE_CHARS = 5000


def detect_language(text: str) -> str | None:
    if not text:
        return None
    sample = text.strip()[:_MAX_SAMPLE_CHARS]
    if len(sample) < _MIN_SAMPLE_CHARS:
        return None
    try:
        with _detect_lock:
            code = detect(sample)
    except LangDetectException as exc:
        logger.debug("Language detection failed: %s", exc)
        return None
    return code or None
