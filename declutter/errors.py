"""Exception types raised by the extraction pipeline.

Every public error derives from :class:`DeclutterError`, so callers that only
care about "extraction did not produce a response" can catch one class::

    from declutter import DeclutterError, extract

    try:
        response = extract(html, url=url)
    except DeclutterError as exc:
        print(f"skipped {exc.url}: {exc}")
"""

from __future__ import annotations


class DeclutterError(RuntimeError):
    """Base class for every error surfaced by :func:`declutter.extract`."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ParseError(DeclutterError):
    """The input has no recognisable element structure (empty, binary garbage)."""


class ExtractionError(DeclutterError):
    """No viable content region could be located.

    Strategies raise it to the retry controller; the pipeline raises it to the
    caller only once both the initial and the relaxed attempt have failed.
    """


class InvalidInput(DeclutterError, ValueError):
    """A source URL was supplied but could not be used (wrong scheme, no host)."""
