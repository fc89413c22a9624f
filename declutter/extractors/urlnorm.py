"""Source-URL validation and small URL helpers."""

from __future__ import annotations

from urllib.parse import urljoin, urlparse

from declutter.errors import InvalidInput

_ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https"})
_MOBILE_PREFIXES: tuple[str, ...] = ("m.", "mobile.", "amp.")


def normalize_source_url(url: str | None) -> str | None:
    """Validate the caller-supplied page URL.

    Returns None for a missing/blank URL and the stripped URL otherwise.
    Raises :class:`~declutter.errors.InvalidInput` for anything that is not an
    absolute http(s) URL with a host.
    """
    if url is None:
        return None
    if not isinstance(url, str):
        raise InvalidInput(f"source URL must be a string, got {type(url).__name__}")
    url = url.strip()
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise InvalidInput(f"malformed source URL: {exc}", url=url) from exc
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        raise InvalidInput(f"unsupported URL scheme {parsed.scheme!r}", url=url)
    if not parsed.hostname:
        raise InvalidInput("source URL has no host", url=url)
    return url


def extract_domain(url: str | None) -> str | None:
    """Return the lowercased host of *url* without a leading ``www.``."""
    if not url:
        return None
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return None
    host = host.lower().removeprefix("www.")
    return host or None


def is_mobile_host(url: str | None) -> bool:
    domain = extract_domain(url)
    return bool(domain) and domain.startswith(_MOBILE_PREFIXES)


def resolve_url(base: str | None, value: str | None) -> str | None:
    """Make *value* absolute against *base* (returned unchanged without a base)."""
    if not value:
        return None
    value = value.strip()
    if not base or value.startswith("data:"):
        return value
    return urljoin(base, value)


def _is_absolute(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme.lower() in _ALLOWED_SCHEMES and bool(parsed.netloc)


def document_base(url: str | None, base_href: str | None) -> str | None:
    """The base URL relative references resolve against (``<base href>`` wins).

    Without a source URL a relative ``<base href>`` has nothing to resolve
    against and is ignored.
    """
    if base_href:
        if url:
            return urljoin(url, base_href)
        if _is_absolute(base_href):
            return base_href
    return url
