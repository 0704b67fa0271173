from __future__ import annotations

from urllib.parse import urljoin, urlsplit

from .errors import InvalidTargetError

FETCHABLE_SCHEMES = ("http", "https")


def is_data_uri(value: str) -> bool:
    return value.strip().lower().startswith("data:")


def is_fragment(value: str) -> bool:
    return value.strip().startswith("#")


def is_fetchable(url: str) -> bool:
    return urlsplit(url).scheme.lower() in FETCHABLE_SCHEMES


def resolve(base: str, reference: str) -> str:
    """Resolve ``reference`` against ``base``; raises ValueError if either is malformed."""
    absolute = urljoin(base, reference.strip())
    urlsplit(absolute).port  # raises on a bad port or IPv6 literal
    return absolute


def parse_target(target: str) -> str:
    """Validate an inbound target URL and return it stripped."""
    target = target.strip()
    try:
        parts = urlsplit(target)
        parts.port
    except ValueError as e:
        raise InvalidTargetError(f"malformed url {target!r}: {e}") from e
    if parts.scheme.lower() not in FETCHABLE_SCHEMES:
        raise InvalidTargetError(f"unsupported scheme in {target!r}")
    if not parts.hostname:
        raise InvalidTargetError(f"missing host in {target!r}")
    return target
