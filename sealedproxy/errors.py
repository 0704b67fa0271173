"""Exception hierarchy for the rewrite pipeline."""

from __future__ import annotations

from typing import Optional


class ProxyError(Exception):
    """Base class for every failure raised by sealedproxy."""


class InvalidTargetError(ProxyError, ValueError):
    """The requested URL is not an absolute http(s) URL."""


class FetchError(ProxyError):
    def __init__(self, url: str, message: str, status: Optional[int] = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status = status


class DocumentParseError(ProxyError):
    """The top-level document could not be turned into a parse tree."""


class SignatureError(ProxyError):
    """A presented token does not match the URL it claims to sign."""
