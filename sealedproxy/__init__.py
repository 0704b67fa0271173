"""Sanitizing, link-signing page proxy."""

from .config import ProxySettings
from .css import CSSRewriter, scan_urls
from .dom import DocumentRewriter, RewriteReport
from .errors import (
    DocumentParseError,
    FetchError,
    InvalidTargetError,
    ProxyError,
    SignatureError,
)
from .fetcher import FetchedResource, RemoteFetcher
from .handler import ProxyHandler, ProxyResult
from .signer import LinkSigner, RewriteTarget

__all__ = [
    "CSSRewriter",
    "DocumentParseError",
    "DocumentRewriter",
    "FetchError",
    "FetchedResource",
    "InvalidTargetError",
    "LinkSigner",
    "ProxyError",
    "ProxyHandler",
    "ProxyResult",
    "ProxySettings",
    "RemoteFetcher",
    "RewriteReport",
    "RewriteTarget",
    "SignatureError",
    "scan_urls",
]
