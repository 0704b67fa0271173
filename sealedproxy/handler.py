"""Fetch one page and hand back its sanitized, rewritten markup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import ProxySettings
from .css import CSSRewriter
from .dom import DocumentRewriter, RewriteReport
from .errors import SignatureError
from .fetcher import FetchedResource, RemoteFetcher
from .signer import LinkSigner
from .urls import parse_target

logger = logging.getLogger(__name__)


@dataclass
class ProxyResult:
    html: str = ""
    base_url: Optional[str] = None
    report: RewriteReport = field(default_factory=RewriteReport)

    @property
    def is_empty(self) -> bool:
        return self.base_url is None


class ProxyHandler:
    def __init__(self, signer: LinkSigner, fetcher: RemoteFetcher, rewriter: Optional[DocumentRewriter] = None):
        self.signer = signer
        self.fetcher = fetcher
        self.rewriter = rewriter or DocumentRewriter(signer, fetcher, CSSRewriter(signer))

    @classmethod
    def from_settings(cls, settings: ProxySettings) -> "ProxyHandler":
        signer = LinkSigner(settings.secret)
        fetcher = RemoteFetcher(
            timeout=settings.fetch_timeout,
            user_agent=settings.user_agent,
            max_bytes=settings.max_bytes,
        )
        return cls(signer, fetcher)

    def handle(self, target: Optional[str]) -> ProxyResult:
        """Fetch ``target`` and return its rewritten markup.

        A missing target yields an empty result. Failing to fetch or parse the
        page itself raises (``InvalidTargetError``, ``FetchError``,
        ``DocumentParseError``); failures on individual references inside the
        page only show up in the result's report.
        """
        if not target or not target.strip():
            return ProxyResult()

        url = parse_target(target)
        resource = self.fetcher.fetch(url)
        base = resource.final_url or url
        if base != url:
            logger.info("followed redirect %s -> %s", url, base)

        html, report = self.rewriter.process(base, resource.content, resource.charset)
        return ProxyResult(html=html, base_url=base, report=report)

    def handle_signed(self, target: Optional[str], key: Optional[str]) -> ProxyResult:
        if not target or not target.strip():
            return ProxyResult()
        if not self.signer.verify(target, key or ""):
            raise SignatureError(f"bad signature for {target!r}")
        return self.handle(target)

    def relay(self, url: str, token: str) -> FetchedResource:
        """Fetch a single signed resource for the image endpoint."""
        if not self.signer.verify(url, token):
            raise SignatureError(f"bad signature for {url!r}")
        return self.fetcher.fetch(parse_target(url))
