"""Keyed signatures for rewritten references.

Every reference the rewriter emits points back at one of our own endpoints
and carries a token bound to the absolute URL it stands for. The endpoints
recompute the token before fetching anything, so the proxy only ever fetches
URLs that appeared in a page it already rewrote.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
from typing import Union
from urllib.parse import urldefrag, urlencode

PROXY_PATH = "/proxy"
IMAGE_PREFIX = "/image/"


class RewriteTarget(enum.Enum):
    PAGE = "page"
    IMAGE = "image"
    STYLESHEET_RESOURCE = "stylesheet-resource"


class LinkSigner:
    def __init__(self, secret: Union[str, bytes]):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        self._key = secret

    def sign(self, url: str) -> str:
        """Return the hex HMAC-SHA256 of ``url``."""
        return hmac.new(self._key, url.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, url: str, token: str) -> bool:
        if not token:
            return False
        return hmac.compare_digest(self.sign(url), token)

    def link_for(self, url: str, target: RewriteTarget) -> str:
        if target is RewriteTarget.PAGE:
            return self.proxy_link(url)
        return self.image_link(url)

    def proxy_link(self, url: str) -> str:
        # e.g. /proxy?key=3f9a...&url=https%3A%2F%2Fexample.com%2F
        return f"{PROXY_PATH}?{urlencode({'key': self.sign(url), 'url': url})}"

    def image_link(self, url: str) -> str:
        """Build the /image/ path for ``url`` so the endpoint sees exactly what was signed.

        Browsers never send the fragment, and the server decodes percent escapes in
        the path before routing, so the fragment is dropped and `%` escaped in the
        path part. The query string reaches the endpoint undecoded.
        """
        url = urldefrag(url).url
        path, sep, query = url.partition("?")
        return f"{IMAGE_PREFIX},s{self.sign(url)}/{path.replace('%', '%25')}{sep}{query}"
