"""Anonymous, bounded-timeout retrieval of remote resources.

We don't want a transparent reverse proxy here: nothing about the visitor
(address, cookies, headers) is passed upstream.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from charset_normalizer import from_bytes

from .config import DEFAULT_FETCH_TIMEOUT, DEFAULT_MAX_BYTES, USER_AGENT
from .errors import FetchError

logger = logging.getLogger(__name__)

ACCEPT = "text/html,application/xhtml+xml,text/css,image/*;q=0.9,*/*;q=0.8"


@dataclass
class FetchedResource:
    url: str
    final_url: str
    status: int
    content_type: str
    content: bytes

    @property
    def charset(self) -> Optional[str]:
        match = re.search(r"charset=([^\s;]+)", self.content_type or "", re.I)
        return match.group(1).strip(" \"'") if match else None

    @property
    def text(self) -> str:
        """Decode the body using the declared charset, else charset-normalizer's best guess."""
        if self.charset:
            try:
                return self.content.decode(self.charset, errors="replace")
            except LookupError:
                pass
        result = from_bytes(self.content).best()
        if result is None:
            return self.content.decode("utf-8", errors="replace")
        return str(result)


class RemoteFetcher:
    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        user_agent: str = USER_AGENT,
        max_bytes: int = DEFAULT_MAX_BYTES,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_bytes = max_bytes
        self.session_factory = session_factory

    def fetch(self, url: str) -> FetchedResource:
        headers = {"User-Agent": self.user_agent, "Accept": ACCEPT}
        # a fresh session per fetch: no cookie jar shared between requests
        with self.session_factory() as session:
            # no proxies, netrc credentials or CA overrides from the server environment
            session.trust_env = False
            try:
                response = session.get(url, headers=headers, timeout=self.timeout, stream=True)
            except requests.exceptions.RequestException as e:
                raise FetchError(url, f"request failed: {e}") from e
            return self._read_response(url, response)

    def _read_response(self, url: str, response: requests.Response) -> FetchedResource:
        with response:
            if not 200 <= response.status_code < 300:
                raise FetchError(url, f"upstream returned {response.status_code}", status=response.status_code)
            try:
                content = self._read_limited(response)
            except requests.exceptions.RequestException as e:
                raise FetchError(url, f"reading body failed: {e}", status=response.status_code) from e
            if content is None:
                raise FetchError(url, f"body exceeds {self.max_bytes} bytes", status=response.status_code)

            logger.debug("fetched %s (%d bytes)", url, len(content))
            return FetchedResource(
                url=url,
                final_url=response.url or url,
                status=response.status_code,
                content_type=response.headers.get("Content-Type", ""),
                content=content,
            )

    def _read_limited(self, response: requests.Response) -> Optional[bytes]:
        chunks = []
        size = 0
        for chunk in response.iter_content(chunk_size=65536):
            size += len(chunk)
            if size > self.max_bytes:
                return None
            chunks.append(chunk)
        return b"".join(chunks)
