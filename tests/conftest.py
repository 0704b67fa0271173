import pytest

from sealedproxy import (
    CSSRewriter,
    DocumentRewriter,
    FetchedResource,
    FetchError,
    LinkSigner,
    ProxyHandler,
)

SECRET = "test-secret"
BASE = "https://ex.com/a/"


class FakeFetcher:
    """In-memory stand-in for RemoteFetcher; unknown URLs fail like a 404."""

    def __init__(self):
        self.resources = {}
        self.calls = []

    def add(self, url, body, content_type="text/html; charset=utf-8", final_url=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.resources[url] = FetchedResource(
            url=url,
            final_url=final_url or url,
            status=200,
            content_type=content_type,
            content=body,
        )

    def fetch(self, url):
        self.calls.append(url)
        if url not in self.resources:
            raise FetchError(url, "upstream returned 404", status=404)
        return self.resources[url]


@pytest.fixture
def signer():
    return LinkSigner(SECRET)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def css_rewriter(signer):
    return CSSRewriter(signer)


@pytest.fixture
def rewriter(signer, fetcher, css_rewriter):
    return DocumentRewriter(signer, fetcher, css_rewriter)


@pytest.fixture
def handler(signer, fetcher, rewriter):
    return ProxyHandler(signer, fetcher, rewriter)
