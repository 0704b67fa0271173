from urllib.parse import quote

import pytest
from bs4 import BeautifulSoup

import main
from sealedproxy import ProxyHandler


@pytest.fixture
def client(monkeypatch, signer, fetcher):
    monkeypatch.setattr(main, "proxy", ProxyHandler(signer, fetcher))
    main.app.config["TESTING"] = True
    return main.app.test_client()


def test_home_page(client) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert b"Sealed Proxy" in response.data


def test_proxy_without_url_is_empty_page(client) -> None:
    response = client.get("/proxy")

    assert response.status_code == 200
    assert b"<body></body>" in response.data
    assert response.headers[main.SKIPPED_HEADER] == "0"


def test_proxy_rejects_bad_key(client, fetcher) -> None:
    url = "https://ex.com/"
    fetcher.add(url, "<p>secret</p>")

    response = client.get(f"/proxy?key=nope&url={quote(url, safe='')}")

    assert response.status_code == 403
    assert b"secret" not in response.data
    assert fetcher.calls == []


def test_proxy_serves_rewritten_page(client, fetcher, signer) -> None:
    url = "https://ex.com/a/"
    fetcher.add(url, '<script>x()</script><link rel="stylesheet" href="gone.css"><a href="next">n</a>')

    response = client.get(signer.proxy_link(url))

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/html; charset=utf-8"
    assert response.headers[main.SKIPPED_HEADER] == "1"
    soup = BeautifulSoup(response.get_data(as_text=True), "html.parser")
    assert soup.find("script") is None
    assert soup.a["href"] == signer.proxy_link("https://ex.com/a/next")


def test_signed_links_in_output_are_followable(client, fetcher, signer) -> None:
    fetcher.add("https://ex.com/a/", '<a href="next?q=1&amp;r=2">n</a>')
    fetcher.add("https://ex.com/a/next?q=1&r=2", "<p>second page</p>")

    first = client.get(signer.proxy_link("https://ex.com/a/"))
    href = BeautifulSoup(first.get_data(as_text=True), "html.parser").a["href"]
    second = client.get(href)

    assert second.status_code == 200
    assert b"second page" in second.data


def test_upstream_failure_is_visible_error(client, signer) -> None:
    url = "https://ex.com/<b>down</b>"
    response = client.get(signer.proxy_link(url))

    assert response.status_code == 502
    assert b"Error accessing website" in response.data
    assert b"<b>down</b>" not in response.data


def test_signed_but_invalid_target_is_bad_request(client, signer) -> None:
    response = client.get(signer.proxy_link("ftp://ex.com/file"))
    assert response.status_code == 400


def test_image_endpoint_relays_signed_resource(client, fetcher, signer) -> None:
    url = "https://ex.com/img/a.png?size=2"
    fetcher.add(url, b"\x89PNG", content_type="image/png")

    response = client.get(signer.image_link(url))

    assert response.status_code == 200
    assert response.data == b"\x89PNG"
    assert response.headers["Content-Type"] == "image/png"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert fetcher.calls == [url]


def test_image_endpoint_rejects_forged_token(client, fetcher, signer) -> None:
    token = signer.sign("https://ex.com/img/a.png")
    response = client.get(f"/image/,s{token}/https://internal.example/admin")

    assert response.status_code == 403
    assert fetcher.calls == []


def test_image_endpoint_percent_escaped_path(client, fetcher, signer) -> None:
    url = "https://ex.com/img/my%20pic.png"
    fetcher.add(url, b"GIF89a", content_type="image/gif")

    response = client.get(signer.image_link(url))

    assert response.status_code == 200
    assert response.data == b"GIF89a"
    assert fetcher.calls == [url]


def test_css_fragment_reference_is_followable(client, fetcher, signer) -> None:
    fetcher.add("https://ex.com/a/", "<style>.s { background: url(icons.svg#star) }</style>")
    fetcher.add("https://ex.com/a/icons.svg", b"<svg/>", content_type="image/svg+xml")

    page = client.get(signer.proxy_link("https://ex.com/a/"))
    css = BeautifulSoup(page.get_data(as_text=True), "html.parser").style.get_text()
    link = css.split('url("', 1)[1].split('")', 1)[0]
    response = client.get(link)

    assert response.status_code == 200
    assert response.data == b"<svg/>"
    assert fetcher.calls[-1] == "https://ex.com/a/icons.svg"
