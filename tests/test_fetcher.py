"""Tests for app.services.fetcher.

Network traffic goes through ``httpx.MockTransport`` by patching the
module's client factory, so nothing leaves the machine.
"""

import asyncio
import time
from unittest.mock import patch

import httpx
import pytest

from app.config import Settings
from app.services.fetcher import _client, fetch_resource, fetch_url, validate_url

_SETTINGS = Settings(block_private_addresses=False)
_PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(range(256))


def _mock_client(handler):
    return patch(
        "app.services.fetcher._client",
        lambda settings: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# URL validation
# ---------------------------------------------------------------------------

class TestValidateUrl:
    @pytest.mark.parametrize(
        "url",
        ["", "   ", "not-a-url", "ftp://example.com/file", "javascript:alert(1)", "https://"],
    )
    def test_rejected(self, url):
        with pytest.raises(ValueError):
            _run(validate_url(url, _SETTINGS))

    def test_accepts_public_http_urls(self):
        _run(validate_url("https://example.com/page", _SETTINGS))
        _run(validate_url("http://example.com", _SETTINGS))

    @pytest.mark.parametrize("url", ["http://127.0.0.1/", "http://10.0.0.8/admin"])
    def test_private_addresses_blocked(self, url):
        with pytest.raises(ValueError):
            _run(validate_url(url, Settings(block_private_addresses=True)))


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

class TestFetchResource:
    def test_binary_body_returned_unchanged(self):
        def handler(request):
            return httpx.Response(200, content=_PNG, headers={"content-type": "image/png"})

        with _mock_client(handler):
            resource = _run(fetch_resource("https://example.com/logo.png", _SETTINGS))

        assert resource.body == _PNG
        assert resource.content_type == "image/png"
        assert resource.is_html is False

    def test_redirects_followed_and_final_url_reported(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})

        with _mock_client(handler):
            resource = _run(fetch_resource("https://example.com/old", _SETTINGS))

        assert resource.url == "https://example.com/new"
        assert resource.is_html is True

    def test_redirect_to_disallowed_scheme_rejected(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "file:///etc/passwd"})

        with _mock_client(handler), pytest.raises(ValueError):
            _run(fetch_resource("https://example.com/", _SETTINGS))

    def test_redirect_loop(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "/again"})

        with _mock_client(handler), pytest.raises(RuntimeError):
            _run(fetch_resource("https://example.com/", Settings(block_private_addresses=False, max_redirects=2)))

    def test_upstream_error_status_passed_through(self):
        def handler(request):
            return httpx.Response(404, text="<h1>Not here</h1>", headers={"content-type": "text/html"})

        with _mock_client(handler):
            resource = _run(fetch_resource("https://example.com/missing", _SETTINGS))

        assert resource.status_code == 404

    def test_oversized_body_rejected(self):
        def handler(request):
            return httpx.Response(200, content=b"x" * 2048)

        settings = Settings(block_private_addresses=False, max_content_size=1024)
        with _mock_client(handler), pytest.raises(RuntimeError):
            _run(fetch_resource("https://example.com/big", settings))

    def test_whole_request_is_time_bounded(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200)

        settings = Settings(block_private_addresses=False, fetch_timeout=0.05)
        with _mock_client(handler), pytest.raises(httpx.TimeoutException):
            _run(fetch_resource("https://example.com/slow", settings))

    def test_slow_address_lookup_is_time_bounded(self):
        def slow_getaddrinfo(*args, **kwargs):
            time.sleep(1)
            return []

        def handler(request):
            return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})

        settings = Settings(block_private_addresses=True, fetch_timeout=0.2)

        async def timed_fetch():
            started = time.monotonic()
            with pytest.raises(httpx.TimeoutException):
                await fetch_resource("https://example.com/", settings)
            return time.monotonic() - started

        # The lookup runs off the event loop, so the bound fires while it is still pending
        with _mock_client(handler), patch("socket.getaddrinfo", slow_getaddrinfo):
            elapsed = _run(timed_fetch())

        assert elapsed < 0.8

    def test_invalid_url_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        with _mock_client(handler), pytest.raises(ValueError):
            _run(fetch_resource("not-a-url", _SETTINGS))


class TestFetchUrl:
    def test_returns_decoded_text(self):
        def handler(request):
            return httpx.Response(
                200,
                content="<p>Café</p>".encode("latin-1"),
                headers={"content-type": "text/html; charset=ISO-8859-1"},
            )

        with _mock_client(handler):
            assert _run(fetch_url("https://example.com/", _SETTINGS)) == "<p>Café</p>"

    def test_client_sends_browser_headers(self):
        client = _client(_SETTINGS)
        try:
            assert client.headers["user-agent"] == _SETTINGS.user_agent
            assert "text/html" in client.headers["accept"]
        finally:
            _run(client.aclose())

    def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(503, text="down")

        with _mock_client(handler), pytest.raises(httpx.HTTPStatusError):
            _run(fetch_url("https://example.com/", _SETTINGS))
