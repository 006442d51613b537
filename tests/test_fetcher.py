from __future__ import annotations

import httpx
import pytest

from siteaudit_agent.config import Settings
from siteaudit_agent.errors import FetchFailed, InvalidInput
from siteaudit_agent.fetcher import fetch_html, normalize_url, registrable_domain_guess


def test_normalize_url_adds_https_and_drops_fragment():
    assert normalize_url("  example.de/page#top ") == "https://example.de/page"
    assert normalize_url("http://example.de") == "http://example.de"


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_normalize_url_requires_value(raw):
    with pytest.raises(InvalidInput, match="URL parameter is required"):
        normalize_url(raw)


@pytest.mark.parametrize("raw", ["ftp://example.de", "https://localhost", "notadomain"])
def test_normalize_url_rejects_invalid(raw):
    with pytest.raises(InvalidInput):
        normalize_url(raw)


def test_registrable_domain_guess():
    assert registrable_domain_guess("cdn.static.example.de") == "example.de"
    assert registrable_domain_guess("example.de") == "example.de"


def test_fetch_sends_headers_and_returns_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers["user-agent"]
        seen["lang"] = request.headers["accept-language"]
        return httpx.Response(200, html="<html><title>ok</title></html>")

    res = fetch_html("https://example.de/", Settings(), transport=httpx.MockTransport(handler))
    assert res.status_code == 200
    assert "<title>ok</title>" in res.html
    assert "SiteAudit-Analyzer" in seen["ua"]
    assert seen["lang"] == "de,en;q=0.5"


def test_fetch_truncates_large_bodies():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"a" * 40_000))
    res = fetch_html("https://example.de/", Settings(max_html_kb=16), transport=transport)
    assert len(res.html) == 16 * 1024


def test_http_error_status_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    with pytest.raises(FetchFailed) as exc:
        fetch_html("https://example.de/", Settings(fetch_retries=1), transport=httpx.MockTransport(handler))
    assert len(calls) == 1
    assert exc.value.upstream_status == 404
    assert "HTTP 404" in exc.value.message
    assert exc.value.status_code == 400


def test_timeout_is_retried_once_when_enabled():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, html="<p>second try</p>")

    res = fetch_html("https://example.de/", Settings(fetch_retries=1), transport=httpx.MockTransport(handler))
    assert len(calls) == 2
    assert "second try" in res.html


def test_timeout_without_retry_fails():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(FetchFailed, match="timed out after 10s"):
        fetch_html("https://example.de/", Settings(), transport=httpx.MockTransport(handler))
    assert len(calls) == 1


def test_network_error_becomes_fetch_failed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchFailed, match="connection refused"):
        fetch_html("https://example.de/", Settings(), transport=httpx.MockTransport(handler))
