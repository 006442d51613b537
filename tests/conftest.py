"""
Pytest fixtures for the analysis engine. Nothing here touches the network:
fetching is replaced with canned markup.
"""

from __future__ import annotations

import pytest

from siteaudit_agent.config import Settings
from siteaudit_agent.fetcher import FetchResult

PAGE_URL = "https://www.example.de/"


def build_page(head: str = "", body: str = "") -> str:
    return f"<!doctype html><html><head>{head}</head><body>{body}</body></html>"


def words(n: int) -> str:
    return " ".join(f"wort{i}" for i in range(n))


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def canned_page(monkeypatch):
    """Replace fetch_html in the analyzer. Returns a dict whose 'html' key is served."""
    served = {"html": build_page("<title>Startseite</title>", "<p>Hallo</p>"), "calls": []}

    def fake_fetch(url, settings, transport=None):
        served["calls"].append(url)
        return FetchResult(url=url, final_url=url, status_code=200, content_type="text/html", html=served["html"])

    monkeypatch.setattr("siteaudit_agent.analyzer.fetch_html", fake_fetch)
    return served


@pytest.fixture
def client(canned_page):
    """FastAPI TestClient with fetching stubbed out."""
    from fastapi.testclient import TestClient

    from siteaudit_agent.main import app

    return TestClient(app, raise_server_exceptions=False)
