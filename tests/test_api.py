from __future__ import annotations

from unittest.mock import patch

from siteaudit_agent.errors import FetchFailed

from conftest import build_page


def test_healthz(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_get_seo_report(client, canned_page):
    canned_page["html"] = build_page(f"<title>{'t' * 40}</title>", "<h1>Hallo</h1>")
    res = client.get("/api/analysis/seo", params={"url": "example.de"})
    assert res.status_code == 200
    data = res.json()
    assert canned_page["calls"] == ["https://example.de"]
    assert data["url"] == "https://example.de"
    assert data["domain"] == "seo"
    assert 0 <= data["score"] <= 100
    assert data["titleMeta"]["title"]["status"] == "good"
    assert set(data["scoreDetails"]) == {"title", "metaDescription", "headings", "images", "content", "links"}
    assert data["degradedDetectors"] == []


def test_get_privacy_and_media_reports(client):
    for domain, key in (("privacy", "cookieBanner"), ("media", "resourceHints")):
        res = client.get(f"/api/analysis/{domain}", params={"url": "https://example.de"})
        assert res.status_code == 200
        assert key in res.json()


def test_missing_url_is_a_bad_request(client):
    res = client.get("/api/analysis/privacy")
    assert res.status_code == 400
    assert res.json() == {"error": "URL parameter is required"}


def test_post_analyze(client):
    res = client.post("/analyze", json={"url": "example.de", "domain": "media"})
    assert res.status_code == 200
    assert res.json()["rubricVersion"] == "media-1"


def test_post_analyze_validation_error_is_400(client):
    res = client.post("/analyze", json={"url": "example.de", "domain": "content"})
    assert res.status_code == 400
    assert res.json()["error"].startswith("Invalid request")


def test_fetch_failure_is_reported_as_error(client):
    with patch("siteaudit_agent.analyzer.fetch_html", side_effect=FetchFailed("Unable to fetch URL: HTTP 404: Not Found", 404)):
        res = client.get("/api/analysis/seo", params={"url": "example.de"})
    assert res.status_code == 400
    assert res.json() == {"error": "Unable to fetch URL: HTTP 404: Not Found"}


def test_empty_document_is_a_server_error(client, canned_page):
    canned_page["html"] = "   "
    res = client.get("/api/analysis/media", params={"url": "example.de"})
    assert res.status_code == 500
    assert "error" in res.json()


def test_unexpected_exception_is_a_generic_500(client):
    with patch("siteaudit_agent.analyzer.fetch_html", side_effect=RuntimeError("boom")):
        res = client.get("/api/analysis/seo", params={"url": "example.de"})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error during analysis"}


def test_broken_detector_degrades_the_report(client):
    with patch("siteaudit_agent.seo.detect_images", side_effect=RuntimeError("bad selector")):
        from siteaudit_agent import seo
        from siteaudit_agent.detection import Detector

        detectors = [Detector("images", seo.detect_images) if d.name == "images" else d for d in seo.DETECTORS]
        with patch.object(seo, "DETECTORS", detectors):
            res = client.get("/api/analysis/seo", params={"url": "example.de"})
    assert res.status_code == 200
    data = res.json()
    assert data["degradedDetectors"] == ["images"]
    assert 0 <= data["score"] <= 100
