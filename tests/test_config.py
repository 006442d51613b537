from __future__ import annotations

from siteaudit_agent.config import DEFAULT_USER_AGENT, Settings, load_settings


def test_defaults_without_environment(monkeypatch):
    for name in (
        "SITEAUDIT_FETCH_TIMEOUT_S",
        "SITEAUDIT_FETCH_RETRIES",
        "SITEAUDIT_MAX_HTML_KB",
        "SITEAUDIT_USER_AGENT",
        "SITEAUDIT_ACCEPT_LANGUAGE",
        "SITEAUDIT_DETECTOR_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    assert load_settings() == Settings()


def test_values_are_read_and_clamped(monkeypatch):
    monkeypatch.setenv("SITEAUDIT_FETCH_TIMEOUT_S", "600")
    monkeypatch.setenv("SITEAUDIT_FETCH_RETRIES", "5")
    monkeypatch.setenv("SITEAUDIT_MAX_HTML_KB", "1")
    monkeypatch.setenv("SITEAUDIT_DETECTOR_WORKERS", "4")
    monkeypatch.setenv("SITEAUDIT_USER_AGENT", "  ")
    monkeypatch.setenv("SITEAUDIT_ACCEPT_LANGUAGE", "en")
    settings = load_settings()
    assert settings.fetch_timeout_s == 60.0
    assert settings.fetch_retries == 1
    assert settings.max_html_kb == 16
    assert settings.detector_workers == 4
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.accept_language == "en"


def test_low_and_unparsable_values(monkeypatch):
    monkeypatch.setenv("SITEAUDIT_FETCH_TIMEOUT_S", "0.1")
    monkeypatch.setenv("SITEAUDIT_FETCH_RETRIES", "-3")
    monkeypatch.setenv("SITEAUDIT_DETECTOR_WORKERS", "many")
    settings = load_settings()
    assert settings.fetch_timeout_s == 1.0
    assert settings.fetch_retries == 0
    assert settings.detector_workers == 1
