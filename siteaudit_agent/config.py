from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SiteAudit-Analyzer/1.0)"


@dataclass(frozen=True)
class Settings:
    fetch_timeout_s: float = 10.0
    # Only 0 or 1 extra attempt, and only after timeouts/network errors.
    fetch_retries: int = 0
    max_html_kb: int = 4096
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "de,en;q=0.5"
    detector_workers: int = 1


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        fetch_timeout_s=max(1.0, min(60.0, _env_float("SITEAUDIT_FETCH_TIMEOUT_S", 10.0))),
        fetch_retries=max(0, min(1, _env_int("SITEAUDIT_FETCH_RETRIES", 0))),
        max_html_kb=max(16, _env_int("SITEAUDIT_MAX_HTML_KB", 4096)),
        user_agent=os.getenv("SITEAUDIT_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
        accept_language=os.getenv("SITEAUDIT_ACCEPT_LANGUAGE", "").strip() or "de,en;q=0.5",
        detector_workers=max(1, _env_int("SITEAUDIT_DETECTOR_WORKERS", 1)),
    )
