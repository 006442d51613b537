from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse, urlunparse

import httpx

from .config import Settings
from .errors import FetchFailed, InvalidInput
from .logger import get_logger

logger = get_logger(__name__)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    content_type: str | None
    html: str


def normalize_url(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise InvalidInput("URL parameter is required")

    if not re.match(r"^[a-zA-Z][a-zA-Z\d+.-]*://", value):
        value = "https://" + value

    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
    except ValueError as e:
        raise InvalidInput(f"Invalid URL: {e}") from e
    if parsed.scheme not in ("http", "https"):
        raise InvalidInput("Please use an http(s) website URL.")
    if not hostname or "." not in hostname:
        raise InvalidInput("Please enter a valid website domain.")

    return urlunparse(parsed._replace(fragment=""))


def registrable_domain_guess(hostname: str) -> str:
    parts = [p for p in hostname.lower().split(".") if p]
    if len(parts) <= 2:
        return ".".join(parts)
    return ".".join(parts[-2:])


def _request_headers(settings: Settings) -> dict[str, str]:
    return {
        "user-agent": settings.user_agent,
        "accept": _ACCEPT,
        "accept-language": settings.accept_language,
    }


def _get_once(url: str, settings: Settings, transport: httpx.BaseTransport | None) -> FetchResult:
    with httpx.Client(timeout=settings.fetch_timeout_s, follow_redirects=True, transport=transport) as client:
        res = client.get(url, headers=_request_headers(settings))

    if not res.is_success:
        raise FetchFailed(f"Unable to fetch URL: HTTP {res.status_code}: {res.reason_phrase}", upstream_status=res.status_code)

    body = res.content[: settings.max_html_kb * 1024]
    encoding = res.encoding or "utf-8"
    try:
        html = body.decode(encoding, errors="replace")
    except LookupError:
        html = body.decode("utf-8", errors="replace")

    return FetchResult(
        url=url,
        final_url=str(res.url),
        status_code=res.status_code,
        content_type=res.headers.get("content-type"),
        html=html,
    )


def fetch_html(url: str, settings: Settings, transport: httpx.BaseTransport | None = None) -> FetchResult:
    """GET the page once (plus at most one retry after a timeout or network error).

    HTTP error statuses are never retried.
    """
    attempts = 1 + max(0, min(1, settings.fetch_retries))
    last_error: httpx.HTTPError | None = None

    for attempt in range(1, attempts + 1):
        logger.info("fetch_attempt", url=url, attempt=attempt)
        try:
            return _get_once(url, settings, transport)
        except FetchFailed as e:
            logger.warning("fetch_failed", url=url, attempt=attempt, upstream_status=e.upstream_status, error=e.message)
            raise
        except httpx.TimeoutException as e:
            last_error = e
            logger.warning("fetch_failed", url=url, attempt=attempt, error="timeout")
        except httpx.HTTPError as e:
            last_error = e
            logger.warning("fetch_failed", url=url, attempt=attempt, error=str(e))

    if isinstance(last_error, httpx.TimeoutException):
        raise FetchFailed(f"Unable to fetch URL: timed out after {settings.fetch_timeout_s:g}s")
    raise FetchFailed(f"Unable to fetch URL: {last_error}")
