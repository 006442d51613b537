"""
The structured logger imports cleanly and emits the pipeline events.
"""

from __future__ import annotations

from structlog.testing import capture_logs

from siteaudit_agent.analyzer import analyze_markup
from siteaudit_agent.detection import Detector, run_detectors
from siteaudit_agent.document import parse_document

from conftest import PAGE_URL, build_page


def test_logging_import():
    from siteaudit_agent.logger import get_logger

    logger = get_logger("test")
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    logger.info("test_message", key="value")


def test_analysis_completed_is_logged():
    with capture_logs() as logs:
        analyze_markup("seo", build_page("<title>Log</title>"), PAGE_URL)
    events = [e for e in logs if e.get("event") == "analysis_completed"]
    assert len(events) == 1
    assert events[0]["domain"] == "seo"
    assert events[0]["url"] == PAGE_URL
    assert events[0]["degraded_detectors"] == []


def test_detector_failure_is_logged_as_warning():
    def broken(doc):
        raise KeyError("missing")

    doc = parse_document(build_page(body="<p>x</p>"), PAGE_URL)
    with capture_logs() as logs:
        run = run_detectors([Detector("broken", broken)], doc)
    assert run.degraded == ["broken"]
    failure = next(e for e in logs if e.get("event") == "detector_failed")
    assert failure["log_level"] == "warning"
    assert failure["detector"] == "broken"
