from __future__ import annotations

import time

import pytest

from siteaudit_agent.detection import Detection, Detector, run_detectors
from siteaudit_agent.document import parse_document

from conftest import PAGE_URL, build_page


@pytest.fixture
def doc():
    return parse_document(build_page("<title>T</title>", "<p>x</p>"), PAGE_URL)


def _boom(doc):
    raise RuntimeError("selector exploded")


def test_confidence_must_be_in_range():
    with pytest.raises(ValueError):
        Detection("privacy.cmp.candidate", "X", confidence=1.5)
    assert Detection("privacy.cmp.candidate", "X").kind == "privacy.cmp"


def test_failing_detector_degrades_instead_of_aborting(doc):
    detectors = [
        Detector("first", lambda d: [Detection("t.a", 1)]),
        Detector("broken", _boom),
        Detector("last", lambda d: [Detection("t.b", 2)]),
    ]
    run = run_detectors(detectors, doc)
    assert run.degraded == ["broken"]
    assert [d.signal for d in run.detections] == ["t.a", "t.b"]
    broken = run.results[1]
    assert not broken.ok
    assert "selector exploded" in broken.error


def test_parallel_run_keeps_rule_order(doc):
    def slow(signal, delay):
        def fn(d):
            time.sleep(delay)
            return [Detection(signal, True)]

        return fn

    detectors = [
        Detector("a", slow("t.a", 0.05)),
        Detector("b", slow("t.b", 0.0)),
        Detector("c", slow("t.c", 0.02)),
    ]
    run = run_detectors(detectors, doc, workers=3)
    assert [r.name for r in run.results] == ["a", "b", "c"]
    assert [d.signal for d in run.detections] == ["t.a", "t.b", "t.c"]


def test_run_lookups(doc):
    detectors = [
        Detector("one", lambda d: [Detection("s.x", "first"), Detection("s.x", "second"), Detection("s.flag", False)]),
    ]
    run = run_detectors(detectors, doc)
    assert run.value("s.x") == "first"
    assert run.value("s.missing", "default") == "default"
    assert run.count("s.x") == 2
    assert run.flag("s.flag") is False
    assert run.first("s.missing") is None
