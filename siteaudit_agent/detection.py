"""
Detector rules and their fail-open aggregation.

A detector is a pure function of a ParsedDocument returning zero or more
Detection records. run_detectors() evaluates an ordered rule list, turning
every exception into a DetectorResult with ``error`` set instead of aborting
the analysis. Results are always folded back in rule order, also when the
rules run on a thread pool.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from .document import ParsedDocument
from .errors import DetectorFailure
from .logger import get_logger

logger = get_logger(__name__)

DetectionValue = bool | str | int | float


@dataclass(frozen=True)
class Detection:
    signal: str
    value: DetectionValue
    confidence: float = 1.0
    evidence: str = ""

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range for {self.signal}: {self.confidence}")

    @property
    def kind(self) -> str:
        """Signal namespace, e.g. 'privacy.cmp' for 'privacy.cmp.candidate'."""
        return self.signal.rsplit(".", 1)[0]


DetectorFn = Callable[[ParsedDocument], list[Detection]]


@dataclass(frozen=True)
class Detector:
    name: str
    fn: DetectorFn


@dataclass(frozen=True)
class DetectorResult:
    name: str
    detections: tuple[Detection, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DetectionRun:
    results: list[DetectorResult] = field(default_factory=list)

    @property
    def detections(self) -> list[Detection]:
        return [d for r in self.results for d in r.detections]

    @property
    def degraded(self) -> list[str]:
        return [r.name for r in self.results if not r.ok]

    def all(self, signal: str) -> list[Detection]:
        return [d for d in self.detections if d.signal == signal]

    def first(self, signal: str) -> Detection | None:
        for d in self.detections:
            if d.signal == signal:
                return d
        return None

    def value(self, signal: str, default: Any = None) -> Any:
        d = self.first(signal)
        return d.value if d is not None else default

    def flag(self, signal: str) -> bool:
        return any(bool(d.value) for d in self.all(signal))

    def count(self, signal: str) -> int:
        return len(self.all(signal))


def _evaluate(detector: Detector, doc: ParsedDocument) -> DetectorResult:
    try:
        found = detector.fn(doc)
    except Exception as e:
        failure = DetectorFailure(detector.name, e)
        logger.warning("detector_failed", detector=detector.name, error=f"{type(e).__name__}: {e}", url=doc.url)
        return DetectorResult(name=detector.name, error=str(failure))
    return DetectorResult(name=detector.name, detections=tuple(found or ()))


def run_detectors(detectors: Sequence[Detector], doc: ParsedDocument, workers: int = 1) -> DetectionRun:
    if workers <= 1 or len(detectors) <= 1:
        return DetectionRun(results=[_evaluate(d, doc) for d in detectors])

    with ThreadPoolExecutor(max_workers=min(workers, len(detectors))) as pool:
        # map() yields in submission order, which keeps the fold deterministic.
        results = list(pool.map(lambda d: _evaluate(d, doc), detectors))
    return DetectionRun(results=results)
