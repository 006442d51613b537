from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from types import ModuleType

from . import media, privacy, seo
from .config import Settings, load_settings
from .detection import run_detectors
from .document import parse_document
from .errors import InvalidInput
from .fetcher import fetch_html, normalize_url
from .logger import get_logger
from .models import AnalysisReport, AnalyzeRequest, Domain, MediaReport, PrivacyReport, SeoReport
from .scoring import band_for, final_score

logger = get_logger(__name__)


@dataclass(frozen=True)
class _DomainAnalyzer:
    module: ModuleType
    report: type[AnalysisReport]


_ANALYZERS: dict[str, _DomainAnalyzer] = {
    "seo": _DomainAnalyzer(seo, SeoReport),
    "privacy": _DomainAnalyzer(privacy, PrivacyReport),
    "media": _DomainAnalyzer(media, MediaReport),
}


def analyze_markup(domain: Domain, markup: str, url: str, settings: Settings | None = None) -> AnalysisReport:
    """Run one domain's detectors, scoring and recommendations over already-fetched markup."""
    settings = settings or load_settings()
    analyzer = _ANALYZERS.get(domain)
    if analyzer is None:
        raise InvalidInput(f"Unknown analysis domain: {domain}")

    doc = parse_document(markup, url)
    run = run_detectors(analyzer.module.DETECTORS, doc, workers=settings.detector_workers)
    evaluation = analyzer.module.evaluate(run, doc)

    score = final_score(evaluation.score_details)
    band = band_for(score)

    report = analyzer.report(
        url=url,
        timestamp=datetime.now(timezone.utc).isoformat(),
        score=score,
        band=band,
        summary=analyzer.module.SUMMARIES[band],
        recommendations=evaluation.recommendations,
        score_details=evaluation.score_details,
        degraded_detectors=run.degraded,
        rubric_version=analyzer.module.RUBRIC_VERSION,
        **evaluation.findings,
    )

    logger.info(
        "analysis_completed",
        domain=domain,
        url=url,
        score=score,
        band=band,
        degraded_detectors=run.degraded,
    )
    return report


def analyze(req: AnalyzeRequest, settings: Settings | None = None) -> AnalysisReport:
    settings = settings or load_settings()
    url = normalize_url(req.url)
    fetched = fetch_html(url, settings)
    return analyze_markup(req.domain, fetched.html, url, settings)
