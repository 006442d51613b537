from __future__ import annotations

from urllib.parse import urljoin, urlparse

from .detection import Detection, DetectionRun, Detector
from .document import ParsedDocument
from .models import FieldStatus, HeadingInfo, LinkStats, SeoImageStats, TextFieldCheck, TitleMeta
from .recommend import RecommendationRule, generate
from .scoring import Evaluation, category, item, proportional

RUBRIC_VERSION = "seo-1"

TITLE_BAND = (30, 60)
DESCRIPTION_BAND = (120, 160)
CONTENT_FULL_WORDS = 300
CONTENT_HALF_WORDS = 150

_SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")


def _canonical_host(host: str | None) -> str:
    value = (host or "").strip().lower().rstrip(".")
    if value.startswith("www."):
        return value[4:]
    return value


# Detectors


def detect_title(doc: ParsedDocument) -> list[Detection]:
    for el in doc.find_all("title"):
        # <title> inside inline SVG is an accessibility label, not the page title.
        if el.find_parent("svg") is not None:
            continue
        return [Detection("seo.title", doc.text(el).strip(), evidence="<title>")]
    return []


def detect_meta_description(doc: ParsedDocument) -> list[Detection]:
    for el in doc.find_all("meta"):
        if (doc.attr(el, "name") or "").lower() == "description":
            return [Detection("seo.meta_description", doc.attr(el, "content") or "", evidence='<meta name="description">')]
    return []


def detect_headings(doc: ParsedDocument) -> list[Detection]:
    return [
        Detection("seo.heading", doc.text(el).strip(), evidence=el.name)
        for el in doc.find_all("h1", "h2", "h3", "h4", "h5", "h6")
    ]


def detect_links(doc: ParsedDocument) -> list[Detection]:
    page_host = _canonical_host(doc.hostname)
    out: list[Detection] = []
    for a in doc.find_all("a"):
        href = doc.attr(a, "href")
        if not href:
            continue
        lowered = href.lower()
        if lowered.startswith(_SKIPPED_SCHEMES) or lowered.startswith("#"):
            out.append(Detection("seo.link.other", href, evidence="non-navigational"))
            continue
        try:
            target = urlparse(urljoin(doc.url, href))
            host = target.hostname
        except ValueError:
            out.append(Detection("seo.link.invalid", href, evidence="unparsable"))
            continue
        if target.scheme not in ("http", "https"):
            out.append(Detection("seo.link.other", href, evidence=target.scheme))
        elif _canonical_host(host) == page_host:
            out.append(Detection("seo.link.internal", href))
        else:
            out.append(Detection("seo.link.external", href, evidence=host or ""))
    return out


def detect_images(doc: ParsedDocument) -> list[Detection]:
    return [
        Detection("seo.image", bool(doc.attr(img, "alt")), evidence=doc.attr(img, "src") or "")
        for img in doc.find_all("img")
    ]


def detect_content(doc: ParsedDocument) -> list[Detection]:
    words = doc.body_text().split()
    return [
        Detection("seo.word_count", len(words)),
        Detection("seo.page_content", " ".join(words)[:2000]),
    ]


DETECTORS: list[Detector] = [
    Detector("title", detect_title),
    Detector("meta_description", detect_meta_description),
    Detector("headings", detect_headings),
    Detector("links", detect_links),
    Detector("images", detect_images),
    Detector("content", detect_content),
]


# Findings


def _banded_check(text: str | None, band: tuple[int, int], label: str, missing: str) -> TextFieldCheck:
    content = (text or "").strip()
    if not content:
        return TextFieldCheck(content="", length=0, status="error", recommendation=missing)

    lo, hi = band
    length = len(content)
    status: FieldStatus
    if length < lo:
        status, advice = "warning", f"{label} zu kurz (< {lo} Zeichen)"
    elif length > hi:
        status, advice = "warning", f"{label} zu lang (> {hi} Zeichen)"
    else:
        status, advice = "good", f"{label}-Länge optimal"
    return TextFieldCheck(content=content, length=length, status=status, recommendation=advice)


def _heading_analysis(h1_count: int) -> str:
    if h1_count == 0:
        return "Keine H1-Überschrift gefunden. Fügen Sie eine H1 hinzu."
    if h1_count > 1:
        return f"{h1_count} H1-Überschriften gefunden. Verwenden Sie nur eine H1 pro Seite."
    return "Heading-Struktur ist korrekt."


# Scoring

_TITLE_POINTS = {"good": 25, "warning": 15, "error": 0}
_DESCRIPTION_POINTS = {"good": 20, "warning": 10, "error": 0}


def _score(title: TextFieldCheck, description: TextFieldCheck, h1_count: int, images: SeoImageStats,
           word_count: int, links: LinkStats):
    if h1_count == 1:
        heading_points = 20
    elif h1_count > 1:
        heading_points = 10
    else:
        heading_points = 0

    if word_count >= CONTENT_FULL_WORDS:
        content_points = 10
    elif word_count >= CONTENT_HALF_WORDS:
        content_points = 5
    else:
        content_points = 0

    alt_note = None if images.total else "Keine Bilder (kein Abzug)"

    return {
        "title": category(25, [item("Title-Tag", _TITLE_POINTS[title.status], 25, title.recommendation)]),
        "metaDescription": category(20, [
            item("Meta Description", _DESCRIPTION_POINTS[description.status], 20, description.recommendation),
        ]),
        "headings": category(20, [item("Genau eine H1", heading_points, 20, f"{h1_count} H1 gefunden")]),
        "images": category(15, [
            item("Alt-Texte", proportional(images.with_alt, images.total, 15), 15, alt_note),
        ]),
        "content": category(10, [item("Textumfang", content_points, 10, f"{word_count} Wörter")]),
        "links": category(10, [
            item("Interne Verlinkung", 10 if links.internal > 0 else 0, 10, f"{links.internal} interne Links"),
        ]),
    }


RULES: list[RecommendationRule] = [
    RecommendationRule(
        lambda f: f["title_status"] == "error",
        "Title-Tag fehlt", "Fügen Sie einen aussagekräftigen Title-Tag hinzu (30-60 Zeichen)", "high", "meta",
    ),
    RecommendationRule(
        lambda f: f["title_status"] == "warning" and f["title_length"] < TITLE_BAND[0],
        "Title zu kurz", "Der Title hat nur {title_length} Zeichen. Empfohlen sind 30-60 Zeichen.", "medium", "meta",
    ),
    RecommendationRule(
        lambda f: f["title_status"] == "warning" and f["title_length"] > TITLE_BAND[1],
        "Title zu lang",
        "Der Title hat {title_length} Zeichen und wird in Suchergebnissen abgeschnitten. Empfohlen sind 30-60 Zeichen.",
        "low", "meta",
    ),
    RecommendationRule(
        lambda f: f["description_status"] == "error",
        "Meta Description fehlt", "Fügen Sie eine Meta Description hinzu (120-160 Zeichen)", "high", "meta",
    ),
    RecommendationRule(
        lambda f: f["description_status"] == "warning" and f["description_length"] < DESCRIPTION_BAND[0],
        "Meta Description zu kurz",
        "Die Meta Description hat nur {description_length} Zeichen. Empfohlen sind 120-160 Zeichen.",
        "medium", "meta",
    ),
    RecommendationRule(
        lambda f: f["description_status"] == "warning" and f["description_length"] > DESCRIPTION_BAND[1],
        "Meta Description zu lang",
        "Die Meta Description hat {description_length} Zeichen. Empfohlen sind 120-160 Zeichen.",
        "low", "meta",
    ),
    RecommendationRule(
        lambda f: f["h1_count"] == 0,
        "H1-Überschrift fehlt", "Jede Seite sollte genau eine H1-Überschrift haben", "high", "structure",
    ),
    RecommendationRule(
        lambda f: f["h1_count"] > 1,
        "Mehrere H1-Überschriften", "Verwenden Sie nur eine H1-Überschrift pro Seite", "medium", "structure",
    ),
    RecommendationRule(
        lambda f: f["missing_alt"] > 0,
        "Fehlende Alt-Texte", "{missing_alt} Bilder ohne Alt-Text gefunden", "medium", "accessibility",
    ),
    RecommendationRule(
        lambda f: f["word_count"] < CONTENT_FULL_WORDS,
        "Wenig Content", "Nur {word_count} Wörter gefunden. Mindestens 300 Wörter empfohlen.", "medium", "content",
    ),
    RecommendationRule(
        lambda f: f["internal_links"] == 0,
        "Keine internen Links",
        "Verlinken Sie relevante Unterseiten, damit Besucher und Suchmaschinen die Seite einordnen können.",
        "low", "links",
    ),
]

SUMMARIES = {
    "excellent": "Ausgezeichnete SEO-Optimierung! Ihre Seite ist sehr gut optimiert.",
    "good": "Gute SEO-Basis vorhanden. Einige Verbesserungen möglich.",
    "basic": "Grundlegende SEO-Elemente vorhanden. Deutliche Verbesserungen empfohlen.",
    "poor": "SEO-Optimierung dringend erforderlich. Viele wichtige Elemente fehlen.",
}


def evaluate(run: DetectionRun, doc: ParsedDocument) -> Evaluation:
    title = _banded_check(run.value("seo.title"), TITLE_BAND, "Title", "Kein Title-Tag gefunden")
    description = _banded_check(
        run.value("seo.meta_description"), DESCRIPTION_BAND, "Meta Description", "Keine Meta Description gefunden",
    )

    headings = [HeadingInfo(level=d.evidence, text=d.value, length=len(d.value)) for d in run.all("seo.heading")]
    h1_count = sum(1 for h in headings if h.level == "h1")

    internal = run.count("seo.link.internal")
    external = run.count("seo.link.external")
    invalid = run.all("seo.link.invalid")
    links = LinkStats(
        internal=internal,
        external=external,
        total=internal + external + len(invalid) + run.count("seo.link.other"),
        issues=[f"Ungültige URL: {d.value}" for d in invalid],
    )

    image_flags = run.all("seo.image")
    with_alt = sum(1 for d in image_flags if d.value)
    images = SeoImageStats(total=len(image_flags), with_alt=with_alt, missing_alt=len(image_flags) - with_alt)

    word_count = int(run.value("seo.word_count", 0))

    facts = {
        "title_status": title.status,
        "title_length": title.length,
        "description_status": description.status,
        "description_length": description.length,
        "h1_count": h1_count,
        "missing_alt": images.missing_alt,
        "word_count": word_count,
        "internal_links": internal,
    }

    return Evaluation(
        findings={
            "title_meta": TitleMeta(title=title, description=description),
            "headings": headings,
            "heading_analysis": _heading_analysis(h1_count),
            "links": links,
            "images": images,
            "word_count": word_count,
            "page_content": run.value("seo.page_content", ""),
        },
        score_details=_score(title, description, h1_count, images, word_count, links),
        recommendations=generate(RULES, facts),
    )
