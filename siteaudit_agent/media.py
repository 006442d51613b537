from __future__ import annotations

import re
from collections import Counter
from urllib.parse import parse_qs, unquote, urljoin, urlparse

from . import patterns as P
from .detection import Detection, DetectionRun, Detector
from .document import ParsedDocument
from .models import FontStats, IconStats, MediaImageStats, MissingAltImage, ResourceHints, VideoStats
from .recommend import RecommendationRule, generate
from .scoring import Evaluation, category, item, proportional

RUBRIC_VERSION = "media-1"

_EXTENSION_RE = re.compile(r"\.([a-zA-Z0-9]+)$")
_FONT_DISPLAY_SWAP_RE = re.compile(r"font-display\s*:\s*swap", re.IGNORECASE)
_WOFF2_URL_RE = re.compile(r"url\(\s*['\"]?[^'\")]+\.woff2(?:[?#][^'\")]*)?['\"]?\s*\)", re.IGNORECASE)


def _extension(path: str) -> str | None:
    m = _EXTENSION_RE.search(path)
    return m.group(1).lower() if m else None


def _file_format(src: str | None, base: str) -> str | None:
    """Lower-cased file extension of a resource URL, or None."""
    if not src:
        return None
    try:
        parsed = urlparse(urljoin(base, src))
    except ValueError:
        return _extension(src.split("?")[0].split("#")[0])

    # Next.js serves optimized images as /_next/image?url=<original>.
    if "/_next/image" in parsed.path:
        original = parse_qs(parsed.query).get("url")
        if original:
            ext = _extension(urlparse(unquote(original[0])).path)
            if ext:
                return ext

    return _extension(parsed.path)


def _absolute(src: str, base: str) -> str:
    try:
        return urljoin(base, src)
    except ValueError:
        return src


def _rel_tokens(doc: ParsedDocument, el) -> list[str]:
    return (doc.attr(el, "rel") or "").lower().split()


# Detectors


def detect_images(doc: ParsedDocument) -> list[Detection]:
    out: list[Detection] = []
    for picture in doc.find_all("picture"):
        for source in picture.find_all("source"):
            kind = (doc.attr(source, "type") or "").lower()
            if kind in ("image/webp", "image/avif"):
                out.append(Detection("media.picture.source", kind.split("/")[1]))

    for img in doc.find_all("img"):
        src = doc.attr(img, "src")
        alt = img.get("alt")
        out.append(Detection("media.image", True, evidence=src or ""))

        fmt = _file_format(src, doc.url)
        if fmt:
            out.append(Detection("media.image.format", fmt, evidence=src or ""))

        if alt is not None and str(alt).strip():
            out.append(Detection("media.image.with_alt", True))
        else:
            out.append(Detection(
                "media.image.missing_alt",
                _absolute(src, doc.url) if src else "",
                evidence="" if alt is None else str(alt),
            ))

        if (doc.attr(img, "loading") or "").lower() == "lazy":
            out.append(Detection("media.image.lazy", True))
        if doc.attr(img, "srcset"):
            out.append(Detection("media.image.responsive", True))
    return out


def detect_videos(doc: ParsedDocument) -> list[Detection]:
    out: list[Detection] = []
    for video in doc.find_all("video"):
        out.append(Detection("media.video", True, evidence=doc.attr(video, "src") or ""))
        autoplay = doc.has_attr(video, "autoplay")
        muted = doc.has_attr(video, "muted")
        if doc.attr(video, "poster"):
            out.append(Detection("media.video.poster", True))
        if autoplay:
            out.append(Detection("media.video.autoplay", True))
            if not muted:
                out.append(Detection("media.video.autoplay_unmuted", True))
        if muted:
            out.append(Detection("media.video.muted", True))
        if (doc.attr(video, "loading") or "").lower() == "lazy":
            out.append(Detection("media.video.lazy", True))
        for source in video.find_all("source"):
            fmt = _file_format(doc.attr(source, "src"), doc.url)
            if fmt:
                out.append(Detection("media.video.format", fmt, evidence=doc.attr(source, "src") or ""))
    return out


def detect_fonts(doc: ParsedDocument) -> list[Detection]:
    out: list[Detection] = []
    for link in doc.find_all("link"):
        href = doc.attr(link, "href")
        if not href:
            continue
        if "preload" in _rel_tokens(doc, link) and (doc.attr(link, "as") or "").lower() == "font":
            out.append(Detection("media.font.preload", href))
        if "font" not in href.lower():
            continue
        out.append(Detection("media.font.link", href))
        if any(host in href for host in P.EXTERNAL_FONT_HOSTS):
            out.append(Detection("media.font.external", href))
        if "display=swap" in href:
            out.append(Detection("media.font.display_swap", href, evidence="url parameter"))
        fmt = _file_format(href, doc.url)
        if fmt:
            out.append(Detection("media.font.format", fmt, evidence=href))

    for style in doc.find_all("style"):
        css = "".join(str(c) for c in style.contents)
        for m in _FONT_DISPLAY_SWAP_RE.finditer(css):
            out.append(Detection("media.font.display_swap", m.group(0), evidence="inline style"))
        for m in _WOFF2_URL_RE.finditer(css):
            out.append(Detection("media.font.format", "woff2", evidence=m.group(0)))
    return out


def detect_icons(doc: ParsedDocument) -> list[Detection]:
    out = [Detection("media.icon.svg", True) for _ in doc.find_all("svg")]
    for el in doc.select(lambda e: e.has_attr("class")):
        classes = (doc.attr(el, "class") or "").lower()
        if any(token in classes for token in P.ICON_FONT_CLASS_TOKENS):
            out.append(Detection("media.icon.font", True, evidence=classes))
    for use in doc.find_all("use"):
        if use.has_attr("href") or use.has_attr("xlink:href"):
            out.append(Detection("media.icon.sprite", True))
    return out


def detect_resource_hints(doc: ParsedDocument) -> list[Detection]:
    out: list[Detection] = []
    for link in doc.find_all("link"):
        for rel in _rel_tokens(doc, link):
            if rel in P.RESOURCE_HINT_RELS:
                out.append(Detection(f"media.hint.{rel}", doc.attr(link, "href") or ""))
    return out


DETECTORS: list[Detector] = [
    Detector("images", detect_images),
    Detector("videos", detect_videos),
    Detector("fonts", detect_fonts),
    Detector("icons", detect_icons),
    Detector("resource_hints", detect_resource_hints),
]


# Findings


def _formats(run: DetectionRun, signal: str) -> dict[str, int]:
    return dict(Counter(d.value for d in run.all(signal)))


def _image_stats(run: DetectionRun) -> MediaImageStats:
    formats = _formats(run, "media.image.format")
    picture_sources = Counter(d.value for d in run.all("media.picture.source"))
    missing = run.all("media.image.missing_alt")
    return MediaImageStats(
        total=run.count("media.image"),
        formats=formats,
        with_alt=run.count("media.image.with_alt"),
        missing_alt=len(missing),
        images_without_alt=[MissingAltImage(src=d.value, alt=d.evidence or None) for d in missing if d.value],
        lazy=run.count("media.image.lazy"),
        responsive=run.count("media.image.responsive"),
        webp=formats.get("webp", 0) + picture_sources["webp"],
        avif=formats.get("avif", 0) + picture_sources["avif"],
    )


def _video_stats(run: DetectionRun) -> VideoStats:
    return VideoStats(
        total=run.count("media.video"),
        formats=_formats(run, "media.video.format"),
        with_poster=run.count("media.video.poster"),
        autoplay=run.count("media.video.autoplay"),
        muted=run.count("media.video.muted"),
        lazy=run.count("media.video.lazy"),
    )


def _font_stats(run: DetectionRun) -> FontStats:
    return FontStats(
        total=run.count("media.font.link"),
        formats=_formats(run, "media.font.format"),
        preloaded=run.count("media.font.preload"),
        display_swap=run.count("media.font.display_swap"),
        external=run.count("media.font.external"),
    )


def _icon_stats(run: DetectionRun) -> IconStats:
    svg = run.count("media.icon.svg")
    icon_font = run.count("media.icon.font")
    sprites = run.count("media.icon.sprite")
    return IconStats(total=svg + icon_font + sprites, svg=svg, icon_font=icon_font, sprites=sprites)


def _resource_hints(run: DetectionRun) -> ResourceHints:
    return ResourceHints(
        preload=run.count("media.hint.preload"),
        prefetch=run.count("media.hint.prefetch"),
        preconnect=run.count("media.hint.preconnect"),
        dns_prefetch=run.count("media.hint.dns-prefetch"),
    )


# Scoring


def _score(images: MediaImageStats, videos: VideoStats, unmuted_autoplay: int, fonts: FontStats,
           hints: ResourceHints):
    if images.total:
        expected_lazy = images.total - 1
        # The first image is usually above the fold and should load eagerly.
        if expected_lazy > 0:
            lazy = item("Lazy Loading", proportional(images.lazy, expected_lazy, 10), 10,
                        f"{images.lazy}/{expected_lazy} (erstes Bild ausgenommen)")
        else:
            lazy = item("Lazy Loading", 10, 10, "Nur 1 Bild")
        image_items = [
            item("Alt-Texte", proportional(images.with_alt, images.total, 15), 15),
            item("Moderne Formate (WebP/AVIF)", proportional(images.webp + images.avif, images.total, 10), 10),
            lazy,
            item("Responsive (srcset)", proportional(images.responsive, images.total, 5), 5),
        ]
    else:
        image_items = [item("Keine Bilder", 40, 40, "Kein Abzug")]

    if videos.total:
        modern = any(fmt in videos.formats for fmt in P.MODERN_VIDEO_FORMATS)
        video_items = [
            item("Poster-Bilder", proportional(videos.with_poster, videos.total, 5), 5),
            item("Autoplay korrekt", 10 if unmuted_autoplay == 0 else 0, 10),
            item("Moderne Formate", 5 if modern else 0, 5),
        ]
    else:
        video_items = [item("Keine Videos", 20, 20, "Kein Abzug")]

    if fonts.total or fonts.display_swap or fonts.preloaded:
        font_items = [
            item("font-display: swap", 10 if fonts.display_swap else 0, 10),
            item("Preloading", 5 if fonts.preloaded else 0, 5),
            item("WOFF2 Format", 5 if "woff2" in fonts.formats else 0, 5),
        ]
    else:
        font_items = [item("Keine externen Fonts", 20, 20, "Kein Abzug")]

    if hints.has_any:
        hint_item = item("Resource Hints vorhanden", 20, 20, "preload, prefetch, preconnect oder dns-prefetch")
    else:
        hint_item = item("Resource Hints vorhanden", 5, 20, "Keine gefunden (5 Basispunkte)")

    return {
        "images": category(40, image_items),
        "videos": category(20, video_items),
        "fonts": category(20, font_items),
        "resourceHints": category(20, [hint_item]),
    }


RULES: list[RecommendationRule] = [
    RecommendationRule(
        lambda f: f["missing_alt"] > 0,
        "Fehlende Alt-Texte", "{missing_alt} Bilder ohne Alt-Text gefunden", "high", "accessibility",
    ),
    RecommendationRule(
        lambda f: f["images"] > 0 and f["modern_images"] == 0,
        "Moderne Bildformate nutzen", "WebP oder AVIF für bessere Komprimierung verwenden", "medium", "performance",
    ),
    RecommendationRule(
        lambda f: f["images"] > 3 and f["lazy"] < f["images"] * 0.5,
        "Lazy Loading implementieren", "Lazy Loading für bessere Performance aktivieren", "medium", "performance",
    ),
    RecommendationRule(
        lambda f: f["images"] > 0 and f["responsive"] == 0,
        "Responsive Bilder bereitstellen",
        "Mit srcset können Browser die passende Bildgröße für das Gerät laden.",
        "low", "performance",
    ),
    RecommendationRule(
        lambda f: f["unmuted_autoplay"] > 0,
        "Autoplay-Videos stumm schalten", "Autoplay-Videos sollten stumm geschaltet sein", "high", "ux",
    ),
    RecommendationRule(
        lambda f: f["videos"] > 0 and f["with_poster"] < f["videos"],
        "Poster-Bilder für Videos",
        "{videos_without_poster} Videos ohne Poster-Bild. Ein Poster verhindert leere Flächen beim Laden.",
        "low", "ux",
    ),
    RecommendationRule(
        lambda f: f["fonts"] > 0 and f["display_swap"] == 0,
        "Font-Display optimieren", "font-display: swap für bessere Performance verwenden", "medium", "performance",
    ),
    RecommendationRule(
        lambda f: f["fonts"] > 0 and f["preloaded"] == 0,
        "Kritische Fonts preloaden", 'Wichtige Fonts mit rel="preload" vorladen', "low", "performance",
    ),
    RecommendationRule(
        lambda f: (f["fonts"] > 0 or f["display_swap"] > 0 or f["preloaded"] > 0) and not f["woff2"],
        "WOFF2 verwenden", "WOFF2 ist das am stärksten komprimierte Webfont-Format.", "low", "performance",
    ),
    RecommendationRule(
        lambda f: not f["hints"],
        "Resource Hints nutzen",
        "preconnect oder dns-prefetch für externe Hosts beschleunigen das Laden von Ressourcen.",
        "low", "performance",
    ),
]

SUMMARIES = {
    "excellent": "Ausgezeichnete Media-Optimierung! Alle wichtigen Aspekte sind gut umgesetzt.",
    "good": "Gute Media-Basis vorhanden. Einige Verbesserungen möglich.",
    "basic": "Grundlegende Media-Elemente vorhanden. Deutliche Verbesserungen empfohlen.",
    "poor": "Media-Optimierung dringend erforderlich. Viele wichtige Aspekte fehlen.",
}


def evaluate(run: DetectionRun, doc: ParsedDocument) -> Evaluation:
    images = _image_stats(run)
    videos = _video_stats(run)
    fonts = _font_stats(run)
    icons = _icon_stats(run)
    hints = _resource_hints(run)
    unmuted_autoplay = run.count("media.video.autoplay_unmuted")

    facts = {
        "images": images.total,
        "missing_alt": images.missing_alt,
        "modern_images": images.webp + images.avif,
        "lazy": images.lazy,
        "responsive": images.responsive,
        "videos": videos.total,
        "with_poster": videos.with_poster,
        "videos_without_poster": videos.total - videos.with_poster,
        "unmuted_autoplay": unmuted_autoplay,
        "fonts": fonts.total,
        "display_swap": fonts.display_swap,
        "preloaded": fonts.preloaded,
        "woff2": "woff2" in fonts.formats,
        "hints": hints.has_any,
    }

    return Evaluation(
        findings={
            "images": images,
            "videos": videos,
            "fonts": fonts,
            "icons": icons,
            "resource_hints": hints,
        },
        score_details=_score(images, videos, unmuted_autoplay, fonts, hints),
        recommendations=generate(RULES, facts),
    )
