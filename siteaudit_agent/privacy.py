from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

from bs4 import Tag

from . import patterns as P
from .detection import Detection, DetectionRun, Detector
from .document import ParsedDocument
from .fetcher import registrable_domain_guess
from .models import (
    CmpCandidate,
    ConsentManagement,
    CookieBannerFinding,
    CookieCategories,
    CookieEstimate,
    GdprCompliance,
    LinkRef,
    TagManagerInfo,
    ThirdPartyService,
    ThirdPartyServices,
)
from .recommend import RecommendationRule, generate
from .reconcile import BannerObservation, reconcile_cookie_banner
from .scoring import Evaluation, category, item

RUBRIC_VERSION = "privacy-1"

_STYLE_PROP_RE = {
    side: re.compile(rf"(?:^|;)\s*{side}\s*:", re.IGNORECASE) for side in ("bottom", "top")
}


# Detectors


def _find_banner_element(doc: ParsedDocument) -> Tag | None:
    for attr, token in P.BANNER_SELECTOR_TOKENS:
        for el in doc.with_attr_containing(attr, token):
            text = doc.text(el).lower()
            if not any(k in text for k in P.COOKIE_KEYWORDS):
                continue
            # Too short is a stray label, too long is a page wrapper.
            if P.BANNER_MIN_TEXT < len(text) < P.BANNER_MAX_TEXT:
                return el
    return None


def _banner_position(doc: ParsedDocument, el: Tag) -> str:
    classes = (doc.attr(el, "class") or "").lower()
    style = doc.attr(el, "style") or ""
    if "bottom" in classes or _STYLE_PROP_RE["bottom"].search(style):
        return "bottom"
    if "top" in classes or _STYLE_PROP_RE["top"].search(style):
        return "top"
    if "modal" in classes or "center" in classes:
        return "modal"
    return "unknown"


def _is_clickable(doc: ParsedDocument, el: Tag) -> bool:
    return el.name in ("button", "a") or (doc.attr(el, "role") or "").lower() == "button"


def detect_static_cookie_banner(doc: ParsedDocument) -> list[Detection]:
    banner = _find_banner_element(doc)
    if banner is None:
        return []

    text = doc.text(banner)
    lower = text.lower()
    has_accept = has_reject = has_settings = False
    for el in doc.select(lambda e: _is_clickable(doc, e), root=banner):
        label = doc.text(el).lower()
        has_accept = has_accept or any(k in label for k in P.ACCEPT_KEYWORDS)
        has_reject = has_reject or any(k in label for k in P.REJECT_KEYWORDS)
        has_settings = has_settings or any(k in label for k in P.SETTINGS_KEYWORDS)

    excerpt = " ".join(text.split())
    return [
        Detection("privacy.banner.element", True, evidence=f"<{banner.name}> {excerpt[:120]}"),
        Detection("privacy.banner.position", _banner_position(doc, banner)),
        Detection("privacy.banner.accept", has_accept),
        Detection("privacy.banner.reject", has_reject),
        Detection("privacy.banner.settings", has_settings),
        Detection("privacy.banner.mentions_gdpr", any(k in lower for k in P.GDPR_KEYWORDS)),
        Detection("privacy.banner.mentions_cookies", any(k in lower for k in P.COOKIE_KEYWORDS)),
        Detection("privacy.banner.explains_purpose", any(k in lower for k in P.PURPOSE_KEYWORDS)),
        Detection("privacy.banner.provides_details", len(lower) > 200),
        Detection("privacy.banner.text", excerpt),
    ]


def detect_tag_manager(doc: ParsedDocument) -> list[Detection]:
    raw = doc.raw
    loader = next((m for m in P.GTM_LOADER_MARKERS if m in raw), None)
    container = None
    if loader:
        m = P.GTM_CONTAINER_RE.search(raw)
        container = m.group(0) if m else None
    if container is None:
        cfg = P.GTM_CONFIG_RE.search(raw)
        if cfg:
            container = cfg.group(1)
            loader = loader or "gtmId"

    out = [Detection("privacy.gtm.loader", bool(loader), evidence=loader or "")]
    if container:
        out.append(Detection("privacy.gtm.container_id", container))
    out.append(Detection("privacy.gtm.data_layer", P.DATA_LAYER_MARKER in raw))
    return out


def detect_cmp_scripts(doc: ParsedDocument) -> list[Detection]:
    raw = doc.raw
    found: list[Detection] = []
    for sig in P.CMP_SCRIPT_SIGNATURES:
        for pattern in sig.patterns:
            m = pattern.search(raw)
            if m:
                found.append(Detection("privacy.cmp.candidate", sig.name, sig.confidence, evidence=m.group(0)))
                break

    if not found:
        for pattern, name in P.GENERIC_CMP_PATTERNS:
            m = pattern.search(raw)
            if m:
                return [Detection("privacy.cmp.generic", name, P.GENERIC_CMP_CONFIDENCE, evidence=m.group(0)[:80])]

    # sorted() is stable: equal confidences keep table order.
    return sorted(found, key=lambda d: d.confidence, reverse=True)


def detect_gdpr_links(doc: ParsedDocument) -> list[Detection]:
    kinds = (
        ("privacy.link.privacy", P.PRIVACY_LINK_PATTERNS),
        ("privacy.link.imprint", P.IMPRINT_LINK_PATTERNS),
        ("privacy.link.contact", P.CONTACT_LINK_PATTERNS),
    )
    out: list[Detection] = []
    for a in doc.find_all("a"):
        href = doc.attr(a, "href")
        if not href:
            continue
        href_lower = href.lower()
        text = doc.text(a).strip()
        text_lower = text.lower()
        for signal, needles in kinds:
            if any(n in href_lower or n in text_lower for n in needles):
                out.append(Detection(signal, href, evidence=text))
    return out


def detect_contact_info(doc: ParsedDocument) -> list[Detection]:
    text = doc.body_text()
    out: list[Detection] = []
    email = P.EMAIL_RE.search(text)
    if email:
        out.append(Detection("privacy.contact.email", True, evidence=email.group(0)))
    phone = P.PHONE_LABELLED_RE.search(text) or P.PHONE_INTL_RE.search(text)
    if phone:
        out.append(Detection("privacy.contact.phone", True, evidence=phone.group(0).strip()))
    return out


def detect_data_subject_rights(doc: ParsedDocument) -> list[Detection]:
    text = doc.body_text().lower()
    out: list[Detection] = []
    for signal, keywords in (
        ("privacy.rights.erasure", P.ERASURE_KEYWORDS),
        ("privacy.rights.portability", P.PORTABILITY_KEYWORDS),
        ("privacy.rights.withdraw", P.WITHDRAW_KEYWORDS),
    ):
        hit = next((k for k in keywords if k in text), None)
        if hit:
            out.append(Detection(signal, True, evidence=hit))
    return out


def detect_third_party_services(doc: ParsedDocument) -> list[Detection]:
    site = registrable_domain_guess(doc.hostname)
    seen_hosts: list[str] = []
    out: list[Detection] = []
    for script in doc.find_all("script"):
        src = doc.attr(script, "src")
        if not src:
            continue
        # Every occurrence counts, even the same provider loaded twice.
        for service_category, services in P.THIRD_PARTY_SERVICES.items():
            for svc in services:
                if svc.pattern.search(src):
                    out.append(Detection(f"privacy.service.{service_category}", svc.name, evidence=src))
        try:
            host = (urlparse(urljoin(doc.url, src)).hostname or "").lower()
        except ValueError:
            continue
        if host and registrable_domain_guess(host) != site and host not in seen_hosts:
            seen_hosts.append(host)
            out.append(Detection("privacy.script_domain", host, evidence=src))
    return out


def detect_consent_management(doc: ParsedDocument) -> list[Detection]:
    serialized = doc.outer_html().lower()
    out: list[Detection] = []
    for name, platform_patterns in P.CONSENT_PLATFORMS:
        hit = next((m for m in (p.search(serialized) for p in platform_patterns) if m), None)
        if hit:
            out.append(Detection("privacy.consent.platform", name, evidence=hit.group(0)))
    tcf = next((m for m in P.IAB_TCF_MARKERS if m in serialized), None)
    if tcf:
        out.append(Detection("privacy.consent.iab_tcf", True, evidence=tcf))
    granular = next((m for m in P.GRANULAR_SETTINGS_MARKERS if m in serialized), None)
    if granular:
        out.append(Detection("privacy.consent.granular", True, evidence=granular))
    return out


DETECTORS: list[Detector] = [
    Detector("static_cookie_banner", detect_static_cookie_banner),
    Detector("tag_manager", detect_tag_manager),
    Detector("cmp_scripts", detect_cmp_scripts),
    Detector("gdpr_links", detect_gdpr_links),
    Detector("contact_info", detect_contact_info),
    Detector("data_subject_rights", detect_data_subject_rights),
    Detector("third_party_services", detect_third_party_services),
    Detector("consent_management", detect_consent_management),
]


# Findings


def _banner_observation(run: DetectionRun) -> BannerObservation | None:
    if not run.flag("privacy.banner.element"):
        return None
    return BannerObservation(
        position=run.value("privacy.banner.position", "unknown"),
        has_accept=run.flag("privacy.banner.accept"),
        has_reject=run.flag("privacy.banner.reject"),
        has_settings=run.flag("privacy.banner.settings"),
        mentions_gdpr=run.flag("privacy.banner.mentions_gdpr"),
        mentions_cookies=run.flag("privacy.banner.mentions_cookies"),
        explains_purpose=run.flag("privacy.banner.explains_purpose"),
        provides_details=run.flag("privacy.banner.provides_details"),
        text=run.value("privacy.banner.text", ""),
    )


def _cmp_candidates(run: DetectionRun) -> list[CmpCandidate]:
    named = [CmpCandidate(name=d.value, confidence=d.confidence, loaded_via="script-tag") for d in run.all("privacy.cmp.candidate")]
    generic = [
        CmpCandidate(name=d.value, confidence=d.confidence, loaded_via="generic-detection")
        for d in run.all("privacy.cmp.generic")
    ]
    return named + generic


def _links(run: DetectionRun, signal: str, fallback: str) -> list[LinkRef]:
    return [LinkRef(text=d.evidence or fallback, href=d.value) for d in run.all(signal)[: P.MAX_RECORDED_LINKS]]


def _gdpr_compliance(run: DetectionRun) -> GdprCompliance:
    contact_links = _links(run, "privacy.link.contact", "Contact")
    return GdprCompliance(
        has_privacy_policy=run.count("privacy.link.privacy") > 0,
        has_imprint=run.count("privacy.link.imprint") > 0,
        has_contact_info=(
            run.flag("privacy.contact.email") or run.flag("privacy.contact.phone") or bool(contact_links)
        ),
        right_to_erasure=run.flag("privacy.rights.erasure"),
        data_portability=run.flag("privacy.rights.portability"),
        right_to_withdraw=run.flag("privacy.rights.withdraw"),
        privacy_policy_links=_links(run, "privacy.link.privacy", "Privacy Policy"),
        imprint_links=_links(run, "privacy.link.imprint", "Imprint"),
        contact_links=contact_links,
    )


def _consent_management(run: DetectionRun) -> ConsentManagement:
    providers = [d.value for d in run.all("privacy.consent.platform")]
    return ConsentManagement(
        detected=bool(providers),
        platform=providers[0] if providers else "none",
        providers=providers,
        iab_tcf_compliant=run.flag("privacy.consent.iab_tcf"),
        granular_settings=run.flag("privacy.consent.granular"),
    )


def _services_and_cookies(run: DetectionRun) -> tuple[ThirdPartyServices, CookieEstimate]:
    services: dict[str, list[ThirdPartyService]] = {}
    tally = {"necessary": 0, "analytics": 0, "marketing": 0, "functional": 0}
    for service_category in P.THIRD_PARTY_SERVICES:
        found = run.all(f"privacy.service.{service_category}")
        services[service_category] = [ThirdPartyService(name=d.value, url=d.evidence) for d in found]
        cookie_category, increment = P.COOKIE_INCREMENTS[service_category]
        tally[cookie_category] += increment * len(found)

    cookies = CookieEstimate(
        total=sum(tally.values()),
        categories=CookieCategories(**tally),
        domains=[d.value for d in run.all("privacy.script_domain")],
    )
    return ThirdPartyServices(**services), cookies


# Scoring


def _score(banner: CookieBannerFinding, gdpr: GdprCompliance, consent: ConsentManagement, cmp_detected: bool,
           service_count: int, managed: bool):
    detected = banner.detected
    banner_items = [
        item("Banner erkannt", 10 if detected else 0, 10, banner.provenance if detected else None),
        item("Ablehnen-Button", 5 if detected and banner.has_reject_button else 0, 5),
        item("Akzeptieren-Button", 3 if detected and banner.has_accept_button else 0, 3),
        item("Einstellungen", 4 if detected and banner.has_settings_link else 0, 4),
        item("DSGVO-Hinweis", 3 if detected and banner.text_analysis.mentions_gdpr else 0, 3),
    ]

    gdpr_items = [
        item("Datenschutzerklärung", 10 if gdpr.has_privacy_policy else 0, 10),
        item("Impressum", 8 if gdpr.has_imprint else 0, 8),
        item("Kontaktdaten", 5 if gdpr.has_contact_info else 0, 5),
        item("Recht auf Löschung", 3 if gdpr.right_to_erasure else 0, 3),
        item("Datenportabilität", 3 if gdpr.data_portability else 0, 3),
        item("Widerrufsrecht", 3 if gdpr.right_to_withdraw else 0, 3),
    ]

    consent_items = [
        item("CMP erkannt", 10 if cmp_detected else 0, 10, consent.platform if consent.detected else None),
        item("IAB TCF", 8 if consent.iab_tcf_compliant else 0, 8),
        item("Granulare Einstellungen", 7 if consent.granular_settings else 0, 7),
    ]

    if service_count == 0:
        services_item = item("Drittanbieter", 20, 20, "Keine Drittanbieter-Skripte")
    elif managed:
        services_item = item("Drittanbieter", 15, 20, f"{service_count} Dienste mit Consent-Management")
    elif service_count <= 2:
        services_item = item("Drittanbieter", 10, 20, f"{service_count} Dienste ohne Consent-Management")
    elif service_count <= 5:
        services_item = item("Drittanbieter", 5, 20, f"{service_count} Dienste ohne Consent-Management")
    else:
        services_item = item("Drittanbieter", 0, 20, f"{service_count} Dienste ohne Consent-Management")

    return {
        "cookieBanner": category(25, banner_items),
        "gdprCompliance": category(30, gdpr_items),
        "consentManagement": category(25, consent_items),
        "thirdPartyServices": category(20, [services_item]),
    }


RULES: list[RecommendationRule] = [
    RecommendationRule(
        lambda f: not f["banner"],
        "Cookie-Banner fehlt",
        "Es wurde kein Cookie-Banner erkannt. Holen Sie vor dem Setzen nicht notwendiger Cookies eine Einwilligung ein.",
        "high", "cookie-banner",
    ),
    RecommendationRule(
        lambda f: f["banner"] and not f["reject"],
        "Ablehnen-Button fehlt",
        "Das Ablehnen von Cookies muss genauso einfach sein wie das Akzeptieren.",
        "high", "cookie-banner",
    ),
    RecommendationRule(
        lambda f: f["banner"] and not f["settings"],
        "Cookie-Einstellungen anbieten",
        "Ermöglichen Sie Besuchern, einzelne Cookie-Kategorien auszuwählen.",
        "medium", "cookie-banner",
    ),
    RecommendationRule(
        lambda f: f["banner"] and not f["mentions_gdpr"],
        "Datenschutzhinweis im Banner",
        "Verweisen Sie im Cookie-Banner auf die Datenschutzerklärung.",
        "low", "cookie-banner",
    ),
    RecommendationRule(
        lambda f: not f["privacy_policy"],
        "Datenschutzerklärung fehlt",
        "Verlinken Sie die Datenschutzerklärung gut sichtbar auf jeder Seite.",
        "high", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["imprint"],
        "Impressum fehlt",
        "Verlinken Sie ein Impressum mit vollständiger Anbieterkennzeichnung.",
        "high", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["contact"],
        "Kontaktdaten ergänzen",
        "Geben Sie eine E-Mail-Adresse oder Telefonnummer für Datenschutzanfragen an.",
        "medium", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["erasure"],
        "Recht auf Löschung erläutern",
        "Informieren Sie über das Recht auf Löschung personenbezogener Daten (Art. 17 DSGVO).",
        "low", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["portability"],
        "Recht auf Datenübertragbarkeit erläutern",
        "Informieren Sie über das Recht auf Datenübertragbarkeit (Art. 20 DSGVO).",
        "low", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["withdraw"],
        "Widerruf der Einwilligung erläutern",
        "Erklären Sie, wie eine erteilte Einwilligung jederzeit widerrufen werden kann.",
        "medium", "gdpr",
    ),
    RecommendationRule(
        lambda f: not f["cmp"],
        "Consent-Management-Plattform einsetzen",
        "Eine CMP dokumentiert Einwilligungen und steuert das Laden von Drittanbieter-Diensten.",
        "medium", "consent",
    ),
    RecommendationRule(
        lambda f: f["cmp"] and not f["iab_tcf"],
        "IAB TCF unterstützen",
        "Aktivieren Sie das IAB Transparency & Consent Framework, falls Werbepartner eingebunden sind.",
        "low", "consent",
    ),
    RecommendationRule(
        lambda f: (f["cmp"] or f["banner"]) and not f["granular"],
        "Granulare Einwilligung ermöglichen",
        "Bieten Sie getrennte Einwilligungen für Statistik, Marketing und externe Medien an.",
        "medium", "consent",
    ),
    RecommendationRule(
        lambda f: f["services"] > 0 and not f["managed"],
        "Drittanbieter ohne Einwilligung",
        "{services} Drittanbieter-Skripte werden ohne erkennbares Consent-Management geladen.",
        "high", "third-party",
    ),
]

SUMMARIES = {
    "excellent": "Ausgezeichneter Datenschutz! Die wichtigsten DSGVO-Anforderungen sind erkennbar umgesetzt.",
    "good": "Gute Datenschutz-Basis vorhanden. Einige Verbesserungen möglich.",
    "basic": "Grundlegende Datenschutz-Elemente vorhanden. Deutliche Verbesserungen empfohlen.",
    "poor": "Datenschutz-Optimierung dringend erforderlich. Wichtige DSGVO-Elemente fehlen.",
}


def evaluate(run: DetectionRun, doc: ParsedDocument) -> Evaluation:
    candidates = _cmp_candidates(run)
    banner = reconcile_cookie_banner(_banner_observation(run), candidates, tag_manager=run.flag("privacy.gtm.loader"))
    gtm = TagManagerInfo(
        detected=run.flag("privacy.gtm.loader"),
        container_id=run.value("privacy.gtm.container_id"),
        data_layer=run.flag("privacy.gtm.data_layer"),
    )
    gdpr = _gdpr_compliance(run)
    consent = _consent_management(run)
    services, cookies = _services_and_cookies(run)

    cmp_detected = consent.detected or any(c.loaded_via == "script-tag" for c in candidates)
    managed = cmp_detected or banner.detected

    facts = {
        "banner": banner.detected,
        "reject": banner.has_reject_button,
        "settings": banner.has_settings_link,
        "mentions_gdpr": banner.text_analysis.mentions_gdpr,
        "privacy_policy": gdpr.has_privacy_policy,
        "imprint": gdpr.has_imprint,
        "contact": gdpr.has_contact_info,
        "erasure": gdpr.right_to_erasure,
        "portability": gdpr.data_portability,
        "withdraw": gdpr.right_to_withdraw,
        "cmp": cmp_detected,
        "iab_tcf": consent.iab_tcf_compliant,
        "granular": consent.granular_settings,
        "services": services.total,
        "managed": managed,
    }

    return Evaluation(
        findings={
            "cookie_banner": banner,
            "gtm": gtm,
            "detected_cmps": candidates,
            "gdpr_compliance": gdpr,
            "consent_management": consent,
            "third_party_services": services,
            "cookies": cookies,
        },
        score_details=_score(banner, gdpr, consent, cmp_detected, services.total, managed),
        recommendations=generate(RULES, facts),
    )
