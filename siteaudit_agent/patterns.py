"""
Static pattern tables used by the privacy and media detectors.

Bump PATTERNS_VERSION whenever a table changes in a way that can move scores.
The tables are illustrative, not an exhaustive provider registry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PATTERNS_VERSION = "2024.3"


@dataclass(frozen=True)
class CmpSignature:
    name: str
    patterns: tuple[re.Pattern[str], ...]
    confidence: float


def _sig(name: str, confidence: float, *patterns: str) -> CmpSignature:
    return CmpSignature(name, tuple(re.compile(p, re.IGNORECASE) for p in patterns), confidence)


# Confidence reflects how distinctive the signature is.
CMP_SCRIPT_SIGNATURES: tuple[CmpSignature, ...] = (
    _sig("OneTrust", 0.95, r"cdn\.cookielaw\.org", r"optanon", r"onetrust", r"otSDKStub"),
    _sig("Cookiebot", 0.95, r"consent\.cookiebot\.com", r"cookiebot\.com/uc\.js", r"CookieConsent"),
    _sig(
        "Usercentrics", 0.9,
        r"usercentrics", r"uc\.js", r"settingsId", r"window\.UC_UI",
        r"aggregator\.usercentrics", r"privacy-proxy\.usercentrics",
    ),
    _sig("ConsentManager", 0.9, r"consentmanager\.net", r"consentmanager\.mgr", r"cmp\.consentmanager"),
    _sig("Iubenda", 0.85, r"iubenda\.com", r"_iub_cs", r"cdn\.iubenda"),
    _sig("Quantcast Choice", 0.85, r"quantcast\.mgr\.consensu\.org", r"__tcfapi", r"quantserve\.com"),
    _sig("Didomi", 0.85, r"sdk\.privacy-center\.org", r"didomi"),
    _sig("Termly", 0.85, r"app\.termly\.io", r"termly\.io/api"),
    _sig("Osano", 0.85, r"osano\.com", r"cmp\.osano"),
    _sig("CookieScript", 0.8, r"cookie-script\.com", r"cookiescript"),
    _sig("Complianz", 0.8, r"complianz", r"cmplz"),
    _sig("CookieYes", 0.8, r"cookieyes\.com", r"cky-consent"),
    _sig("Borlabs Cookie", 0.85, r"borlabs.*cookie", r"borlabsCookie"),
    _sig("Klaro", 0.8, r"klaro", r"klaroConfig"),
    _sig("CookieFirst", 0.8, r"cookiefirst"),
    _sig("Cookie Information", 0.8, r"cookie-information", r"cookieinformation"),
    _sig("TrustCommander", 0.8, r"trustcommander", r"tagcommander"),
    _sig("Axeptio", 0.8, r"axeptio", r"static\.axept\.io"),
    _sig("CookiePro", 0.8, r"cookiepro"),
)

# Tried only when no named provider matched. '.' does not cross newlines.
GENERIC_CMP_CONFIDENCE = 0.7
GENERIC_CMP_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(p, re.IGNORECASE), name)
    for p, name in (
        (r"window\.cookieconsent", "Generic CookieConsent"),
        (r"cookieConsent\.run", "Generic CookieConsent"),
        (r"gdpr.*cookie", "GDPR Cookie Banner"),
        (r"cookie.*notice", "Cookie Notice"),
        (r"privacy.*consent", "Privacy Consent"),
        (r"cookielawinfo", "Cookie Law Info"),
        (r"cookie.*compliance", "Cookie Compliance"),
    )
)


# Broader consent-platform table, matched against the serialized document.
# Anchored so that plain words ("trusted", "cookie consent") do not match.
CONSENT_PLATFORMS: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = tuple(
    (name, tuple(re.compile(p, re.IGNORECASE) for p in pats))
    for name, pats in (
        ("OneTrust", (r"\bonetrust", r"\boptanon")),
        ("Cookiebot", (r"\bcookiebot",)),
        ("TrustArc", (r"\btrustarc\b", r"\btruste\.com")),
        ("Quantcast Choice", (r"\bquantcast", r"\bqcmp")),
        ("ConsentManager", (r"\bconsentmanager",)),
        ("Usercentrics", (r"\busercentrics",)),
        ("Didomi", (r"\bdidomi",)),
        ("Termly", (r"\btermly\b",)),
    )
)

IAB_TCF_MARKERS = ("__tcfapi", "tcfapi", "__cmp(", "euconsent-v2", "iab tcf", "tcf v2", "tcf 2.")

GRANULAR_SETTINGS_MARKERS = (
    "cookie settings",
    "cookie-settings",
    "cookie preferences",
    "privacy settings",
    "consent preferences",
    "manage preferences",
    "cookie-einstellungen",
    "cookie einstellungen",
    "datenschutzeinstellungen",
    "privatsphäre-einstellungen",
    "showsettings",
    "openpreferences",
)


@dataclass(frozen=True)
class ServicePattern:
    name: str
    pattern: re.Pattern[str]
    domain: str


def _svc(name: str, pattern: str, domain: str) -> ServicePattern:
    return ServicePattern(name, re.compile(pattern, re.IGNORECASE), domain)


THIRD_PARTY_SERVICES: dict[str, tuple[ServicePattern, ...]] = {
    "analytics": (
        _svc("Google Analytics", r"google-analytics|googletagmanager|gtag", "google-analytics.com"),
        _svc("Adobe Analytics", r"adobe.*analytics|omniture", "adobe.com"),
        _svc("Matomo", r"matomo|piwik", "matomo.org"),
        _svc("Hotjar", r"hotjar", "hotjar.com"),
        _svc("Mixpanel", r"mixpanel", "mixpanel.com"),
    ),
    "marketing": (
        _svc("Facebook Pixel", r"facebook.*pixel|fbevents", "facebook.com"),
        _svc("Google Ads", r"googleadservices|googlesyndication", "google.com"),
        _svc("LinkedIn Insight", r"linkedin.*insight|bizographics", "linkedin.com"),
        _svc("Twitter Pixel", r"twitter.*pixel|analytics\.twitter", "twitter.com"),
        _svc("TikTok Pixel", r"tiktok.*pixel|analytics\.tiktok", "tiktok.com"),
    ),
    "social": (
        _svc("Facebook SDK", r"facebook.*sdk|connect\.facebook", "facebook.com"),
        _svc("Twitter Widgets", r"platform\.twitter|twitter.*widgets", "twitter.com"),
        _svc("LinkedIn Share", r"platform\.linkedin", "linkedin.com"),
        _svc("YouTube Embed", r"youtube.*embed|youtube-nocookie", "youtube.com"),
    ),
    "other": (
        _svc("Recaptcha", r"recaptcha", "google.com"),
        _svc("Stripe", r"stripe", "stripe.com"),
        _svc("PayPal", r"paypal", "paypal.com"),
        _svc("Cloudflare", r"cloudflare", "cloudflare.com"),
    ),
}

# Estimated cookie tally: service category -> (cookie category, increment).
COOKIE_INCREMENTS: dict[str, tuple[str, int]] = {
    "analytics": ("analytics", 2),
    "marketing": ("marketing", 3),
    "social": ("functional", 2),
    "other": ("necessary", 1),
}


# Static cookie banner
BANNER_SELECTOR_TOKENS: tuple[tuple[str, str], ...] = (
    ("class", "cookie"),
    ("id", "cookie"),
    ("class", "consent"),
    ("id", "consent"),
    ("class", "privacy"),
    ("id", "privacy"),
    ("class", "gdpr"),
    ("id", "gdpr"),
)
BANNER_MIN_TEXT = 50
BANNER_MAX_TEXT = 2000

COOKIE_KEYWORDS = ("cookie", "cookies", "consent", "privacy", "gdpr", "dsgvo", "datenschutz")
GDPR_KEYWORDS = ("gdpr", "dsgvo", "datenschutz", "privacy policy", "datenschutzerklärung")
PURPOSE_KEYWORDS = ("zweck", "purpose", "verwendung")

ACCEPT_KEYWORDS = ("accept", "agree", "allow all", "akzeptieren", "zustimmen", "einverstanden", "accepter")
REJECT_KEYWORDS = ("reject", "decline", "deny", "ablehnen", "verweigern", "refuser")
SETTINGS_KEYWORDS = ("settings", "preferences", "customize", "einstellungen", "konfigurieren", "anpassen", "paramètres")


# GDPR compliance links, matched against href and link text.
PRIVACY_LINK_PATTERNS = (
    "privacy", "datenschutz", "privacidad", "confidentialité",
    "protezione-dati", "protection-données", "privacy-policy",
    "datenschutzerklärung", "politica-de-privacidad",
)
IMPRINT_LINK_PATTERNS = (
    "imprint", "impressum", "legal", "mentions", "aviso-legal",
    "note-legali", "legal-notice", "rechtliches",
)
CONTACT_LINK_PATTERNS = (
    "contact", "kontakt", "contacto", "contatto", "get-in-touch",
    "kontaktieren", "kontaktformular", "contactez",
)
MAX_RECORDED_LINKS = 5

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
# A labelled number (Tel., Telefon, Phone, Fon) or an international +CC number.
# Bare digit runs are ignored, they are mostly dates, years and prices.
PHONE_LABELLED_RE = re.compile(r"\b(?:tel|telefon|phone|fon)\.?\s*:?\s*\+?\d[\d\s()./-]{6,}", re.IGNORECASE)
PHONE_INTL_RE = re.compile(r"\+\d{1,3}[\s./-]?\(?\d{1,5}\)?(?:[\s./-]?\d{2,}){2,}")

ERASURE_KEYWORDS = ("right to erasure", "right to be forgotten", "recht auf löschung", "löschung ihrer daten")
PORTABILITY_KEYWORDS = ("data portability", "datenübertragbarkeit")
WITHDRAW_KEYWORDS = (
    "withdraw consent", "withdraw your consent", "revoke your consent",
    "widerruf", "einwilligung widerrufen",
)


# Tag manager
GTM_LOADER_MARKERS = ("gtm.js", "googletagmanager.com")
GTM_CONTAINER_RE = re.compile(r"GTM-[A-Z0-9]+")
GTM_CONFIG_RE = re.compile(r"[\"']gtmId[\"']\s*:\s*[\"']([^\"']+)[\"']")
DATA_LAYER_MARKER = "dataLayer"


# Media
MODERN_IMAGE_FORMATS = ("webp", "avif")
MODERN_VIDEO_FORMATS = ("mp4", "webm")
EXTERNAL_FONT_HOSTS = ("googleapis.com", "typekit.net")
ICON_FONT_CLASS_TOKENS = ("fa-", "icon-", "material-icons")
RESOURCE_HINT_RELS = ("preload", "prefetch", "preconnect", "dns-prefetch")
