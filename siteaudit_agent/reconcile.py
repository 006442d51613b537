"""
Cookie-banner reconciliation.

Two independent pathways can tell us a page has a cookie banner:

* a banner-shaped element physically present in the markup (ground truth), and
* a consent-platform script signature, which only implies that a banner will
  be rendered client-side once the script runs.

Static markup always wins. When only a script was seen, the banner's UI
capabilities are inferred from how distinctive the provider signature is.
That inference is a heuristic we cannot verify without executing the page,
so every inferred capability is listed in ``derived_capabilities`` and the
finding carries an explanatory note.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import BannerTextAnalysis, CmpCandidate, CookieBannerFinding

STATIC_CONFIDENCE = 1.0
REJECT_INFERENCE_MIN = 0.9
SETTINGS_INFERENCE_MIN = 0.85

DYNAMIC_BANNER_NOTE = (
    "Cookie-Banner wird dynamisch geladen. Details können nur nach dem Rendern der Seite ermittelt werden."
)


@dataclass(frozen=True)
class BannerObservation:
    """What the static banner detector actually saw in the markup."""

    position: str = "unknown"
    has_accept: bool = False
    has_reject: bool = False
    has_settings: bool = False
    mentions_gdpr: bool = False
    mentions_cookies: bool = False
    explains_purpose: bool = False
    provides_details: bool = False
    text: str = ""


def _top_candidate(candidates: Sequence[CmpCandidate]) -> CmpCandidate | None:
    if not candidates:
        return None
    # max() keeps the first of equal confidences, i.e. table order.
    return max(candidates, key=lambda c: c.confidence)


def reconcile_cookie_banner(
    observed: BannerObservation | None,
    candidates: Sequence[CmpCandidate],
    tag_manager: bool = False,
) -> CookieBannerFinding:
    top = _top_candidate(candidates)

    if observed is not None:
        return CookieBannerFinding(
            detected=True,
            provenance="static-dom",
            confidence=STATIC_CONFIDENCE,
            provider=top.name if top else None,
            position=observed.position if observed.position in ("bottom", "top", "modal") else "unknown",
            has_accept_button=observed.has_accept,
            has_reject_button=observed.has_reject,
            has_settings_link=observed.has_settings,
            loaded_via="possibly-gtm-or-direct" if tag_manager else "direct-embed",
            text_analysis=BannerTextAnalysis(
                mentions_gdpr=observed.mentions_gdpr,
                mentions_cookies=observed.mentions_cookies,
                explains_purpose=observed.explains_purpose,
                provides_details=observed.provides_details,
            ),
            banner_text=observed.text,
        )

    if top is not None:
        conf = top.confidence
        inferred = {
            "hasAcceptButton": True,
            "hasRejectButton": conf >= REJECT_INFERENCE_MIN,
            "hasSettingsLink": conf >= SETTINGS_INFERENCE_MIN,
            "mentionsGDPR": True,
            "mentionsCookies": True,
            "explainsPurpose": conf >= REJECT_INFERENCE_MIN,
            "providesDetails": conf >= SETTINGS_INFERENCE_MIN,
        }
        return CookieBannerFinding(
            detected=True,
            provenance="cmp-script",
            confidence=conf,
            provider=top.name,
            derived_capabilities=inferred,
            has_accept_button=inferred["hasAcceptButton"],
            has_reject_button=inferred["hasRejectButton"],
            has_settings_link=inferred["hasSettingsLink"],
            loaded_via="google-tag-manager" if tag_manager else "direct-script",
            note=DYNAMIC_BANNER_NOTE,
            text_analysis=BannerTextAnalysis(
                mentions_gdpr=inferred["mentionsGDPR"],
                mentions_cookies=inferred["mentionsCookies"],
                explains_purpose=inferred["explainsPurpose"],
                provides_details=inferred["providesDetails"],
            ),
        )

    return CookieBannerFinding(detected=False, provenance="none", confidence=0.0)
