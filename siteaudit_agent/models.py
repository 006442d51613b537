from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Domain = Literal["seo", "privacy", "media"]
Priority = Literal["high", "medium", "low"]
Band = Literal["excellent", "good", "basic", "poor"]
Provenance = Literal["static-dom", "cmp-script", "none"]
FieldStatus = Literal["good", "warning", "error"]


class ApiModel(BaseModel):
    # JSON keys are camelCase for the dashboard; Python code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeRequest(ApiModel):
    url: str = Field(..., min_length=1)
    domain: Domain = "seo"


class ErrorResponse(BaseModel):
    error: str


class Recommendation(ApiModel):
    title: str
    description: str
    priority: Priority
    category: str


class ScoreItem(ApiModel):
    label: str
    score: int
    max: int
    note: str | None = None


class ScoreCategory(ApiModel):
    points: int
    max: int
    items: list[ScoreItem] = []
    note: str | None = None

    @model_validator(mode="after")
    def _points_within_max(self) -> "ScoreCategory":
        if not 0 <= self.points <= self.max:
            raise ValueError(f"points {self.points} outside [0, {self.max}]")
        return self


class AnalysisReport(ApiModel):
    url: str
    timestamp: str
    domain: Domain
    score: int = Field(..., ge=0, le=100)
    band: Band
    summary: str
    recommendations: list[Recommendation] = []
    score_details: dict[str, ScoreCategory] = {}
    degraded_detectors: list[str] = []
    rubric_version: str


# SEO


class TextFieldCheck(ApiModel):
    content: str
    length: int
    status: FieldStatus
    recommendation: str


class TitleMeta(ApiModel):
    title: TextFieldCheck
    description: TextFieldCheck


class HeadingInfo(ApiModel):
    level: str
    text: str
    length: int


class LinkStats(ApiModel):
    internal: int = 0
    external: int = 0
    total: int = 0
    issues: list[str] = []


class SeoImageStats(ApiModel):
    total: int = 0
    with_alt: int = 0
    missing_alt: int = 0


class SeoReport(AnalysisReport):
    domain: Literal["seo"] = "seo"
    title_meta: TitleMeta
    headings: list[HeadingInfo]
    heading_analysis: str
    links: LinkStats
    images: SeoImageStats
    word_count: int
    page_content: str


# Privacy


class CompositeFinding(ApiModel):
    detected: bool = False
    provenance: Provenance = "none"
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    provider: str | None = None
    # Capabilities that were inferred from a script signature, not observed.
    derived_capabilities: dict[str, bool] = {}


class BannerTextAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mentions_gdpr: bool = Field(False, alias="mentionsGDPR")
    mentions_cookies: bool = Field(False, alias="mentionsCookies")
    explains_purpose: bool = Field(False, alias="explainsPurpose")
    provides_details: bool = Field(False, alias="providesDetails")


class CookieBannerFinding(CompositeFinding):
    position: Literal["bottom", "top", "modal", "unknown"] = "unknown"
    has_reject_button: bool = False
    has_accept_button: bool = False
    has_settings_link: bool = False
    loaded_via: str | None = None
    note: str | None = None
    text_analysis: BannerTextAnalysis = Field(default_factory=BannerTextAnalysis)
    banner_text: str = ""


class TagManagerInfo(ApiModel):
    detected: bool = False
    container_id: str | None = None
    data_layer: bool = False


class CmpCandidate(ApiModel):
    name: str
    confidence: float
    loaded_via: Literal["script-tag", "generic-detection"]


class LinkRef(ApiModel):
    text: str
    href: str


class GdprCompliance(ApiModel):
    has_privacy_policy: bool = False
    has_imprint: bool = False
    has_contact_info: bool = False
    right_to_erasure: bool = False
    data_portability: bool = False
    right_to_withdraw: bool = False
    privacy_policy_links: list[LinkRef] = []
    imprint_links: list[LinkRef] = []
    contact_links: list[LinkRef] = []


class ConsentManagement(ApiModel):
    detected: bool = False
    platform: str = "none"
    providers: list[str] = []
    iab_tcf_compliant: bool = False
    granular_settings: bool = False


class ThirdPartyService(ApiModel):
    name: str
    source: Literal["script"] = "script"
    url: str


class ThirdPartyServices(ApiModel):
    analytics: list[ThirdPartyService] = []
    marketing: list[ThirdPartyService] = []
    social: list[ThirdPartyService] = []
    other: list[ThirdPartyService] = []

    @property
    def total(self) -> int:
        return len(self.analytics) + len(self.marketing) + len(self.social) + len(self.other)


class CookieCategories(ApiModel):
    necessary: int = 0
    analytics: int = 0
    marketing: int = 0
    functional: int = 0


class CookieEstimate(ApiModel):
    total: int = 0
    categories: CookieCategories = Field(default_factory=CookieCategories)
    domains: list[str] = []


class PrivacyReport(AnalysisReport):
    domain: Literal["privacy"] = "privacy"
    cookie_banner: CookieBannerFinding
    gtm: TagManagerInfo
    detected_cmps: list[CmpCandidate] = Field([], alias="detectedCMPs")
    gdpr_compliance: GdprCompliance
    consent_management: ConsentManagement
    third_party_services: ThirdPartyServices
    cookies: CookieEstimate


# Media


class MissingAltImage(ApiModel):
    src: str
    alt: str | None = None


class MediaImageStats(ApiModel):
    total: int = 0
    formats: dict[str, int] = {}
    with_alt: int = 0
    missing_alt: int = 0
    images_without_alt: list[MissingAltImage] = []
    lazy: int = 0
    responsive: int = 0
    webp: int = 0
    avif: int = 0


class VideoStats(ApiModel):
    total: int = 0
    formats: dict[str, int] = {}
    with_poster: int = 0
    autoplay: int = 0
    muted: int = 0
    lazy: int = 0


class FontStats(ApiModel):
    total: int = 0
    formats: dict[str, int] = {}
    preloaded: int = 0
    display_swap: int = 0
    external: int = 0


class IconStats(ApiModel):
    total: int = 0
    svg: int = 0
    icon_font: int = 0
    sprites: int = 0


class ResourceHints(ApiModel):
    preload: int = 0
    prefetch: int = 0
    preconnect: int = 0
    dns_prefetch: int = 0

    @property
    def has_any(self) -> bool:
        return (self.preload + self.prefetch + self.preconnect + self.dns_prefetch) > 0


class MediaReport(AnalysisReport):
    domain: Literal["media"] = "media"
    images: MediaImageStats
    videos: VideoStats
    fonts: FontStats
    icons: IconStats
    resource_hints: ResourceHints
