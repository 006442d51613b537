from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from .models import Band, Recommendation, ScoreCategory, ScoreItem

RUBRIC_TOTAL = 100


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; scores round .5 upwards.
    return int(math.floor(value + 0.5))


def proportional(part: int, whole: int, max_points: int) -> int:
    """round(max_points * part / whole), with the share clamped to [0, 1]."""
    if whole <= 0:
        return max_points
    share = max(0.0, min(1.0, part / whole))
    return round_half_up(share * max_points)


def item(label: str, score: int, max_points: int, note: str | None = None) -> ScoreItem:
    return ScoreItem(label=label, score=max(0, min(max_points, int(score))), max=max_points, note=note)


def category(max_points: int, items: list[ScoreItem], note: str | None = None) -> ScoreCategory:
    """Sum the items of one rubric category, hard-clamped to [0, max_points]."""
    raw = sum(i.score for i in items)
    points = max(0, min(max_points, raw))
    if raw > max_points and note is None:
        note = f"Auf {max_points} Punkte begrenzt ({raw} erreicht)"
    return ScoreCategory(points=points, max=max_points, items=items, note=note)


def final_score(breakdown: dict[str, ScoreCategory]) -> int:
    total_max = sum(c.max for c in breakdown.values())
    if total_max != RUBRIC_TOTAL:
        raise ValueError(f"rubric maxima must sum to {RUBRIC_TOTAL}, got {total_max}")
    points = sum(c.points for c in breakdown.values())
    return max(0, min(100, round_half_up(100 * points / total_max)))


def band_for(score: int) -> Band:
    if score >= 90:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "basic"
    return "poor"


@dataclass
class Evaluation:
    """What a domain analyzer hands to the report assembler."""

    findings: dict[str, Any]
    score_details: dict[str, ScoreCategory]
    recommendations: list[Recommendation] = field(default_factory=list)
