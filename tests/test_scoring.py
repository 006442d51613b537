from __future__ import annotations

import pytest

from siteaudit_agent.scoring import band_for, category, final_score, item, proportional, round_half_up


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(7.49) == 7


def test_proportional():
    assert proportional(1, 2, 15) == 8
    assert proportional(0, 0, 15) == 15
    assert proportional(5, 2, 10) == 10


def test_category_clamps_and_notes():
    cat = category(30, [item("a", 10, 10), item("b", 8, 8), item("c", 5, 5), item("d", 3, 3), item("e", 3, 3), item("f", 3, 3)])
    assert cat.points == 30
    assert "32" in cat.note


def test_item_clamps_score():
    assert item("x", 99, 5).score == 5
    assert item("x", -3, 5).score == 0


def test_final_score_requires_hundred_point_rubric():
    with pytest.raises(ValueError):
        final_score({"a": category(50, [item("x", 50, 50)])})


def test_final_score_rounds():
    breakdown = {
        "a": category(60, [item("x", 45, 60)]),
        "b": category(40, [item("y", 0, 40)]),
    }
    assert final_score(breakdown) == 45


@pytest.mark.parametrize(
    "score,band",
    [(100, "excellent"), (90, "excellent"), (89, "good"), (70, "good"), (69, "basic"), (50, "basic"), (49, "poor"), (0, "poor")],
)
def test_band_for(score, band):
    assert band_for(score) == band
