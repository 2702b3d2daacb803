"""
Dispatch score and cooking-time estimates.
"""

import pytest

from kitchen_queue.schemas import KitchenStatus, KitchenTiming, Speed
from kitchen_queue.services.kitchen.scoring import (
    ScoringWeights,
    derived_status,
    estimated_minutes,
    score_unit,
)
from tests.conftest import NOW, minutes_ago


def test_score_formula():
    # 1000 - 10*50 - 10*10 + 1*2 + (4-1)*50
    assert score_unit(minutes_ago(10), priority=1, now=NOW) == pytest.approx(552)


def test_fresh_unit_score():
    assert score_unit(NOW, priority=4, now=NOW) == pytest.approx(1002)


def test_score_is_floored():
    assert score_unit(minutes_ago(120), priority=4, now=NOW) == 1.0


def test_higher_priority_scores_higher():
    urgent = score_unit(minutes_ago(3), priority=1, now=NOW)
    drink = score_unit(minutes_ago(3), priority=4, now=NOW)

    assert urgent - drink == pytest.approx(150)


def test_score_decreases_with_bill_age():
    scores = [score_unit(minutes_ago(age), priority=2, now=NOW) for age in (0, 1, 5, 10)]

    assert scores == sorted(scores, reverse=True)
    assert scores[0] - scores[1] == pytest.approx(60)


def test_custom_weights():
    weights = ScoringWeights(base=100, waiting=0, order_age=0, quantity=0, priority=10, floor=0)

    assert score_unit(minutes_ago(30), priority=2, now=NOW, weights=weights) == pytest.approx(120)


def test_missing_creation_time_raises():
    with pytest.raises(TypeError):
        score_unit(None, priority=1, now=NOW)


@pytest.mark.parametrize(
    "speed, expected",
    [(Speed.FAST, 2), (Speed.MEDIUM, 5), (Speed.SLOW, 10)],
)
def test_estimated_minutes_per_unit(speed, expected):
    assert estimated_minutes(1, KitchenTiming(speed=speed)) == expected


def test_estimated_minutes_scales_with_quantity():
    assert estimated_minutes(3, KitchenTiming(speed=Speed.FAST)) == 6
    assert estimated_minutes(2, None) == 10


def test_derived_status():
    assert derived_status(3, 0) == KitchenStatus.PENDING
    assert derived_status(3, 0, started=True) == KitchenStatus.COOKING
    assert derived_status(3, 2) == KitchenStatus.COOKING
    assert derived_status(3, 3) == KitchenStatus.READY
