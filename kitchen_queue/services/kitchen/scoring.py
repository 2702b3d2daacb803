"""
Kitchen Dispatch Scoring

Pure functions used by the queue projector:
    - score_unit: urgency of one queued unit (higher = cook first)
    - estimated_minutes: cooking time from the resolved speed
    - derived_status: kitchen status implied by a batch's counters

Score formula (weights come from settings):

    score = base
            - waiting_minutes   * waiting_weight
            - order_age_minutes * order_age_weight
            + quantity          * quantity_weight
            + (4 - priority)    * priority_weight

floored at `floor`. With the shipped weights a unit loses 60 points per
minute its bill has been open.

Author: Khalil Bannouri
Version: 1.0.0
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from kitchen_queue.core.config import Settings
from kitchen_queue.schemas import KitchenStatus, KitchenTiming, Speed

SPEED_MINUTES = {
    Speed.FAST: 2,
    Speed.MEDIUM: 5,
    Speed.SLOW: 10,
}

LOWEST_PRIORITY = 4


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable weights of the dispatch score."""
    base: float = 1000.0
    waiting: float = 50.0
    order_age: float = 10.0
    quantity: float = 2.0
    priority: float = 50.0
    floor: float = 1.0
    noise_band: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoringWeights":
        return cls(
            base=settings.score_base,
            waiting=settings.score_waiting_weight,
            order_age=settings.score_order_age_weight,
            quantity=settings.score_quantity_weight,
            priority=settings.score_priority_weight,
            floor=settings.score_floor,
            noise_band=settings.score_noise_band,
        )


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def score_unit(
    created_at: datetime,
    priority: int,
    now: datetime,
    quantity: int = 1,
    weights: ScoringWeights = ScoringWeights(),
) -> float:
    """
    Compute the dispatch score of one unit.

    Args:
        created_at: Creation time of the unit's bill
        priority: 1 (highest) .. 4 (lowest)
        now: Reference instant of this recomputation
        quantity: Units counted for the batch bonus
        weights: Score weights

    Returns:
        float: Score, never below weights.floor
    """
    # No per-item timestamp exists, so the bill's age stands in for the wait
    waiting_minutes = minutes_between(created_at, now)
    order_age_minutes = minutes_between(created_at, now)

    score = (
        weights.base
        - waiting_minutes * weights.waiting
        - order_age_minutes * weights.order_age
        + quantity * weights.quantity
        + (LOWEST_PRIORITY - priority) * weights.priority
    )
    return max(score, weights.floor)


def estimated_minutes(quantity: int, timing: Optional[KitchenTiming]) -> int:
    """Minutes to cook `quantity` units at the timing's speed (medium if unknown)."""
    speed = timing.speed if timing else Speed.MEDIUM
    return SPEED_MINUTES.get(speed, SPEED_MINUTES[Speed.MEDIUM]) * quantity


def derived_status(quantity: int, completed_count: int, started: bool = False) -> KitchenStatus:
    """
    Status implied by the batch counters.

    Finished batches are ready, partly finished or started ones are cooking,
    anything else is pending.
    """
    if completed_count >= quantity:
        return KitchenStatus.READY
    if completed_count > 0 or started:
        return KitchenStatus.COOKING
    return KitchenStatus.PENDING
