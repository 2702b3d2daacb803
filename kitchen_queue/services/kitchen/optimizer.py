"""
Kitchen Queue Projector

Turns the day's bills into one ordered queue of individually trackable
units. Each line item of quantity Q with C units done becomes Q units:
C of them completed (ready) and Q - C still to cook.

Ordering:
    1. Units still to cook come before completed units.
    2. Within a class, a score gap larger than the noise band puts the
       higher score first.
    3. Otherwise the older bill goes first.

The projection is a pure function of its inputs and `now`. A bill whose
items cannot be expanded is logged and contributes no units.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Iterable, Optional

from kitchen_queue.schemas import (
    Bill,
    KitchenStats,
    KitchenStatus,
    OrderItemMaster,
    QueueUnit,
    StationType,
    TimingRecord,
)
from kitchen_queue.services.kitchen.scoring import (
    ScoringWeights,
    estimated_minutes,
    minutes_between,
    score_unit,
)
from kitchen_queue.services.kitchen.timing import (
    TimingSources,
    resolve_display_name,
    resolve_timing,
)

logger = logging.getLogger(__name__)

DEFAULT_BILL_ORDER = 999


# =============================================================================
# PROJECTION
# =============================================================================

def expand_bill(
    bill: Bill,
    sources: TimingSources,
    now: datetime,
    weights: ScoringWeights = ScoringWeights(),
    default_bill_order: int = DEFAULT_BILL_ORDER,
) -> list[QueueUnit]:
    """
    Expand every line item of one bill into queue units.

    Raises:
        TypeError: If the bill has no usable creation time
    """
    units: list[QueueUnit] = []
    bill_order = bill.bill_order or default_bill_order

    for item in bill.items:
        timing = resolve_timing(item, sources)
        name = resolve_display_name(item, timing, sources)
        quantity = item.quantity
        completed = min(item.completed_count, quantity)
        remaining = max(0, quantity - completed)

        # Every unit of the batch shares the same score inputs
        score = score_unit(
            created_at=bill.created_at,
            priority=timing.priority,
            now=now,
            quantity=1,
            weights=weights,
        )
        minutes = estimated_minutes(1, timing)

        def make_unit(batch_order: int, status: KitchenStatus, is_completed: bool) -> QueueUnit:
            return QueueUnit(
                bill_id=bill.id,
                table_number=bill.table_number,
                created_at=bill.created_at,
                bill_order=bill_order,
                order_item_id=item.order_item_id,
                menu_item_id=item.menu_item_id,
                name=name,
                timing=timing,
                kitchen_status=status,
                batch_order=batch_order,
                batch_total=quantity,
                score=score,
                estimated_minutes=minutes,
                is_completed=is_completed,
                start_time=item.start_time,
                completed_time=item.completed_time,
            )

        for index in range(completed):
            units.append(make_unit(index + 1, KitchenStatus.READY, True))

        pending_status = item.kitchen_status or KitchenStatus.COOKING
        for index in range(remaining):
            units.append(make_unit(completed + index + 1, pending_status, False))

    return units


def _is_done(unit: QueueUnit) -> bool:
    return unit.is_completed or unit.kitchen_status == KitchenStatus.READY


def compare_units(a: QueueUnit, b: QueueUnit, noise_band: float = 10.0) -> int:
    """Comparator for the global queue order (negative = a first)."""
    a_done, b_done = _is_done(a), _is_done(b)
    if a_done != b_done:
        return 1 if a_done else -1

    if abs(a.score - b.score) > noise_band:
        return -1 if a.score > b.score else 1

    if a.created_at == b.created_at:
        return 0
    return -1 if a.created_at < b.created_at else 1


def project_queue(
    bills: Iterable[Bill],
    order_items: Iterable[OrderItemMaster],
    timing_records: Iterable[TimingRecord],
    now: Optional[datetime] = None,
    weights: ScoringWeights = ScoringWeights(),
    default_bill_order: int = DEFAULT_BILL_ORDER,
) -> list[QueueUnit]:
    """
    Build the ordered kitchen queue.

    All bills are included whatever their status, so finished work stays
    visible at the bottom of the queue.

    Args:
        bills: Bills of the business day
        order_items: Order-item masters
        timing_records: Fallback timing records
        now: Reference instant (defaults to the current UTC time)
        weights: Score weights
        default_bill_order: Sequence hint for bills without one

    Returns:
        list[QueueUnit]: Units in dispatch order
    """
    now = now or datetime.now(timezone.utc)
    sources = TimingSources.build(order_items, timing_records)

    units: list[QueueUnit] = []
    for bill in bills:
        try:
            units.extend(expand_bill(bill, sources, now, weights, default_bill_order))
        except Exception:
            logger.exception(f"Error processing items of bill {bill.id}; skipping it")

    return sorted(
        units,
        key=cmp_to_key(lambda a, b: compare_units(a, b, weights.noise_band)),
    )


# =============================================================================
# VIEWS
# =============================================================================

def filter_by_table(units: list[QueueUnit], table_number: Optional[int]) -> list[QueueUnit]:
    """Units of one table (all units when no table is given)."""
    if table_number is None:
        return units
    return [unit for unit in units if unit.table_number == table_number]


def filter_by_station(units: list[QueueUnit], station: Optional[StationType]) -> list[QueueUnit]:
    """Units produced by one kitchen station (all units when none is given)."""
    if station is None:
        return units
    return [unit for unit in units if unit.station_type == station]


def group_by_status(units: list[QueueUnit]) -> dict[KitchenStatus, list[QueueUnit]]:
    groups: dict[KitchenStatus, list[QueueUnit]] = {}
    for unit in units:
        groups.setdefault(unit.kitchen_status or KitchenStatus.PENDING, []).append(unit)
    return groups


def average_wait_minutes(units: list[QueueUnit], now: Optional[datetime] = None) -> int:
    """Mean minutes since bill creation over the units, rounded."""
    if not units:
        return 0
    now = now or datetime.now(timezone.utc)
    total = sum(minutes_between(unit.created_at, now) for unit in units)
    return round(total / len(units))


def calculate_stats(units: list[QueueUnit], now: Optional[datetime] = None) -> KitchenStats:
    grouped = group_by_status(units)
    return KitchenStats(
        total=len(units),
        pending=len(grouped.get(KitchenStatus.PENDING, [])),
        cooking=len(grouped.get(KitchenStatus.COOKING, [])),
        ready=len(grouped.get(KitchenStatus.READY, [])),
        average_wait_minutes=average_wait_minutes(units, now),
    )


def available_tables(units: list[QueueUnit]) -> list[int]:
    """Distinct table numbers present in the queue, ascending."""
    return sorted({unit.table_number for unit in units})


def next_item(units: list[QueueUnit]) -> Optional[QueueUnit]:
    """First unit nobody has started yet."""
    return next((unit for unit in units if unit.kitchen_status == KitchenStatus.PENDING), None)


def cooking_items(units: list[QueueUnit]) -> list[QueueUnit]:
    return [unit for unit in units if unit.kitchen_status == KitchenStatus.COOKING]


def format_wait(minutes: int) -> str:
    """Render a wait like '45 min' or '1h 5m'."""
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"
