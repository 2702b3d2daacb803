"""
Kitchen Scheduling Module

Builds the prioritized kitchen work queue and applies cook actions.

Usage:
    from kitchen_queue.services.kitchen import project_queue, KitchenTransitionController

    queue = project_queue(bills, order_items, timing_records)
    await KitchenTransitionController(store).start_cooking(bill_id, reference)

Author: Khalil Bannouri
Version: 1.0.0
"""

from kitchen_queue.services.kitchen.aggregator import (
    KitchenQueueAggregator,
    KitchenQueueView,
    build_view,
)
from kitchen_queue.services.kitchen.optimizer import (
    available_tables,
    calculate_stats,
    cooking_items,
    filter_by_station,
    filter_by_table,
    format_wait,
    next_item,
    project_queue,
)
from kitchen_queue.services.kitchen.scoring import (
    ScoringWeights,
    derived_status,
    estimated_minutes,
    score_unit,
)
from kitchen_queue.services.kitchen.timing import TimingSources, resolve_timing
from kitchen_queue.services.kitchen.transitions import (
    KitchenErrorState,
    KitchenTransitionController,
    TransitionResult,
)

__all__ = [
    # Aggregation
    "KitchenQueueAggregator",
    "KitchenQueueView",
    "build_view",
    # Projection
    "project_queue",
    "filter_by_table",
    "filter_by_station",
    "calculate_stats",
    "available_tables",
    "next_item",
    "cooking_items",
    "format_wait",
    # Scoring
    "ScoringWeights",
    "score_unit",
    "estimated_minutes",
    "derived_status",
    # Timing
    "TimingSources",
    "resolve_timing",
    # Transitions
    "KitchenErrorState",
    "KitchenTransitionController",
    "TransitionResult",
]
