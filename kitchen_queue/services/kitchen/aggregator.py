"""
Kitchen Queue Aggregator

Keeps the latest snapshots of bills, order-item masters and timing
records, and re-runs the queue projection every time one of them changes
(as long as all three are non-empty). Each run publishes a
KitchenQueueView: the full queue, the view filtered by the selected
table/station, statistics, and the station helpers.

A failed recomputation keeps the last good view and reports on the
shared error state.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from kitchen_queue.schemas import (
    Bill,
    KitchenStats,
    OrderItemMaster,
    QueueUnit,
    StationType,
    TimingRecord,
)
from kitchen_queue.services.kitchen.optimizer import (
    DEFAULT_BILL_ORDER,
    available_tables,
    calculate_stats,
    cooking_items,
    filter_by_station,
    filter_by_table,
    next_item,
    project_queue,
)
from kitchen_queue.services.kitchen.scoring import ScoringWeights
from kitchen_queue.services.kitchen.transitions import Clock, KitchenErrorState, utc_now
from kitchen_queue.services.store.base import BaseKitchenStore, Collection

logger = logging.getLogger(__name__)


@dataclass
class KitchenQueueView:
    """Everything a station screen renders."""
    queue: list[QueueUnit] = field(default_factory=list)
    filtered_queue: list[QueueUnit] = field(default_factory=list)
    stats: KitchenStats = field(default_factory=KitchenStats)
    available_tables: list[int] = field(default_factory=list)
    next_item: Optional[QueueUnit] = None
    cooking_items: list[QueueUnit] = field(default_factory=list)
    computed_at: Optional[datetime] = None


ViewListener = Callable[[KitchenQueueView], None]


def build_view(
    queue: list[QueueUnit],
    table_number: Optional[int],
    station: Optional[StationType],
    now: datetime,
) -> KitchenQueueView:
    """Filter an ordered queue for one table/station and derive its statistics."""
    filtered = filter_by_station(filter_by_table(queue, table_number), station)
    return KitchenQueueView(
        queue=queue,
        filtered_queue=filtered,
        stats=calculate_stats(filtered, now),
        available_tables=available_tables(queue),
        next_item=next_item(filtered),
        cooking_items=cooking_items(filtered),
        computed_at=now,
    )


class KitchenQueueAggregator:
    """
    Reactive holder of the kitchen queue.

    Example:
        >>> aggregator = KitchenQueueAggregator(errors=KitchenErrorState())
        >>> aggregator.attach(store, "2026-10-18")
        >>> await aggregator.load(store, "2026-10-18")
        >>> aggregator.view.stats.total
        12
    """

    def __init__(
        self,
        errors: Optional[KitchenErrorState] = None,
        weights: ScoringWeights = ScoringWeights(),
        clock: Clock = utc_now,
        default_bill_order: int = DEFAULT_BILL_ORDER,
    ):
        self.errors = errors or KitchenErrorState()
        self.weights = weights
        self.clock = clock
        self.default_bill_order = default_bill_order

        self.bills: list[Bill] = []
        self.order_items: list[OrderItemMaster] = []
        self.timing_records: list[TimingRecord] = []

        self.selected_table: Optional[int] = None
        self.selected_station: Optional[StationType] = None

        self.view = KitchenQueueView()
        self._listeners: list[ViewListener] = []
        self._unsubscribers: list[Callable[[], None]] = []

    # =========================================================================
    # SNAPSHOT INPUTS
    # =========================================================================

    def on_bills(self, bills: list[Bill]) -> None:
        self.bills = list(bills)
        self.recompute()

    def on_order_items(self, order_items: list[OrderItemMaster]) -> None:
        self.order_items = list(order_items)
        self.recompute()

    def on_timings(self, timing_records: list[TimingRecord]) -> None:
        self.timing_records = list(timing_records)
        self.recompute()

    def select(self, table_number: Optional[int] = None, station: Optional[StationType] = None) -> None:
        """Change the table/station filter and refresh the view."""
        self.selected_table = table_number
        self.selected_station = station
        self.recompute()

    # =========================================================================
    # STORE WIRING
    # =========================================================================

    def attach(self, store: BaseKitchenStore, business_date: str) -> None:
        """Subscribe to the store's change notifications."""
        self.detach()
        self._unsubscribers = [
            store.subscribe(Collection.BILLS, self.on_bills, business_date),
            store.subscribe(Collection.ORDER_ITEMS, self.on_order_items),
            store.subscribe(Collection.TIMINGS, self.on_timings),
        ]
        logger.info(f"Aggregator attached to {store.provider_name} store for {business_date}")

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def load(self, store: BaseKitchenStore, business_date: str) -> None:
        """Pull the initial snapshots; a failed read reports and leaves that input as is."""
        loaders = (
            ("bills", lambda: store.list_bills(business_date), self.on_bills),
            ("order items", store.list_order_items, self.on_order_items),
            ("kitchen timings", store.list_timings, self.on_timings),
        )
        for label, fetch, apply in loaders:
            try:
                apply(await fetch())
            except Exception:
                logger.exception(f"Error loading {label}")
                self.errors.report(f"Failed to load {label}")

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # =========================================================================
    # RECOMPUTATION
    # =========================================================================

    @property
    def is_ready(self) -> bool:
        return bool(self.bills and self.order_items and self.timing_records)

    def recompute(self) -> Optional[KitchenQueueView]:
        """
        Rebuild the view from the current snapshots.

        Returns:
            KitchenQueueView: The new view, or None when inputs are missing
            or the projection failed
        """
        if not self.is_ready:
            return None

        try:
            now = self.clock()
            queue = project_queue(
                self.bills,
                self.order_items,
                self.timing_records,
                now=now,
                weights=self.weights,
                default_bill_order=self.default_bill_order,
            )
            view = build_view(queue, self.selected_table, self.selected_station, now)
        except Exception:
            logger.exception("Error calculating kitchen queue")
            self.errors.report("Failed to calculate the kitchen queue")
            return None

        self.view = view
        logger.debug(f"Kitchen queue recomputed: {len(view.queue)} units, {len(view.filtered_queue)} in view")

        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Kitchen view listener failed")
        return view
