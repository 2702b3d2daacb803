"""
In-Memory Kitchen Store Implementation

Keeps bills, order-item masters and timing records in process memory.
Used in development mode (ENV_MODE=development) and by the test suite to:
    - Run the kitchen screen without a database
    - Drive the queue from the simulation script
    - Exercise transitions deterministically

Behavior:
    - Records are deep-copied on the way in and out, like a real store
    - Every write publishes a snapshot to subscribers
    - `fail_writes` makes bill writes raise StoreError for error-path testing

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone

from kitchen_queue.schemas import (
    Bill,
    BillStatus,
    LineItem,
    OrderItemMaster,
    TimingRecord,
)
from kitchen_queue.services.store.base import (
    BaseKitchenStore,
    BillNotFoundError,
    Collection,
    StoreError,
)

logger = logging.getLogger(__name__)


class InMemoryKitchenStore(BaseKitchenStore):
    """
    Dictionary-backed kitchen store.

    Attributes:
        fail_writes: When True, bill writes raise StoreError

    Example:
        >>> store = InMemoryKitchenStore()
        >>> await store.save_bill(Bill(id="b1", date="2026-10-18", table_number=5))
        >>> [b.id for b in await store.list_bills("2026-10-18")]
        ['b1']
    """

    def __init__(self, fail_writes: bool = False):
        super().__init__()
        self.fail_writes = fail_writes
        self._bills: dict[str, Bill] = {}
        self._order_items: dict[str, OrderItemMaster] = {}
        self._timings: dict[str, TimingRecord] = {}

        logger.info(f"InMemoryKitchenStore initialized (fail_writes={fail_writes})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    def _check_writable(self) -> None:
        if self.fail_writes:
            raise StoreError("Simulated store write failure")

    # =========================================================================
    # BILLS
    # =========================================================================

    async def list_bills(self, business_date: str) -> list[Bill]:
        bills = [bill for bill in self._bills.values() if bill.date == business_date]
        bills.sort(
            key=lambda bill: bill.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return [bill.model_copy(deep=True) for bill in bills]

    async def get_bill(self, bill_id: str) -> Bill:
        bill = self._bills.get(bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)
        return bill.model_copy(deep=True)

    async def save_bill(self, bill: Bill) -> Bill:
        self._check_writable()
        stored = bill.model_copy(deep=True)
        if stored.created_at is None:
            stored.created_at = datetime.now(timezone.utc)
        self._bills[stored.id] = stored
        await self.publish(Collection.BILLS)
        return stored.model_copy(deep=True)

    async def replace_bill_items(
        self,
        bill_id: str,
        items: list[LineItem],
        status: BillStatus,
    ) -> Bill:
        self._check_writable()
        bill = self._bills.get(bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)

        bill.items = [item.model_copy(deep=True) for item in items]
        bill.status = status
        bill.updated_at = datetime.now(timezone.utc)
        await self.publish(Collection.BILLS)
        return bill.model_copy(deep=True)

    # =========================================================================
    # KITCHEN METADATA
    # =========================================================================

    async def list_order_items(self) -> list[OrderItemMaster]:
        return [item.model_copy() for item in self._order_items.values()]

    async def save_order_item(self, order_item: OrderItemMaster) -> OrderItemMaster:
        self._order_items[order_item.id] = order_item.model_copy()
        await self.publish(Collection.ORDER_ITEMS)
        return order_item

    async def list_timings(self) -> list[TimingRecord]:
        return [record.model_copy() for record in self._timings.values()]

    async def save_timing(self, record: TimingRecord) -> TimingRecord:
        self._timings[record.id] = record.model_copy()
        await self.publish(Collection.TIMINGS)
        return record

    async def delete_all_timings(self) -> int:
        count = len(self._timings)
        self._timings.clear()
        if count:
            await self.publish(Collection.TIMINGS)
        return count

    async def health_check(self) -> bool:
        return True
