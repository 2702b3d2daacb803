"""
Kitchen Store Abstract Base Class

Defines the interface contract for the document store holding bills,
order-item masters and fallback timing records. Both InMemoryKitchenStore
and SqlKitchenStore implement these methods.

Change notifications are shared by every implementation: listeners
subscribe to a collection and receive a full, fresh snapshot each time
that collection is written.

Design Pattern: Strategy Pattern
    - Development runs entirely in memory
    - Staging and production persist through SQLAlchemy
    - The scheduler never knows which one it is talking to

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

from kitchen_queue.schemas import (
    Bill,
    BillStatus,
    LineItem,
    OrderItemMaster,
    TimingRecord,
)

logger = logging.getLogger(__name__)

Listener = Callable[[list[Any]], None]


class Collection(str, Enum):
    """Collections the kitchen subscribes to."""
    BILLS = "bills"
    ORDER_ITEMS = "order_items"
    TIMINGS = "timings"


class StoreError(Exception):
    """A read or write against the store failed."""


class BillNotFoundError(StoreError):
    """The requested bill does not exist."""

    def __init__(self, bill_id: str):
        super().__init__(f"Bill {bill_id} not found")
        self.bill_id = bill_id


class BaseKitchenStore(ABC):
    """
    Abstract base class for kitchen stores.

    Example:
        >>> store = get_kitchen_store()
        >>> unsubscribe = store.subscribe(Collection.BILLS, print, "2026-10-18")
        >>> await store.publish(Collection.BILLS)  # prints today's bills
        >>> unsubscribe()
    """

    def __init__(self):
        self._listeners: dict[Collection, list[tuple[Listener, Optional[str]]]] = {
            collection: [] for collection in Collection
        }

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the store backend.

        Returns:
            str: Provider name (e.g., "memory", "sql")
        """
        pass

    # =========================================================================
    # BILLS
    # =========================================================================

    @abstractmethod
    async def list_bills(self, business_date: str) -> list[Bill]:
        """All bills of a business date, newest first."""
        pass

    @abstractmethod
    async def get_bill(self, bill_id: str) -> Bill:
        """
        Read one bill.

        Raises:
            BillNotFoundError: If no bill has this id
        """
        pass

    @abstractmethod
    async def save_bill(self, bill: Bill) -> Bill:
        """Insert or replace a whole bill."""
        pass

    @abstractmethod
    async def replace_bill_items(
        self,
        bill_id: str,
        items: list[LineItem],
        status: BillStatus,
    ) -> Bill:
        """
        Replace the full line-item list and the status of a bill.

        Raises:
            BillNotFoundError: If no bill has this id
            StoreError: If the write fails
        """
        pass

    # =========================================================================
    # KITCHEN METADATA
    # =========================================================================

    @abstractmethod
    async def list_order_items(self) -> list[OrderItemMaster]:
        pass

    @abstractmethod
    async def save_order_item(self, order_item: OrderItemMaster) -> OrderItemMaster:
        pass

    @abstractmethod
    async def list_timings(self) -> list[TimingRecord]:
        pass

    @abstractmethod
    async def save_timing(self, record: TimingRecord) -> TimingRecord:
        pass

    @abstractmethod
    async def delete_all_timings(self) -> int:
        """
        Remove every fallback timing record.

        Returns:
            int: Number of records deleted
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the store is reachable.

        Returns:
            bool: True if the store answers
        """
        pass

    # =========================================================================
    # CHANGE NOTIFICATIONS
    # =========================================================================

    def subscribe(
        self,
        collection: Collection,
        listener: Listener,
        business_date: Optional[str] = None,
    ) -> Callable[[], None]:
        """
        Register a listener for a collection.

        Args:
            collection: Collection to watch
            listener: Called with the full snapshot after each change
            business_date: Bills only; restricts the snapshot to one day

        Returns:
            Callable: Removes the listener when called
        """
        entry = (listener, business_date)
        self._listeners[collection].append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners[collection]:
                self._listeners[collection].remove(entry)

        return unsubscribe

    async def snapshot(self, collection: Collection, business_date: Optional[str] = None) -> list[Any]:
        if collection == Collection.BILLS:
            return await self.list_bills(business_date) if business_date else []
        if collection == Collection.ORDER_ITEMS:
            return await self.list_order_items()
        return await self.list_timings()

    async def publish(self, collection: Collection) -> None:
        """Push a fresh snapshot of the collection to its listeners."""
        for listener, business_date in list(self._listeners[collection]):
            try:
                listener(await self.snapshot(collection, business_date))
            except Exception:
                logger.exception(f"Listener failed on {collection.value} change")
