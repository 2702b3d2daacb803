"""
Kitchen State Transitions

Applies the cook's actions to a bill's line items:
    - start_cooking:    item -> cooking, bill -> in_progress
    - complete_cooking: one more unit done; item -> ready when the batch
                        is finished; bill -> completed when every item is
    - undo_completed:   one unit back to cooking; bill -> in_progress

Each action reads the bill, rebuilds the whole line-item list and writes
it back in one replace. Actions on the same bill are serialized through a
per-bill asyncio.Lock; writers in other processes can still overwrite
each other.

Failures never propagate: they come back as an unsuccessful
TransitionResult and, for store failures, land on the shared error state.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from kitchen_queue.schemas import BillStatus, KitchenStatus, LineItem
from kitchen_queue.services.kitchen.scoring import derived_status
from kitchen_queue.services.store.base import (
    BaseKitchenStore,
    BillNotFoundError,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KitchenErrorState:
    """Single user-visible error message, kept until cleared."""

    def __init__(self):
        self.error: Optional[str] = None

    def report(self, message: str) -> None:
        self.error = message

    def clear(self) -> None:
        self.error = None


@dataclass
class TransitionResult:
    """
    Outcome of a transition.

    Attributes:
        success: Whether the bill was written
        bill_id: Target bill
        reference: Order-item or menu-item id of the targeted line item
        message: Human readable outcome
        bill_status: Bill status written (None when nothing was written)
    """
    success: bool
    bill_id: str
    reference: str
    message: str
    bill_status: Optional[BillStatus] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "bill_id": self.bill_id,
            "reference": self.reference,
            "message": self.message,
            "bill_status": self.bill_status,
        }


def _rebuild(item: LineItem, **changes) -> LineItem:
    # Re-validate so completion normalization applies to the new values
    return LineItem.model_validate({**item.model_dump(), **changes})


def _is_item_done(item: LineItem) -> bool:
    return (
        item.kitchen_status == KitchenStatus.READY
        or derived_status(item.quantity, item.completed_count) == KitchenStatus.READY
    )


class KitchenTransitionController:
    """
    Start/complete/undo commands against the kitchen store.

    Example:
        >>> controller = KitchenTransitionController(store, errors)
        >>> result = await controller.complete_cooking("bill_1", "oi_grilled_squid", 1)
        >>> result.bill_status
        <BillStatus.IN_PROGRESS: 'in_progress'>
    """

    def __init__(
        self,
        store: BaseKitchenStore,
        errors: Optional[KitchenErrorState] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.errors = errors or KitchenErrorState()
        self.clock = clock
        self._bill_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _apply(
        self,
        action: str,
        bill_id: str,
        reference: str,
        update_item: Callable[[LineItem], LineItem],
        bill_status: Callable[[list[LineItem]], BillStatus],
        error_message: str,
    ) -> TransitionResult:
        async with self._bill_locks[bill_id]:
            try:
                bill = await self.store.get_bill(bill_id)
                items = [
                    update_item(item) if item.matches(reference) else item
                    for item in bill.items
                ]
                status = bill_status(items)
                await self.store.replace_bill_items(bill_id, items, status)

            except BillNotFoundError as e:
                logger.warning(f"{action}: {e}")
                return TransitionResult(False, bill_id, reference, str(e))

            except Exception as e:
                logger.exception(f"{action} failed for bill {bill_id} / {reference}")
                self.errors.report(error_message)
                return TransitionResult(False, bill_id, reference, str(e))

        logger.info(f"{action}: bill {bill_id} / {reference} -> {status.value}")
        return TransitionResult(True, bill_id, reference, f"{action} applied", status)

    async def start_cooking(self, bill_id: str, reference: str) -> TransitionResult:
        """Mark the matching line items as cooking and stamp their start time."""
        now = self.clock()

        return await self._apply(
            "start_cooking",
            bill_id,
            reference,
            lambda item: _rebuild(item, kitchen_status=KitchenStatus.COOKING, start_time=now),
            lambda items: BillStatus.IN_PROGRESS,
            "Failed to update the item status",
        )

    async def complete_cooking(
        self,
        bill_id: str,
        reference: str,
        batch_order: int = 1,
    ) -> TransitionResult:
        """
        Count one more finished unit of the matching line items.

        `batch_order` is informational only: it is logged and never changes
        which unit is counted. Each call adds exactly one to the line item's
        completed count.
        """
        now = self.clock()

        def update(item: LineItem) -> LineItem:
            completed = item.completed_count + 1
            if completed >= item.quantity:
                return _rebuild(
                    item,
                    completed_count=completed,
                    kitchen_status=KitchenStatus.READY,
                    completed_time=now,
                )
            return _rebuild(item, completed_count=completed)

        def status(items: list[LineItem]) -> BillStatus:
            if all(_is_item_done(item) for item in items):
                return BillStatus.COMPLETED
            return BillStatus.IN_PROGRESS

        logger.debug(f"complete_cooking: bill {bill_id} / {reference} unit #{batch_order}")
        return await self._apply(
            "complete_cooking",
            bill_id,
            reference,
            update,
            status,
            "Failed to update the item status",
        )

    async def undo_completed(self, bill_id: str, reference: str) -> TransitionResult:
        """Take one finished unit back to cooking."""

        def update(item: LineItem) -> LineItem:
            return _rebuild(
                item,
                completed_count=max(0, item.completed_count - 1),
                kitchen_status=KitchenStatus.COOKING,
                completed_time=None,
            )

        return await self._apply(
            "undo_completed",
            bill_id,
            reference,
            update,
            lambda items: BillStatus.IN_PROGRESS,
            "Failed to undo the completed item",
        )

    async def delete_all_timings(self) -> dict:
        """
        Operator cleanup: remove every fallback timing record.

        Returns:
            dict: success flag and number of deleted records
        """
        try:
            count = await self.store.delete_all_timings()
        except Exception as e:
            logger.exception("Bulk delete of kitchen timings failed")
            self.errors.report(f"Failed to delete kitchen timings: {e}")
            return {"success": False, "count": 0}

        if count == 0:
            self.errors.report("No kitchen timing records to delete")
            return {"success": False, "count": 0}

        logger.info(f"Deleted {count} kitchen timing records")
        return {"success": True, "count": count}

    def clear_error(self) -> None:
        self.errors.clear()
