"""
SQL Kitchen Store Implementation

Production implementation backed by PostgreSQL through SQLAlchemy's async
engine. Used when ENV_MODE=production or ENV_MODE=staging (or when
STORE_BACKEND=sql).

Line items live in a JSON column and are replaced as one document, so a
write never patches a single item in place.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import delete, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from kitchen_queue.database import async_session_maker
from kitchen_queue.models import BillRecord, KitchenTimingRecord, OrderItemRecord
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


def _bill_from_row(row: BillRecord) -> Bill:
    return Bill(
        id=row.id,
        date=row.business_date,
        table_number=row.table_number,
        status=row.status,
        bill_order=row.bill_order,
        created_at=row.created_at,
        updated_at=row.updated_at,
        items=[LineItem.model_validate(item) for item in (row.items or [])],
    )


def _bills_from_rows(rows) -> list[Bill]:
    """Convert rows one by one; a malformed document is logged and left out."""
    bills = []
    for row in rows:
        try:
            bills.append(_bill_from_row(row))
        except ValidationError as e:
            logger.error(f"Skipping malformed bill {row.id}: {e}")
    return bills


def _dump_items(items: list[LineItem]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


class SqlKitchenStore(BaseKitchenStore):
    """
    SQLAlchemy-backed kitchen store.

    Example:
        >>> store = SqlKitchenStore()
        >>> bills = await store.list_bills("2026-10-18")
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession] = async_session_maker):
        super().__init__()
        self._session_maker = session_maker

        logger.info("SqlKitchenStore initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "sql"

    # =========================================================================
    # BILLS
    # =========================================================================

    async def list_bills(self, business_date: str) -> list[Bill]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(BillRecord)
                    .where(BillRecord.business_date == business_date)
                    .order_by(BillRecord.created_at.desc())
                )
                return _bills_from_rows(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load bills for {business_date}: {e}") from e

    async def get_bill(self, bill_id: str) -> Bill:
        try:
            async with self._session_maker() as session:
                row = await session.get(BillRecord, bill_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load bill {bill_id}: {e}") from e
        if row is None:
            raise BillNotFoundError(bill_id)
        try:
            return _bill_from_row(row)
        except ValidationError as e:
            raise StoreError(f"Bill {bill_id} is malformed: {e}") from e

    async def save_bill(self, bill: Bill) -> Bill:
        try:
            async with self._session_maker() as session:
                row = BillRecord(
                    id=bill.id,
                    business_date=bill.date,
                    table_number=bill.table_number,
                    status=bill.status,
                    bill_order=bill.bill_order,
                    items=_dump_items(bill.items),
                    created_at=bill.created_at or datetime.now(timezone.utc),
                )
                row = await session.merge(row)
                await session.commit()
                await session.refresh(row)
                saved = _bill_from_row(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not save bill {bill.id}: {e}") from e

        await self.publish(Collection.BILLS)
        return saved

    async def replace_bill_items(
        self,
        bill_id: str,
        items: list[LineItem],
        status: BillStatus,
    ) -> Bill:
        try:
            async with self._session_maker() as session:
                row = await session.get(BillRecord, bill_id)
                if row is None:
                    raise BillNotFoundError(bill_id)
                row.items = _dump_items(items)
                row.status = status
                row.updated_at = datetime.now(timezone.utc)
                await session.commit()
                await session.refresh(row)
                saved = _bill_from_row(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not update bill {bill_id}: {e}") from e

        logger.debug(f"Bill {bill_id} items replaced ({len(items)} items, {status.value})")
        await self.publish(Collection.BILLS)
        return saved

    # =========================================================================
    # KITCHEN METADATA
    # =========================================================================

    async def list_order_items(self) -> list[OrderItemMaster]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(OrderItemRecord))
                return [
                    OrderItemMaster(
                        id=row.id,
                        name=row.name,
                        speed=row.speed,
                        station_type=row.station_type,
                        priority=row.priority,
                        estimated_minutes=row.estimated_minutes,
                        parent_menu_item_id=row.parent_menu_item_id,
                        category=row.category,
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load order items: {e}") from e

    async def save_order_item(self, order_item: OrderItemMaster) -> OrderItemMaster:
        try:
            async with self._session_maker() as session:
                await session.merge(OrderItemRecord(**order_item.model_dump()))
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not save order item {order_item.id}: {e}") from e

        await self.publish(Collection.ORDER_ITEMS)
        return order_item

    async def list_timings(self) -> list[TimingRecord]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(KitchenTimingRecord))
                return [
                    TimingRecord(
                        id=row.id,
                        order_item_id=row.order_item_id,
                        menu_item_id=row.menu_item_id,
                        name=row.name,
                        speed=row.speed,
                        station_type=row.station_type,
                        priority=row.priority,
                        estimated_minutes=row.estimated_minutes,
                        created_at=row.created_at,
                    )
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load kitchen timings: {e}") from e

    async def save_timing(self, record: TimingRecord) -> TimingRecord:
        values = record.model_dump(exclude={"created_at"})
        try:
            async with self._session_maker() as session:
                await session.merge(KitchenTimingRecord(**values))
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not save kitchen timing {record.id}: {e}") from e

        await self.publish(Collection.TIMINGS)
        return record

    async def delete_all_timings(self) -> int:
        try:
            async with self._session_maker() as session:
                result = await session.execute(delete(KitchenTimingRecord))
                await session.commit()
                count = result.rowcount or 0
        except SQLAlchemyError as e:
            raise StoreError(f"Could not delete kitchen timings: {e}") from e

        if count:
            await self.publish(Collection.TIMINGS)
        return count

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.now()))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Store health check failed: {e}")
            return False
