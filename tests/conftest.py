"""
Shared fixtures: a fixed clock, record factories and an in-memory store.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ["ENV_MODE"] = "development"
os.environ["STORE_BACKEND"] = "memory"

from kitchen_queue.schemas import (
    Bill,
    LineItem,
    OrderItemMaster,
    Speed,
    StationType,
    TimingRecord,
)
from kitchen_queue.services.kitchen import (
    KitchenErrorState,
    KitchenQueueAggregator,
    KitchenTransitionController,
)
from kitchen_queue.services.store import InMemoryKitchenStore

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
BUSINESS_DATE = "2026-10-18"


def minutes_ago(minutes: float) -> datetime:
    return NOW - timedelta(minutes=minutes)


def make_bill(
    bill_id: str,
    table: int = 5,
    age: float = 0,
    items=None,
    date: str = BUSINESS_DATE,
    **extra,
) -> Bill:
    return Bill(
        id=bill_id,
        date=date,
        table_number=table,
        created_at=minutes_ago(age),
        items=items or [],
        **extra,
    )


def make_item(reference: str = "oi_squid", quantity: int = 1, **extra) -> LineItem:
    return LineItem(order_item_id=reference, quantity=quantity, **extra)


@pytest.fixture
def order_items() -> list[OrderItemMaster]:
    return [
        OrderItemMaster(
            id="oi_squid",
            name="Grilled Squid",
            speed=Speed.MEDIUM,
            station_type=StationType.GRILL,
            priority=1,
            estimated_minutes=3,
            parent_menu_item_id="mi_squid",
        ),
        OrderItemMaster(
            id="oi_snail",
            name="Snails with Lemongrass",
            speed=Speed.FAST,
            station_type=StationType.COOK,
            priority=1,
            estimated_minutes=2,
            parent_menu_item_id="mi_snail",
        ),
        OrderItemMaster(
            id="oi_tea",
            name="Iced Tea",
            speed=Speed.FAST,
            station_type=StationType.COOK,
            priority=4,
            estimated_minutes=1,
        ),
    ]


@pytest.fixture
def timing_records() -> list[TimingRecord]:
    return [
        TimingRecord(
            id="kt_rice",
            menu_item_id="mi_rice",
            name="Fried Rice",
            speed=Speed.SLOW,
            station_type=StationType.COOK,
            priority=2,
            estimated_minutes=4,
        ),
    ]


@pytest.fixture
def store() -> InMemoryKitchenStore:
    return InMemoryKitchenStore()


@pytest.fixture
def errors() -> KitchenErrorState:
    return KitchenErrorState()


@pytest.fixture
def controller(store, errors) -> KitchenTransitionController:
    return KitchenTransitionController(store, errors, clock=lambda: NOW)


@pytest.fixture
def aggregator(errors) -> KitchenQueueAggregator:
    return KitchenQueueAggregator(errors=errors, clock=lambda: NOW)
