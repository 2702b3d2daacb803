"""
Kitchen Timing Resolution

Finds the kitchen attributes (speed, station, priority, base minutes) of a
line item. Sources are tried in order and the first hit wins:

    1. order_item       - master matched by the line item's order-item id
    2. parent_menu_item - master whose parent menu item is the line item's
                          menu-item id (legacy bills point at menu items)
    3. timing_record    - fallback record keyed by order-item or menu-item id
    4. default          - medium speed, cook station, priority 1, 2 minutes

Missing metadata is never an error.

Also holds the name/category heuristic used to backfill masters that were
created before the kitchen fields existed.

Author: Khalil Bannouri
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from kitchen_queue.schemas import (
    KitchenTiming,
    LineItem,
    OrderItemMaster,
    Speed,
    StationType,
    TimingRecord,
)

DEFAULT_TIMING = KitchenTiming()

# Category -> priority, drinks last
CATEGORY_PRIORITY = {
    "oc": 1,
    "an_no": 2,
    "an_choi": 3,
    "giai_khat": 4,
}


@dataclass
class TimingSources:
    """
    Lookup tables built once per queue recomputation.

    Attributes:
        masters: Order-item masters by id
        masters_by_parent: Masters by parent menu-item id (first one wins)
        records: Timing records by order-item id and by menu-item id
    """
    masters: dict[str, OrderItemMaster] = field(default_factory=dict)
    masters_by_parent: dict[str, OrderItemMaster] = field(default_factory=dict)
    records: dict[str, TimingRecord] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        order_items: Iterable[OrderItemMaster],
        timing_records: Iterable[TimingRecord],
    ) -> "TimingSources":
        sources = cls()
        for master in order_items:
            sources.masters[master.id] = master
            if master.parent_menu_item_id:
                sources.masters_by_parent.setdefault(master.parent_menu_item_id, master)
        # One map for both keys; a later record overwrites an earlier one
        for record in timing_records:
            if record.menu_item_id:
                sources.records[record.menu_item_id] = record
            if record.order_item_id:
                sources.records[record.order_item_id] = record
        return sources


def _from_master(master: OrderItemMaster, source: str) -> KitchenTiming:
    return KitchenTiming(
        speed=master.speed or Speed.MEDIUM,
        station_type=master.station_type or StationType.COOK,
        priority=master.priority or 1,
        base_minutes=master.estimated_minutes or DEFAULT_TIMING.base_minutes,
        name=master.name,
        source=source,
    )


def _from_record(record: TimingRecord) -> KitchenTiming:
    return KitchenTiming(
        speed=record.speed or Speed.MEDIUM,
        station_type=record.station_type or StationType.COOK,
        priority=record.priority or 1,
        base_minutes=record.estimated_minutes or DEFAULT_TIMING.base_minutes,
        name=record.name,
        source="timing_record",
    )


def resolve_by_order_item(item: LineItem, sources: TimingSources) -> Optional[KitchenTiming]:
    master = sources.masters.get(item.order_item_id) if item.order_item_id else None
    return _from_master(master, "order_item") if master else None


def resolve_by_parent_menu_item(item: LineItem, sources: TimingSources) -> Optional[KitchenTiming]:
    if not item.menu_item_id:
        return None
    master = sources.masters_by_parent.get(item.menu_item_id)
    return _from_master(master, "parent_menu_item") if master else None


def resolve_by_timing_record(item: LineItem, sources: TimingSources) -> Optional[KitchenTiming]:
    record = None
    if item.order_item_id:
        record = sources.records.get(item.order_item_id)
    if record is None and item.menu_item_id:
        record = sources.records.get(item.menu_item_id)
    return _from_record(record) if record else None


Resolver = Callable[[LineItem, TimingSources], Optional[KitchenTiming]]

RESOLVERS: list[tuple[str, Resolver]] = [
    ("order_item", resolve_by_order_item),
    ("parent_menu_item", resolve_by_parent_menu_item),
    ("timing_record", resolve_by_timing_record),
]


def resolve_timing(item: LineItem, sources: TimingSources) -> KitchenTiming:
    """Run the resolvers in order, falling back to DEFAULT_TIMING."""
    for _name, resolver in RESOLVERS:
        timing = resolver(item, sources)
        if timing is not None:
            return timing
    return DEFAULT_TIMING


def resolve_display_name(item: LineItem, timing: KitchenTiming, sources: TimingSources) -> str:
    """Master name, then line-item name, then timing-record name."""
    master = sources.masters.get(item.order_item_id) if item.order_item_id else None
    if master is None and item.menu_item_id:
        master = sources.masters_by_parent.get(item.menu_item_id)
    if master is not None and master.name:
        return master.name
    if item.name:
        return item.name
    if timing.name:
        return timing.name
    return f"Item {item.reference}"


# =============================================================================
# MAINTENANCE HELPERS
# =============================================================================

def infer_timing(master: OrderItemMaster) -> dict:
    """
    Guess kitchen fields for a master from its name and category.

    Returns:
        dict: speed, station_type, priority and estimated_minutes
    """
    name = (master.name or "").lower()
    speed = Speed.MEDIUM
    station_type = StationType.COOK
    estimated_minutes = 2
    priority = CATEGORY_PRIORITY.get(master.category or "", 1)

    if "nướng" in name or "grill" in name:
        station_type = StationType.GRILL
        estimated_minutes = 3

    if "nhanh" in name or "fast" in name:
        speed = Speed.FAST
        estimated_minutes = 1
    elif "chậm" in name or "slow" in name:
        speed = Speed.SLOW
        estimated_minutes = 4

    return {
        "speed": speed,
        "station_type": station_type,
        "priority": priority,
        "estimated_minutes": estimated_minutes,
    }


def default_timing_record(master: OrderItemMaster, record_id: str) -> TimingRecord:
    """Fallback record seeded from a master with default kitchen values."""
    return TimingRecord(
        id=record_id,
        order_item_id=master.id,
        menu_item_id=master.parent_menu_item_id or master.id,
        name=master.name,
        speed=Speed.MEDIUM,
        station_type=StationType.COOK,
        priority=1,
        estimated_minutes=2,
    )
