"""
Reactive recomputation of the kitchen view.
"""

from kitchen_queue.schemas import KitchenStatus, StationType, TimingRecord
from kitchen_queue.services.kitchen import KitchenTransitionController
from tests.conftest import BUSINESS_DATE, NOW, make_bill, make_item


def test_waits_for_all_three_inputs(aggregator, order_items, timing_records):
    aggregator.on_bills([make_bill("b1", items=[make_item("oi_squid")])])
    aggregator.on_order_items(order_items)

    assert not aggregator.is_ready
    assert aggregator.view.queue == []

    aggregator.on_timings(timing_records)

    assert aggregator.is_ready
    assert len(aggregator.view.queue) == 1
    assert aggregator.view.computed_at == NOW


def test_emptied_input_keeps_previous_view(aggregator, order_items, timing_records):
    aggregator.on_order_items(order_items)
    aggregator.on_timings(timing_records)
    aggregator.on_bills([make_bill("b1", items=[make_item("oi_squid", quantity=2)])])

    aggregator.on_bills([])

    assert aggregator.recompute() is None
    assert len(aggregator.view.queue) == 2


def test_selection_filters_view(aggregator, order_items, timing_records):
    aggregator.on_order_items(order_items)
    aggregator.on_timings(timing_records)
    aggregator.on_bills([
        make_bill("b1", table=3, items=[make_item("oi_squid")]),
        make_bill("b2", table=9, items=[make_item("oi_snail", kitchen_status=KitchenStatus.PENDING)]),
    ])

    aggregator.select(table_number=9)
    assert [unit.bill_id for unit in aggregator.view.filtered_queue] == ["b2"]
    assert aggregator.view.stats.total == 1
    assert aggregator.view.available_tables == [3, 9]
    assert aggregator.view.next_item.bill_id == "b2"

    aggregator.select(station=StationType.GRILL)
    assert [unit.bill_id for unit in aggregator.view.filtered_queue] == ["b1"]
    assert aggregator.view.next_item is None
    assert len(aggregator.view.queue) == 2


def test_listeners_receive_each_view(aggregator, order_items, timing_records):
    views = []
    remove = aggregator.add_listener(views.append)

    aggregator.on_order_items(order_items)
    aggregator.on_timings(timing_records)
    aggregator.on_bills([make_bill("b1", items=[make_item("oi_tea")])])
    remove()
    aggregator.recompute()

    assert len(views) == 1
    assert views[0].stats.total == 1


def test_failed_recompute_reports_and_keeps_last_view(aggregator, errors, order_items, timing_records):
    aggregator.on_order_items(order_items)
    aggregator.on_timings(timing_records)
    aggregator.on_bills([make_bill("b1", items=[make_item("oi_tea")])])
    good = aggregator.view

    def broken_clock():
        raise RuntimeError("clock unavailable")

    aggregator.clock = broken_clock
    assert aggregator.recompute() is None

    assert aggregator.view is good
    assert errors.error == "Failed to calculate the kitchen queue"


async def test_store_changes_drive_recomputation(aggregator, store, errors, order_items, timing_records):
    aggregator.attach(store, BUSINESS_DATE)
    for master in order_items:
        await store.save_order_item(master)
    for record in timing_records:
        await store.save_timing(record)
    await store.save_bill(make_bill("b1", items=[make_item("oi_squid", quantity=2)]))
    await store.save_bill(make_bill("other-day", items=[make_item("oi_tea")], date="2026-10-17"))

    assert [unit.bill_id for unit in aggregator.view.queue] == ["b1", "b1"]

    controller = KitchenTransitionController(store, errors, clock=lambda: NOW)
    await controller.complete_cooking("b1", "oi_squid", 1)

    assert aggregator.view.stats.ready == 1
    assert aggregator.view.queue[-1].is_completed

    aggregator.detach()
    await controller.complete_cooking("b1", "oi_squid", 2)
    assert aggregator.view.stats.ready == 1


async def test_load_pulls_initial_snapshots(aggregator, store, order_items):
    for master in order_items:
        await store.save_order_item(master)
    await store.save_timing(TimingRecord(id="kt_1", menu_item_id="mi_rice"))
    await store.save_bill(make_bill("b1", items=[make_item("oi_snail", quantity=3)]))

    await aggregator.load(store, BUSINESS_DATE)

    assert aggregator.view.stats.total == 3
