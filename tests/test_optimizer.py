"""
Queue projection, ordering and the station view helpers.
"""

import logging

import pytest

from kitchen_queue.schemas import Bill, KitchenStatus, StationType
from kitchen_queue.services.kitchen.optimizer import (
    DEFAULT_BILL_ORDER,
    available_tables,
    average_wait_minutes,
    calculate_stats,
    cooking_items,
    filter_by_station,
    filter_by_table,
    format_wait,
    group_by_status,
    next_item,
    project_queue,
)
from tests.conftest import BUSINESS_DATE, NOW, make_bill, make_item


def project(bills, order_items, timing_records=()):
    return project_queue(bills, order_items, list(timing_records), now=NOW)


# =============================================================================
# EXPANSION
# =============================================================================

def test_batch_expands_into_one_unit_per_portion(order_items):
    bill = make_bill("b1", table=5, items=[make_item("oi_snail", quantity=3)])

    queue = project([bill], order_items)

    assert len(queue) == 3
    assert [unit.batch_order for unit in queue] == [1, 2, 3]
    assert {unit.batch_total for unit in queue} == {3}
    assert {unit.estimated_minutes for unit in queue} == {2}
    assert len({unit.score for unit in queue}) == 1
    assert queue[0].score == pytest.approx(1152)
    assert queue[0].name == "Snails with Lemongrass"
    assert queue[0].station_type == StationType.COOK


def test_unit_count_matches_quantities(order_items):
    bills = [
        make_bill("b1", items=[make_item("oi_squid", quantity=2, completed_count=1), make_item("oi_tea", quantity=3)]),
        make_bill("b2", table=7, age=4, items=[make_item("oi_snail")]),
    ]

    queue = project(bills, order_items)

    assert len(queue) == 6
    assert len({unit.unit_key for unit in queue}) == 6


def test_completed_units_come_first_in_batch_and_last_in_queue(order_items):
    item = make_item("oi_squid", quantity=3, completed_count=2, kitchen_status=KitchenStatus.COOKING)
    bill = make_bill("b1", items=[item])

    queue = project([bill], order_items)

    assert [(unit.batch_order, unit.is_completed) for unit in queue] == [
        (3, False), (1, True), (2, True),
    ]
    assert queue[1].kitchen_status == KitchenStatus.READY
    assert queue[0].kitchen_status == KitchenStatus.COOKING


def test_remaining_units_inherit_line_item_status(order_items):
    pending = make_item("oi_snail", kitchen_status=KitchenStatus.PENDING)
    unset = make_item("oi_tea")
    bill = make_bill("b1", items=[pending, unset])

    statuses = {unit.order_item_id: unit.kitchen_status for unit in project([bill], order_items)}

    assert statuses == {"oi_snail": KitchenStatus.PENDING, "oi_tea": KitchenStatus.COOKING}


def test_missing_bill_order_uses_default(order_items):
    bill = make_bill("b1", items=[make_item("oi_snail")])
    ordered = make_bill("b2", items=[make_item("oi_snail")], bill_order=4)

    orders = {unit.bill_id: unit.bill_order for unit in project([bill, ordered], order_items)}

    assert orders == {"b1": DEFAULT_BILL_ORDER, "b2": 4}


def test_bill_without_creation_time_is_skipped(order_items, caplog):
    broken = Bill(id="broken", date=BUSINESS_DATE, table_number=2, items=[make_item("oi_snail")])
    healthy = make_bill("b1", items=[make_item("oi_tea", quantity=2)])

    with caplog.at_level(logging.ERROR):
        queue = project([broken, healthy], order_items)

    assert [unit.bill_id for unit in queue] == ["b1", "b1"]
    assert "broken" in caplog.text


def test_bills_of_any_status_are_projected(order_items):
    paid = make_bill("paid", status="paid", items=[make_item("oi_tea", quantity=1, completed_count=1)])

    queue = project([paid], order_items)

    assert len(queue) == 1
    assert queue[0].is_completed


# =============================================================================
# ORDERING
# =============================================================================

def test_newer_bill_outscores_older_bill(order_items):
    older = make_bill("older", table=3, age=10, items=[make_item("oi_squid")])
    newer = make_bill("newer", table=4, age=1, items=[make_item("oi_squid")])

    queue = project([older, newer], order_items)

    assert [unit.bill_id for unit in queue] == ["newer", "older"]
    assert queue[0].score == pytest.approx(1092)
    assert queue[1].score == pytest.approx(552)


def test_scores_within_noise_band_fall_back_to_age(order_items):
    # 2 minutes vs 114 seconds: the scores differ by 6 points
    older = make_bill("older", age=2, items=[make_item("oi_snail")])
    newer = make_bill("newer", age=1.9, items=[make_item("oi_snail")])

    queue = project([newer, older], order_items)

    assert queue[1].score - queue[0].score == pytest.approx(6)
    assert [unit.bill_id for unit in queue] == ["older", "newer"]


def test_priority_beats_small_age_difference(order_items):
    drink = make_bill("drink", age=1, items=[make_item("oi_tea")])
    grill = make_bill("grill", age=2, items=[make_item("oi_squid")])

    queue = project([drink, grill], order_items)

    assert [unit.bill_id for unit in queue] == ["grill", "drink"]


def test_unfinished_units_precede_finished_ones(order_items):
    finished = make_bill("finished", age=0, items=[make_item("oi_squid", completed_count=1)])
    stale = make_bill("stale", age=90, items=[make_item("oi_tea")])

    queue = project([finished, stale], order_items)

    assert [unit.bill_id for unit in queue] == ["stale", "finished"]


def test_projection_is_deterministic(order_items, timing_records):
    bills = [
        make_bill("b1", age=3, items=[make_item("oi_squid", quantity=2), make_item("oi_ghost")]),
        make_bill("b2", table=8, age=7, items=[make_item(None, menu_item_id="mi_rice", quantity=2)]),
    ]

    first = project(bills, order_items, timing_records)
    second = project(bills, order_items, timing_records)

    assert [u.model_dump() for u in first] == [u.model_dump() for u in second]


# =============================================================================
# VIEWS
# =============================================================================

@pytest.fixture
def queue(order_items):
    bills = [
        make_bill("b1", table=5, age=12, items=[
            make_item("oi_squid", quantity=2, completed_count=1, kitchen_status=KitchenStatus.COOKING),
        ]),
        make_bill("b2", table=2, age=6, items=[
            make_item("oi_snail", kitchen_status=KitchenStatus.PENDING),
            make_item("oi_tea", kitchen_status=KitchenStatus.PENDING),
        ]),
    ]
    return project(bills, order_items)


def test_filters(queue):
    assert {unit.bill_id for unit in filter_by_table(queue, 2)} == {"b2"}
    assert filter_by_table(queue, None) == queue
    assert filter_by_table(queue, 99) == []

    grill = filter_by_station(queue, StationType.GRILL)
    assert {unit.order_item_id for unit in grill} == {"oi_squid"}
    assert filter_by_station(queue, None) == queue


def test_group_and_stats(queue):
    groups = group_by_status(queue)
    stats = calculate_stats(queue, NOW)

    assert len(groups[KitchenStatus.PENDING]) == 2
    assert stats.total == 4
    assert (stats.pending, stats.cooking, stats.ready) == (2, 1, 1)
    # (12 + 12 + 6 + 6) / 4
    assert stats.average_wait_minutes == 9


def test_empty_stats():
    stats = calculate_stats([], NOW)

    assert stats.total == 0
    assert average_wait_minutes([], NOW) == 0


def test_available_tables_sorted(queue):
    assert available_tables(queue) == [2, 5]


def test_next_and_cooking_items(queue):
    assert next_item(queue).kitchen_status == KitchenStatus.PENDING
    assert next_item(queue).bill_id == "b2"
    assert [unit.order_item_id for unit in cooking_items(queue)] == ["oi_squid"]
    assert next_item(cooking_items(queue)) is None


@pytest.mark.parametrize(
    "minutes, rendered",
    [(0, "0 min"), (45, "45 min"), (60, "1h 0m"), (65, "1h 5m"), (135, "2h 15m")],
)
def test_format_wait(minutes, rendered):
    assert format_wait(minutes) == rendered


def test_zone_less_bill_keeps_its_units(order_items):
    naive = Bill(
        id="naive",
        date=BUSINESS_DATE,
        table_number=5,
        created_at="2026-10-18T11:50:00",
        items=[{"order_item_id": "oi_squid", "quantity": 2}],
    )
    zoned = make_bill("zoned", age=5, items=[make_item("oi_tea")])

    queue = project([naive, zoned], order_items)

    assert [unit.bill_id for unit in queue] == ["zoned", "naive", "naive"]
    # 10 minutes old: 1000 - 500 - 100 + 2 + 150
    assert queue[1].score == pytest.approx(552)
