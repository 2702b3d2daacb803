"""
HTTP surface, driven through FastAPI's TestClient in development mode.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from kitchen_queue.core.config import get_settings
from kitchen_queue.main import app
from kitchen_queue.services.store import reset_kitchen_store


@pytest.fixture
def client():
    reset_kitchen_store()
    with TestClient(app) as test_client:
        yield test_client
    reset_kitchen_store()


@pytest.fixture
def seeded(client):
    client.post("/api/order-items", json={
        "id": "oi_squid", "name": "Grilled Squid", "speed": "medium",
        "station_type": "grill", "priority": 1, "estimated_minutes": 3,
        "parent_menu_item_id": "mi_squid",
    })
    client.post("/api/order-items", json={
        "id": "oi_tea", "name": "Iced Tea", "speed": "fast",
        "station_type": "cook", "priority": 4, "estimated_minutes": 1,
    })
    client.post("/api/timings", json={"id": "kt_rice", "menu_item_id": "mi_rice", "name": "Fried Rice"})
    response = client.post("/api/bills", json={
        "id": "b1",
        "date": get_settings().business_date(),
        "table_number": 5,
        "created_at": (datetime.now(timezone.utc) - timedelta(minutes=3)).isoformat(),
        "items": [
            {"order_item_id": "oi_squid", "quantity": 2, "kitchen_status": "pending", "price": 85000},
            {"order_item_id": "oi_tea", "quantity": 1},
        ],
    })
    assert response.status_code == 200
    return client


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["queue"] == "/api/kitchen/queue"


def test_health_reports_store(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["store"] == "healthy"


def test_empty_queue(client):
    body = client.get("/api/kitchen/queue").json()

    assert body["queue"] == []
    assert body["stats"]["total"] == 0
    assert body["next_item"] is None


def test_queue_after_intake(seeded):
    body = seeded.get("/api/kitchen/queue").json()

    assert len(body["queue"]) == 3
    assert body["available_tables"] == [5]
    assert body["stats"]["pending"] == 2
    assert body["next_item"]["name"] == "Grilled Squid"
    assert body["error"] is None


def test_queue_filters(seeded):
    grill = seeded.get("/api/kitchen/queue", params={"station": "grill"}).json()
    other_table = seeded.get("/api/kitchen/queue", params={"table": 9}).json()

    assert {unit["order_item_id"] for unit in grill["queue"]} == {"oi_squid"}
    assert other_table["queue"] == []
    assert seeded.get("/api/kitchen/tables").json() == {"tables": [5]}
    assert seeded.get("/api/kitchen/stats", params={"station": "cook"}).json()["total"] == 1


def test_cook_flow(seeded):
    base = "/api/kitchen/bills/b1/items"

    started = seeded.post(f"{base}/oi_squid/start").json()
    assert started["success"]
    assert started["bill_status"] == "in_progress"

    seeded.post(f"{base}/oi_squid/complete", json={"batch_order": 1})
    seeded.post(f"{base}/oi_squid/complete", json={"batch_order": 2})
    finished = seeded.post(f"{base}/oi_tea/complete").json()
    assert finished["bill_status"] == "completed"

    stats = seeded.get("/api/kitchen/stats").json()
    assert stats["ready"] == 3

    undone = seeded.post(f"{base}/oi_tea/undo").json()
    assert undone["bill_status"] == "in_progress"
    assert seeded.get("/api/kitchen/stats").json()["cooking"] == 1


def test_unknown_bill_transition(client):
    body = client.post("/api/kitchen/bills/nope/items/oi_tea/start").json()

    assert body["success"] is False
    assert client.get("/api/kitchen/error").json() == {"error": None}


def test_delete_timings_and_error_banner(seeded):
    first = seeded.delete("/api/kitchen/timings").json()
    second = seeded.delete("/api/kitchen/timings").json()

    assert first == {"success": True, "count": 1}
    assert second == {"success": False, "count": 0}
    assert seeded.get("/api/kitchen/error").json()["error"] == "No kitchen timing records to delete"

    seeded.delete("/api/kitchen/error")
    assert seeded.get("/api/kitchen/error").json()["error"] is None


def test_invalid_bill_rejected(client):
    response = client.post("/api/bills", json={"id": "bad", "date": "2026-10-18", "table_number": -1})

    assert response.status_code == 422


def test_zone_less_bill_is_queued(seeded):
    naive = (datetime.now(timezone.utc) - timedelta(minutes=1)).replace(tzinfo=None)
    response = seeded.post("/api/bills", json={
        "id": "b2",
        "date": get_settings().business_date(),
        "table_number": 8,
        "created_at": naive.isoformat(),
        "items": [{"order_item_id": "oi_tea", "quantity": 2}],
    })

    assert response.status_code == 200
    body = seeded.get("/api/kitchen/queue", params={"table": 8}).json()
    assert len(body["queue"]) == 2
    assert seeded.get("/api/kitchen/tables").json() == {"tables": [5, 8]}
