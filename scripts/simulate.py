"""
Kitchen Rush Simulation Script

Fills a development server with dishes and bills, then plays a kitchen
crew firing start/complete actions concurrently against the queue.
Run from project root: python scripts/simulate.py

Requires ENV_MODE=development on the server (intake endpoints).

Author: Khalil_Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
import uuid
from datetime import datetime, timezone, timedelta
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from kitchen_queue.core.config import get_settings

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_BILLS = 20
TABLES = list(range(1, 13))

# Dish variants with kitchen metadata
ORDER_ITEMS = [
    {"id": "oi_grilled_squid", "name": "Grilled Squid", "speed": "medium", "station_type": "grill", "priority": 1, "estimated_minutes": 3, "parent_menu_item_id": "mi_squid", "category": "oc"},
    {"id": "oi_snail_lemongrass", "name": "Snails with Lemongrass", "speed": "fast", "station_type": "cook", "priority": 1, "estimated_minutes": 2, "parent_menu_item_id": "mi_snail", "category": "oc"},
    {"id": "oi_fried_rice", "name": "Seafood Fried Rice", "speed": "medium", "station_type": "cook", "priority": 2, "estimated_minutes": 2, "parent_menu_item_id": "mi_rice", "category": "an_no"},
    {"id": "oi_grilled_pork", "name": "Grilled Pork Ribs", "speed": "slow", "station_type": "grill", "priority": 2, "estimated_minutes": 4, "parent_menu_item_id": "mi_pork", "category": "an_no"},
    {"id": "oi_spring_rolls", "name": "Fried Spring Rolls", "speed": "fast", "station_type": "cook", "priority": 3, "estimated_minutes": 1, "parent_menu_item_id": "mi_rolls", "category": "an_choi"},
    {"id": "oi_iced_tea", "name": "Iced Tea", "speed": "fast", "station_type": "cook", "priority": 4, "estimated_minutes": 1, "parent_menu_item_id": "mi_tea", "category": "giai_khat"},
]


def generate_random_items() -> list[dict]:
    """Generate random line items, some linked only by menu item."""
    items = []
    for master in random.sample(ORDER_ITEMS, random.randint(1, 4)):
        item = {"quantity": random.randint(1, 3), "name": master["name"]}
        if random.random() < 0.8:
            item["order_item_id"] = master["id"]
        else:
            item["menu_item_id"] = master["parent_menu_item_id"]
        items.append(item)
    return items


def generate_bill(bill_num: int) -> dict[str, Any]:
    """Generate a bill opened within the last half hour."""
    created_at = datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 30))
    return {
        "id": f"bill_{uuid.uuid4().hex[:12]}",
        "date": get_settings().business_date(),
        "table_number": random.choice(TABLES),
        "status": "pending",
        "bill_order": bill_num,
        "created_at": created_at.isoformat(),
        "items": generate_random_items(),
    }


# =============================================================================
# SEEDING
# =============================================================================

async def seed_menu(client: httpx.AsyncClient) -> bool:
    """Register order-item masters and one fallback timing record."""
    for master in ORDER_ITEMS:
        response = await client.post(f"{API_BASE_URL}/api/order-items", json=master)
        if response.status_code != 200:
            print(f"   ❌ Order item {master['id']}: {response.text[:100]}")
            return False

    # The queue only computes once the timing collection is non-empty
    response = await client.post(
        f"{API_BASE_URL}/api/timings",
        json={
            "id": "kt_legacy_tea",
            "menu_item_id": "mi_tea",
            "name": "Iced Tea",
            "speed": "fast",
            "station_type": "cook",
            "priority": 4,
            "estimated_minutes": 1,
        },
    )
    return response.status_code == 200


async def send_bill(client: httpx.AsyncClient, bill_num: int) -> dict[str, Any]:
    """Push one bill through the intake endpoint."""
    payload = generate_bill(bill_num)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/bills", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        return {
            "bill_num": bill_num,
            "success": response.status_code == 200,
            "bill_id": payload["id"],
            "units": sum(item["quantity"] for item in payload["items"]),
            "error": None if response.status_code == 200 else response.text[:100],
            "time": elapsed,
        }
    except Exception as e:
        return {
            "bill_num": bill_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# KITCHEN CREW
# =============================================================================

async def cook(client: httpx.AsyncClient, station: str, rounds: int) -> dict[str, int]:
    """Take the top unit of a station, start it and finish it, `rounds` times."""
    done = failed = 0
    for _ in range(rounds):
        response = await client.get(
            f"{API_BASE_URL}/api/kitchen/queue", params={"station": station}
        )
        queue = [unit for unit in response.json()["queue"] if not unit["is_completed"]]
        if not queue:
            break

        unit = queue[0]
        reference = unit["order_item_id"] or unit["menu_item_id"]
        base = f"{API_BASE_URL}/api/kitchen/bills/{unit['bill_id']}/items/{reference}"

        await client.post(f"{base}/start")
        response = await client.post(
            f"{base}/complete", json={"batch_order": unit["batch_order"]}
        )
        if response.status_code == 200 and response.json()["success"]:
            done += 1
        else:
            failed += 1
    return {"done": done, "failed": failed}


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_bills: int = TOTAL_BILLS, rounds: int = 10) -> dict[str, Any]:
    """
    Run the kitchen rush.

    Args:
        num_bills: Number of bills to open
        rounds: Units each station tries to finish
    """
    print("=" * 70)
    print("🔥 KITCHEN RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Bills: {num_bills}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        if not await seed_menu(client):
            print("\n❌ Could not seed the menu. Is ENV_MODE=development?")
            return {"success": False}

        print("\n🚀 Opening bills...\n")
        results = await asyncio.gather(*[send_bill(client, i + 1) for i in range(num_bills)])

        print("👩‍🍳 Stations cooking...\n")
        cook_results = await asyncio.gather(
            cook(client, "cook", rounds),
            cook(client, "grill", rounds),
        )

        stats = (await client.get(f"{API_BASE_URL}/api/kitchen/stats")).json()
        error = (await client.get(f"{API_BASE_URL}/api/kitchen/error")).json()["error"]

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Bills opened: {len(successful)}/{num_bills}")
    print(f"🍽️  Units ordered: {sum(r.get('units', 0) for r in successful)}")
    print(f"🔥 Cook station: {cook_results[0]['done']} done, {cook_results[0]['failed']} failed")
    print(f"🔥 Grill station: {cook_results[1]['done']} done, {cook_results[1]['failed']} failed")
    print(f"\n📈 Queue: {stats['total']} units │ pending {stats['pending']} │ "
          f"cooking {stats['cooking']} │ ready {stats['ready']} │ "
          f"avg wait {stats['average_wait_minutes']} min")
    print(f"⏱️  Total Time: {total_time}s")

    if error:
        print(f"\n⚠️  Error banner: {error}")

    if failed:
        print(f"\n⚠️  Failed Bill Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Bill #{f['bill_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_bills,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "stations": cook_results,
        "stats": stats,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Kitchen Rush Simulation")
    parser.add_argument("--bills", type=int, default=TOTAL_BILLS, help="Number of bills")
    parser.add_argument("--rounds", type=int, default=10, help="Units per station")
    args = parser.parse_args()

    asyncio.run(run_simulation(args.bills, args.rounds))
