"""
Kitchen Metadata Maintenance

Operator jobs over the kitchen metadata, run from Celery:
    - seed_timing_records: rebuild the fallback timing collection from the
      order-item masters with default kitchen values
    - backfill_order_item_timing: fill missing kitchen fields on masters
      from their name and category

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any

from kitchen_queue.services.kitchen.timing import default_timing_record, infer_timing
from kitchen_queue.services.store.base import BaseKitchenStore

logger = logging.getLogger(__name__)


async def seed_timing_records(store: BaseKitchenStore) -> dict[str, Any]:
    """
    Replace every timing record with one default record per master.

    Returns:
        dict: deleted / created / failed counts
    """
    deleted = await store.delete_all_timings()
    if deleted:
        logger.info(f"Removed {deleted} existing timing records")

    masters = await store.list_order_items()
    logger.info(f"Seeding timing records for {len(masters)} order items")

    created = failed = 0
    for master in masters:
        try:
            await store.save_timing(default_timing_record(master, f"kt_{master.id}"))
            created += 1
        except Exception:
            failed += 1
            logger.exception(f"Could not seed timing for order item {master.id}")

    return {"deleted": deleted, "created": created, "failed": failed}


async def backfill_order_item_timing(store: BaseKitchenStore) -> dict[str, Any]:
    """
    Fill speed, station, priority and minutes on masters that lack any of them.

    Returns:
        dict: updated / skipped / failed counts
    """
    updated = skipped = failed = 0
    for master in await store.list_order_items():
        if master.has_timing:
            skipped += 1
            continue
        try:
            fields = infer_timing(master)
            await store.save_order_item(master.model_copy(update=fields))
            updated += 1
            logger.info(
                f"Backfilled {master.name}: {fields['speed'].value}, "
                f"{fields['station_type'].value}, {fields['estimated_minutes']}m, "
                f"priority {fields['priority']}"
            )
        except Exception:
            failed += 1
            logger.exception(f"Could not backfill order item {master.id}")

    return {"updated": updated, "skipped": skipped, "failed": failed}
