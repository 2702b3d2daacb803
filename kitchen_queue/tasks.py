"""
Celery Tasks
Maintenance jobs over the kitchen metadata, run outside the request cycle.
"""

import asyncio
import logging
import time
from datetime import datetime

from kitchen_queue.celery_worker import celery_app
from kitchen_queue.core.config import get_settings
from kitchen_queue.services.kitchen.maintenance import (
    backfill_order_item_timing,
    seed_timing_records,
)
from kitchen_queue.services.store import get_kitchen_store

logger = logging.getLogger(__name__)


def run_job(job):
    """
    Run an async maintenance job against the configured store.

    Each task gets its own event loop, so pooled SQL connections are
    disposed before the loop closes.

    With the memory backend the worker holds its own empty store, so the
    job never touches the data of a running API process.
    """
    if not get_settings().use_sql_store:
        logger.warning(
            "Kitchen store is in memory: this job runs against the worker's own "
            "store, not the API process. Set STORE_BACKEND=sql to share data."
        )

    async def runner():
        try:
            return await job(get_kitchen_store())
        finally:
            if get_settings().use_sql_store:
                from kitchen_queue.database import engine

                await engine.dispose()

    return asyncio.run(runner())


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def seed_kitchen_timings(self) -> dict:
    """
    Rebuild the fallback timing records from the order-item masters.

    Returns:
        dict: Counts of deleted, created and failed records
    """
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: Seeding kitchen timings")
    start_time = time.time()

    result = run_job(seed_timing_records)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed
    logger.info(f"✅ Task {task_id}: {result['created']} timings seeded in {elapsed}s")
    return result


@celery_app.task(bind=True)
def backfill_order_items(self) -> dict:
    """
    Infer missing kitchen fields on order-item masters.

    Returns:
        dict: Counts of updated, skipped and failed masters
    """
    result = run_job(backfill_order_item_timing)
    result['task_id'] = self.request.id
    logger.info(
        f"✅ Task {self.request.id}: {result['updated']} updated, "
        f"{result['skipped']} skipped, {result['failed']} failed"
    )
    return result


@celery_app.task
def purge_kitchen_timings() -> dict:
    """
    Delete every fallback timing record (operator cleanup).
    """
    count = run_job(lambda store: store.delete_all_timings())
    return {
        'success': count > 0,
        'count': count,
        'message': f'{count} kitchen timings deleted' if count else 'No kitchen timings to delete',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
