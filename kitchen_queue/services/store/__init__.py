"""
Kitchen Store Factory

Provides a single entry point for obtaining the kitchen store instance.
The rest of the application stays agnostic about where bills live.

Usage:
    from kitchen_queue.services.store import get_kitchen_store

    # Returns InMemoryKitchenStore or SqlKitchenStore based on settings
    store = get_kitchen_store()

    bills = await store.list_bills("2026-10-18")

Environment Switching:
    - ENV_MODE=development → InMemoryKitchenStore
    - ENV_MODE=staging     → SqlKitchenStore
    - ENV_MODE=production  → SqlKitchenStore
    - STORE_BACKEND=memory|sql overrides the above

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from kitchen_queue.core.config import get_settings
from kitchen_queue.services.store.base import (
    BaseKitchenStore,
    BillNotFoundError,
    Collection,
    StoreError,
)
from kitchen_queue.services.store.memory import InMemoryKitchenStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_kitchen_store() -> BaseKitchenStore:
    """
    Get the configured kitchen store instance.

    The instance is cached so every component shares the same store and
    the same change-notification listeners.

    Returns:
        BaseKitchenStore: Configured store instance
    """
    settings = get_settings()

    if settings.use_sql_store:
        # Imported lazily so development never builds a database engine
        from kitchen_queue.services.store.sql import SqlKitchenStore

        logger.info(f"Kitchen Store: Using SqlKitchenStore ({settings.env_mode.value} mode)")
        return SqlKitchenStore()

    logger.info(f"Kitchen Store: Using InMemoryKitchenStore ({settings.env_mode.value} mode)")
    return InMemoryKitchenStore()


def reset_kitchen_store() -> None:
    """
    Clear the cached store instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_kitchen_store.cache_clear()
    logger.debug("Kitchen store cache cleared")


__all__ = [
    "get_kitchen_store",
    "reset_kitchen_store",
    "BaseKitchenStore",
    "BillNotFoundError",
    "Collection",
    "InMemoryKitchenStore",
    "StoreError",
]
