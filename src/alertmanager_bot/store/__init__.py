"""Subscriber storage backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from redis.asyncio import Redis

from alertmanager_bot.store.base import SubscriberStore
from alertmanager_bot.store.memory import MemoryStore
from alertmanager_bot.store.redis import RedisStore
from alertmanager_bot.store.sql import SQLStore

if TYPE_CHECKING:
    from alertmanager_bot.config import StoreSettings


async def create_store(settings: StoreSettings) -> SubscriberStore:
    """Create the subscriber store selected by configuration.

    Args:
        settings: Store settings.

    Returns:
        A ready-to-use SubscriberStore.

    Raises:
        StorageError: If the SQL schema cannot be created.
    """
    if settings.backend == "redis":
        return RedisStore(Redis.from_url(settings.redis_url), key=settings.redis_key)
    if settings.backend == "sql":
        store = SQLStore.from_url(settings.database_url)
        await store.create_schema()
        return store
    return MemoryStore()


__all__ = [
    "MemoryStore",
    "RedisStore",
    "SQLStore",
    "SubscriberStore",
    "create_store",
]
