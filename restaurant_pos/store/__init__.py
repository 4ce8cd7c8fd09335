"""
Key-Value Store Factory

Provides a single entry point for obtaining the configured store. The rest
of the application stays agnostic about which backend holds the data.

Usage:
    from restaurant_pos.store import get_kv_store

    store = get_kv_store()
    await store.set("restaurant:abc", {...})

Backend Switching:
    - KV_BACKEND=memory → InMemoryKeyValueStore (single process)
    - KV_BACKEND=redis → RedisKeyValueStore (shared, distributed locks)
    - KV_BACKEND=sql → SqlKeyValueStore (kv_store table)

Version: 1.0.0
"""

import logging
from functools import lru_cache

from restaurant_pos.core.config import KVBackend, get_settings
from restaurant_pos.store.base import BaseKeyValueStore
from restaurant_pos.store.memory import InMemoryKeyValueStore
from restaurant_pos.store.redis_store import RedisKeyValueStore
from restaurant_pos.store.sql import SqlKeyValueStore

logger = logging.getLogger(__name__)


@lru_cache()
def get_kv_store() -> BaseKeyValueStore:
    """
    Get the configured key-value store instance.

    The instance is cached so every request shares one store and, for the
    in-process backends, one set of writer locks.

    Returns:
        BaseKeyValueStore: Configured store instance
    """
    settings = get_settings()

    if settings.kv_backend == KVBackend.REDIS:
        logger.info("KV Store: Using RedisKeyValueStore")
        return RedisKeyValueStore(
            settings.redis_url,
            lock_timeout=settings.lock_timeout_seconds,
            lock_wait=settings.lock_wait_seconds,
        )

    if settings.kv_backend == KVBackend.SQL:
        logger.info("KV Store: Using SqlKeyValueStore")
        return SqlKeyValueStore(
            settings.database_url,
            echo=settings.database_echo,
            lock_wait=settings.lock_wait_seconds,
        )

    logger.info("KV Store: Using InMemoryKeyValueStore")
    return InMemoryKeyValueStore(lock_wait=settings.lock_wait_seconds)


def reset_kv_store() -> None:
    """
    Clear the cached store instance.

    The next call to get_kv_store() will create a new instance.
    """
    get_kv_store.cache_clear()
    logger.debug("KV store cache cleared")


__all__ = [
    "get_kv_store",
    "reset_kv_store",
    "BaseKeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "SqlKeyValueStore",
]
