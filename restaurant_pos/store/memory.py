"""
In-Memory Key-Value Store

Process-local implementation used in development mode and by the test
suite. Values are deep-copied on the way in and out so callers behave
exactly as they would against a remote store.

Version: 1.0.0
"""

import copy
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional

from restaurant_pos.store.base import BaseKeyValueStore
from restaurant_pos.store.locks import LocalLockRegistry

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(BaseKeyValueStore):
    """
    Dictionary-backed store.

    Attributes:
        lock_wait: Seconds to wait for a writer lock before LockTimeout

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> await store.set("inventory:r1:flour", {"quantity": 10})
        >>> await store.get_by_prefix("inventory:r1:")
        [{'quantity': 10}]
    """

    def __init__(self, lock_wait: float = 10.0):
        self.lock_wait = lock_wait
        self._data: dict[str, Any] = {}
        self._locks = LocalLockRegistry(lock_wait=lock_wait)

        logger.info(f"InMemoryKeyValueStore initialized (lock_wait={lock_wait}s)")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        return [
            copy.deepcopy(value)
            for key, value in self._data.items()
            if key.startswith(prefix)
        ]

    def keys(self) -> list[str]:
        """Snapshot of stored keys."""
        return list(self._data)

    def lock(self, name: str) -> AbstractAsyncContextManager:
        return self._locks.hold(name)

    async def health_check(self) -> bool:
        """In-memory store is always available."""
        return True
