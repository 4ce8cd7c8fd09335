"""
Key-Value Store Abstract Base Class

Defines the interface contract for every store implementation. The engine
only ever talks to this interface, so restaurant state can live in process
memory, Redis or a SQL table without the ledgers noticing.

Contract:
    - Point get/set/delete on string keys holding JSON-compatible values
    - Prefix scan returning every value whose key starts with the prefix
    - No atomicity across keys; callers serialize writers through lock()

Design Pattern: Strategy Pattern
    - Runtime switching between backends via KV_BACKEND
    - Tests run against the in-memory implementation

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional


class BaseKeyValueStore(ABC):
    """
    Abstract base class for key-value stores.

    Values are plain JSON-compatible structures (dicts, lists, strings,
    numbers). Implementations must hand out copies so that mutating a
    returned value never changes stored state without a set().

    Example:
        >>> store = get_kv_store()
        >>> await store.set("table:r1:3", {"number": 3, "orders": []})
        >>> async with store.lock("lock:restaurant:r1"):
        ...     table = await store.get("table:r1:3")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the backend.

        Returns:
            str: Provider name (e.g., "memory", "redis", "sql")
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Fetch a single value.

        Returns:
            The stored value, or None when the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Create or overwrite a value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is not an error."""
        pass

    @abstractmethod
    async def get_by_prefix(self, prefix: str) -> list[Any]:
        """
        Return every value whose key starts with prefix.

        Ordering is not guaranteed.
        """
        pass

    @abstractmethod
    def lock(self, name: str) -> AbstractAsyncContextManager:
        """
        Exclusive writer lock for a named resource.

        Used as ``async with store.lock(name):``. Raises LockTimeout when
        the lock cannot be acquired within the configured wait.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the backend.

        Returns:
            bool: True if the store is reachable
        """
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None
