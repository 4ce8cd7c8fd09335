"""
Redis Key-Value Store Implementation

Production implementation on top of redis-py's asyncio client. Used when
KV_BACKEND=redis so that several API workers share one restaurant state.

Storage:
    - Every value is stored as a JSON string under its composite key
    - Prefix scans use SCAN MATCH with the prefix glob-escaped, then MGET

Locking:
    - Writer locks are Redis distributed locks (SET NX PX under the hood),
      so serialization holds across processes and hosts
    - A lock auto-expires after lock_timeout seconds if its holder dies

Version: 1.0.0
"""

import json
import logging
import re
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError

from restaurant_pos.core.exceptions import LockTimeout, StoreUnavailable
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(prefix: str) -> str:
    """Escape Redis glob metacharacters so a prefix matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


class RedisKeyValueStore(BaseKeyValueStore):
    """
    Redis-backed store.

    Attributes:
        lock_timeout: Seconds before a held lock expires
        lock_wait: Seconds to wait for a lock before LockTimeout
        scan_count: COUNT hint passed to SCAN

    Example:
        >>> store = RedisKeyValueStore("redis://localhost:6379/0")
        >>> await store.set("sales:r1:2024-05-01", {"total": 0, "count": 0})
    """

    def __init__(
        self,
        url: str,
        lock_timeout: float = 30.0,
        lock_wait: float = 10.0,
        scan_count: int = 500,
        client: Optional[aioredis.Redis] = None,
    ):
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait
        self.scan_count = scan_count
        self._client = client or aioredis.from_url(url, decode_responses=True)

        logger.info(
            f"RedisKeyValueStore initialized "
            f"(lock_timeout={lock_timeout}s, lock_wait={lock_wait}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "redis"

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            logger.error(f"Redis {operation} failed: {e}")
            raise StoreUnavailable(f"Key-value store error during {operation}") from e

    async def get(self, key: str) -> Optional[Any]:
        with self._translate_errors("get"):
            raw = await self._client.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        with self._translate_errors("set"):
            await self._client.set(key, json.dumps(value))

    async def delete(self, key: str) -> None:
        with self._translate_errors("delete"):
            await self._client.delete(key)

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        pattern = f"{escape_glob(prefix)}*"
        with self._translate_errors("scan"):
            keys = [
                key
                async for key in self._client.scan_iter(match=pattern, count=self.scan_count)
            ]
            if not keys:
                return []
            raws = await self._client.mget(keys)

        # A key may vanish between SCAN and MGET
        return [json.loads(raw) for raw in raws if raw is not None]

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        lock = self._client.lock(
            name,
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_wait,
        )
        with self._translate_errors("lock"):
            acquired = await lock.acquire()
        if not acquired:
            logger.error(f"Lock timeout for {name} after {self.lock_wait}s")
            raise LockTimeout(f"Timed out waiting for {name}")

        logger.debug(f"Lock acquired: {name}")
        try:
            yield
        finally:
            try:
                await lock.release()
                logger.debug(f"Lock released: {name}")
            except LockError:
                logger.error(
                    f"Lock {name} expired before release "
                    f"(held longer than {self.lock_timeout}s)"
                )

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
