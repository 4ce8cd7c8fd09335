"""
In-process writer locks.

asyncio.Lock objects keyed by name. Serializes writers inside a single
process only; multi-worker deployments need the Redis backend.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from restaurant_pos.core.exceptions import LockTimeout

logger = logging.getLogger(__name__)


class LocalLockRegistry:
    """
    Named asyncio locks with a bounded wait.

    A name's lock lives only while some coroutine holds or waits for it,
    so the registry stays as small as the set of contended names.
    """

    def __init__(self, lock_wait: float = 10.0):
        self.lock_wait = lock_wait
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, name: str) -> asyncio.Lock:
        self._users[name] = self._users.get(name, 0) + 1
        return self._locks.setdefault(name, asyncio.Lock())

    def _checkin(self, name: str) -> None:
        self._users[name] -= 1
        if self._users[name] == 0:
            del self._users[name]
            del self._locks[name]

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[None]:
        lock = self._checkout(name)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.lock_wait)
            except asyncio.TimeoutError:
                logger.error(f"Lock timeout for {name} after {self.lock_wait}s")
                raise LockTimeout(f"Timed out waiting for {name}")

            logger.debug(f"Lock acquired: {name}")
            try:
                yield
            finally:
                lock.release()
                logger.debug(f"Lock released: {name}")
        finally:
            self._checkin(name)
