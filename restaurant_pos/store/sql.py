"""
SQL Key-Value Store Implementation

Keeps restaurant state in a single ``kv_store`` table (key TEXT primary key,
value JSON) through SQLAlchemy's async engine. Mirrors the layout of the
hosted key/value table earlier deployments persisted their data in, so
existing rows can be loaded as-is.

Locking is in-process only (asyncio), so run a single API worker with
this backend or switch to Redis.

Version: 1.0.0
"""

import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional

from sqlalchemy import Column, JSON, String, and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from restaurant_pos.core.exceptions import StoreUnavailable
from restaurant_pos.store.base import BaseKeyValueStore
from restaurant_pos.store.locks import LocalLockRegistry

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    """One composite key and its JSON value."""
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<KeyValueEntry {self.key}>"


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine, sizing the pool for server databases only."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
    )


class SqlKeyValueStore(BaseKeyValueStore):
    """
    SQLAlchemy-backed store.

    Call ``await store.initialize()`` once at startup to create the table.

    Example:
        >>> store = SqlKeyValueStore("sqlite+aiosqlite:///:memory:")
        >>> await store.initialize()
        >>> await store.set("product:r1:p1", {"name": "Soup"})
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        lock_wait: float = 10.0,
        engine: Optional[AsyncEngine] = None,
    ):
        self._engine = engine or build_engine(database_url, echo=echo)
        self._session_maker = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
        )
        self._locks = LocalLockRegistry(lock_wait=lock_wait)

        logger.info(f"SqlKeyValueStore initialized ({self._engine.url.get_backend_name()})")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "sql"

    async def initialize(self) -> None:
        """Create the kv_store table if needed."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ kv_store table ready")

    async def get(self, key: str) -> Optional[Any]:
        try:
            async with self._session_maker() as session:
                entry = await session.get(KeyValueEntry, key)
                return None if entry is None else entry.value
        except SQLAlchemyError as e:
            logger.error(f"SQL get failed for {key}: {e}")
            raise StoreUnavailable("Key-value store error during get") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            async with self._session_maker() as session:
                await session.merge(KeyValueEntry(key=key, value=value))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"SQL set failed for {key}: {e}")
            raise StoreUnavailable("Key-value store error during set") from e

    async def delete(self, key: str) -> None:
        try:
            async with self._session_maker() as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"SQL delete failed for {key}: {e}")
            raise StoreUnavailable("Key-value store error during delete") from e

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        # LIKE narrows the scan; substr keeps the match case-sensitive on SQLite
        query = select(KeyValueEntry.value).where(
            and_(
                KeyValueEntry.key.startswith(prefix, autoescape=True),
                func.substr(KeyValueEntry.key, 1, len(prefix)) == prefix,
            )
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"SQL prefix scan failed for {prefix}: {e}")
            raise StoreUnavailable("Key-value store error during scan") from e

    def lock(self, name: str) -> AbstractAsyncContextManager:
        return self._locks.hold(name)

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._engine.dispose()
