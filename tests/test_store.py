import asyncio
import os
import uuid

import pytest

from restaurant_pos.core.exceptions import LockTimeout
from restaurant_pos.store.locks import LocalLockRegistry
from restaurant_pos.store.memory import InMemoryKeyValueStore
from restaurant_pos.store.redis_store import RedisKeyValueStore, escape_glob
from restaurant_pos.store.sql import SqlKeyValueStore


async def test_memory_store_hands_out_copies() -> None:
    store = InMemoryKeyValueStore()
    await store.set("table:r1:1", {"number": 1, "orders": []})

    table = await store.get("table:r1:1")
    table["orders"].append("o1")

    assert await store.get("table:r1:1") == {"number": 1, "orders": []}


async def test_memory_store_prefix_scan_and_delete() -> None:
    store = InMemoryKeyValueStore()
    await store.set("order:r1:a", {"id": "a"})
    await store.set("order:r1:b", {"id": "b"})
    await store.set("order:r10:c", {"id": "c"})

    await store.delete("order:r1:b")
    await store.delete("order:r1:missing")

    assert await store.get_by_prefix("order:r1:") == [{"id": "a"}]
    assert await store.get("order:r1:b") is None


async def test_memory_lock_times_out() -> None:
    store = InMemoryKeyValueStore(lock_wait=0.05)

    async with store.lock("lock:restaurant:r1"):
        with pytest.raises(LockTimeout):
            async with store.lock("lock:restaurant:r1"):
                pass

        async with store.lock("lock:restaurant:r2"):
            pass


async def test_memory_lock_serializes_writers() -> None:
    store = InMemoryKeyValueStore()
    await store.set("counter", 0)

    async def bump() -> None:
        async with store.lock("lock:counter"):
            value = await store.get("counter")
            await asyncio.sleep(0)
            await store.set("counter", value + 1)

    await asyncio.gather(*[bump() for _ in range(30)])

    assert await store.get("counter") == 30


async def test_lock_registry_forgets_released_names() -> None:
    registry = LocalLockRegistry(lock_wait=0.05)

    for n in range(50):
        async with registry.hold(f"lock:restaurant-email-index:user{n}@bistro.test"):
            assert len(registry) == 1

    async with registry.hold("lock:restaurant:r1"):
        with pytest.raises(LockTimeout):
            async with registry.hold("lock:restaurant:r1"):
                pass
        assert len(registry) == 1

    assert len(registry) == 0


async def test_lock_registry_keeps_lock_while_contended() -> None:
    registry = LocalLockRegistry(lock_wait=1.0)
    order = []

    async def worker(tag: str) -> None:
        async with registry.hold("lock:restaurant:r1"):
            order.append(f"{tag}-in")
            await asyncio.sleep(0)
            order.append(f"{tag}-out")

    await asyncio.gather(worker("a"), worker("b"), worker("c"))

    assert order == ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"]
    assert len(registry) == 0


@pytest.fixture
async def sql_store(tmp_path):
    store = SqlKeyValueStore(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    await store.initialize()
    yield store
    await store.close()


async def test_sql_store_round_trip(sql_store) -> None:
    await sql_store.set("restaurant:r1", {"id": "r1", "name": "Bistro"})
    await sql_store.set("restaurant-email-index:a@b.test", "r1")
    await sql_store.set("restaurant:r1", {"id": "r1", "name": "Bistro 2"})

    assert await sql_store.get("restaurant:r1") == {"id": "r1", "name": "Bistro 2"}
    assert await sql_store.get("restaurant-email-index:a@b.test") == "r1"
    assert await sql_store.get("restaurant:missing") is None
    assert await sql_store.health_check() is True


async def test_sql_store_prefix_scan_is_literal(sql_store) -> None:
    await sql_store.set("inventory:r_1:flour", {"ingredient": "flour"})
    await sql_store.set("inventory:rx1:sugar", {"ingredient": "sugar"})
    await sql_store.set("inventory:r%1:salt", {"ingredient": "salt"})

    assert await sql_store.get_by_prefix("inventory:r_1:") == [{"ingredient": "flour"}]
    assert await sql_store.get_by_prefix("inventory:r%1:") == [{"ingredient": "salt"}]


async def test_sql_store_delete(sql_store) -> None:
    await sql_store.set("order:r1:a", {"id": "a"})

    await sql_store.delete("order:r1:a")
    await sql_store.delete("order:r1:a")

    assert await sql_store.get_by_prefix("order:r1:") == []


def test_escape_glob() -> None:
    assert escape_glob("order:r1:") == "order:r1:"
    assert escape_glob("inventory:r*1:[x]?") == r"inventory:r\*1:\[x\]\?"


@pytest.fixture
async def redis_store():
    url = os.environ.get("REDIS_URL")
    if not url:
        pytest.skip("REDIS_URL not set")
    store = RedisKeyValueStore(url, lock_timeout=5, lock_wait=0.2)
    if not await store.health_check():
        await store.close()
        pytest.skip("Redis not reachable")
    yield store
    await store.close()


async def test_redis_store_round_trip(redis_store) -> None:
    restaurant_id = f"test-{uuid.uuid4().hex}"
    prefix = f"order:{restaurant_id}:"

    await redis_store.set(f"{prefix}a", {"id": "a"})
    await redis_store.set(f"{prefix}b", {"id": "b"})
    await redis_store.delete(f"{prefix}b")

    assert await redis_store.get(f"{prefix}a") == {"id": "a"}
    assert await redis_store.get_by_prefix(prefix) == [{"id": "a"}]

    await redis_store.delete(f"{prefix}a")


async def test_redis_lock_times_out(redis_store) -> None:
    name = f"lock:restaurant:test-{uuid.uuid4().hex}"

    async with redis_store.lock(name):
        with pytest.raises(LockTimeout):
            async with redis_store.lock(name):
                pass
