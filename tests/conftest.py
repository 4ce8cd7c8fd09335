import asyncio
from typing import Any, Optional

import pytest

from restaurant_pos.core.config import Settings
from restaurant_pos.models import LineItem, ProductCategory
from restaurant_pos.services import POSEngine
from restaurant_pos.store.memory import InMemoryKeyValueStore


class YieldingStore(InMemoryKeyValueStore):
    """In-memory store that yields to the event loop on every call, like a network store."""

    async def get(self, key: str) -> Optional[Any]:
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        await super().set(key, value)


def line(
    name: str = "Burger",
    quantity: int = 1,
    price: float = 10.0,
    category: ProductCategory = ProductCategory.FOOD,
    product_id: Optional[str] = None,
) -> LineItem:
    return LineItem(
        product_id=product_id,
        name=name,
        quantity=quantity,
        price=price,
        category=category,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(lock_wait=1.0)


@pytest.fixture
def engine(store, settings) -> POSEngine:
    return POSEngine(store, settings)


@pytest.fixture
async def restaurant_id(engine) -> str:
    return await engine.registry.register("owner@bistro.test", "secret", "Bistro", "PAID")
