import asyncio
import logging

import pytest

from restaurant_pos import keys
from restaurant_pos.core.exceptions import ValidationError
from restaurant_pos.models import Ingredient, ProductCategory
from restaurant_pos.services import POSEngine
from tests.conftest import YieldingStore, line


async def _stock(engine, restaurant_id: str) -> dict[str, float]:
    return {item.ingredient: item.quantity for item in await engine.inventory.list_inventory(restaurant_id)}


async def test_restock_then_write_off(engine, restaurant_id) -> None:
    await engine.inventory.adjust(restaurant_id, "flour", 100, "g")
    item = await engine.inventory.adjust(restaurant_id, "flour", -40, "g")

    assert item.quantity == 60
    assert await _stock(engine, restaurant_id) == {"flour": 60}


async def test_new_ingredient_takes_given_unit(engine, store, restaurant_id) -> None:
    await engine.inventory.adjust(restaurant_id, "milk", 2, "l")

    record = await store.get(keys.inventory_key(restaurant_id, "milk"))
    assert record == {"restaurantId": restaurant_id, "ingredient": "milk", "quantity": 2.0, "unit": "l"}


async def test_unit_mismatch_keeps_stored_unit(engine, restaurant_id, caplog) -> None:
    await engine.inventory.adjust(restaurant_id, "sugar", 1, "kg")

    with caplog.at_level(logging.WARNING):
        item = await engine.inventory.adjust(restaurant_id, "sugar", 500, "g")

    assert item.unit == "kg"
    assert item.quantity == 501
    assert any("Unit mismatch" in r.getMessage() for r in caplog.records)


async def test_adjust_validation(engine, restaurant_id) -> None:
    with pytest.raises(ValidationError):
        await engine.inventory.adjust(restaurant_id, "", 1, "g")
    with pytest.raises(ValidationError):
        await engine.inventory.adjust(restaurant_id, "salt", float("nan"), "g")


async def test_order_placement_consumes_ingredients(engine, restaurant_id) -> None:
    burger = await engine.products.create_product(
        restaurant_id,
        "Burger",
        12.0,
        ProductCategory.FOOD,
        [Ingredient(name="bun", quantity=1, unit="pc"), Ingredient(name="beef", quantity=150, unit="g")],
    )
    await engine.inventory.adjust(restaurant_id, "bun", 10, "pc")
    await engine.inventory.adjust(restaurant_id, "beef", 1000, "g")

    await engine.orders.place_order(restaurant_id, 1, [line("Burger", 3, 12.0, product_id=burger)])

    assert await _stock(engine, restaurant_id) == {"bun": 7, "beef": 550}


async def test_oversold_ingredient_goes_negative(engine, restaurant_id) -> None:
    soup = await engine.products.create_product(
        restaurant_id, "Soup", 6.0, ProductCategory.FOOD,
        [Ingredient(name="stock", quantity=0.5, unit="l")],
    )
    await engine.inventory.adjust(restaurant_id, "stock", 1, "l")

    await engine.orders.place_order(restaurant_id, 2, [line("Soup", 4, 6.0, product_id=soup)])

    assert await _stock(engine, restaurant_id) == {"stock": -1.0}


async def test_unstocked_ingredient_and_deleted_product_are_skipped(engine, restaurant_id) -> None:
    pasta = await engine.products.create_product(
        restaurant_id, "Pasta", 9.0, ProductCategory.FOOD,
        [Ingredient(name="pasta", quantity=100, unit="g"), Ingredient(name="basil", quantity=2, unit="g")],
    )
    gone = await engine.products.create_product(
        restaurant_id, "Special", 15.0, ProductCategory.FOOD,
        [Ingredient(name="pasta", quantity=300, unit="g")],
    )
    await engine.products.delete_product(restaurant_id, gone)
    await engine.inventory.adjust(restaurant_id, "pasta", 1000, "g")

    order_id = await engine.orders.place_order(
        restaurant_id,
        1,
        [line("Pasta", 1, 9.0, product_id=pasta), line("Special", 1, 15.0, product_id=gone)],
    )

    assert order_id
    assert await _stock(engine, restaurant_id) == {"pasta": 900}


async def test_reducing_line_items_does_not_restock(engine, restaurant_id) -> None:
    tea = await engine.products.create_product(
        restaurant_id, "Tea", 2.0, ProductCategory.DRINK,
        [Ingredient(name="tea bag", quantity=1, unit="pc")],
    )
    await engine.inventory.adjust(restaurant_id, "tea bag", 10, "pc")
    order_id = await engine.orders.place_order(
        restaurant_id, 1, [line("Tea", 3, 2.0, ProductCategory.DRINK, product_id=tea)]
    )

    await engine.orders.update_line_item(restaurant_id, order_id, 0, 0)

    assert await _stock(engine, restaurant_id) == {"tea bag": 7}


async def test_concurrent_orders_do_not_lose_decrements(settings) -> None:
    engine = POSEngine(YieldingStore(lock_wait=5.0), settings)
    restaurant_id = await engine.registry.register("busy@bistro.test", "pw", "Busy", "PAID")
    fries = await engine.products.create_product(
        restaurant_id, "Fries", 4.0, ProductCategory.FOOD,
        [Ingredient(name="potato", quantity=200, unit="g")],
    )
    await engine.inventory.adjust(restaurant_id, "potato", 10000, "g")

    await asyncio.gather(*[
        engine.orders.place_order(restaurant_id, (n % 10) + 1, [line("Fries", 1, 4.0, product_id=fries)])
        for n in range(25)
    ])

    assert await _stock(engine, restaurant_id) == {"potato": 5000}
    tables = await engine.orders.list_tables(restaurant_id)
    assert sum(len(table.orders) for table in tables) == 25


async def test_concurrent_restocks_are_all_applied(settings) -> None:
    engine = POSEngine(YieldingStore(lock_wait=5.0), settings)

    await asyncio.gather(*[engine.inventory.adjust("r1", "rice", 10, "g") for _ in range(20)])

    assert await _stock(engine, "r1") == {"rice": 200}


async def test_deleted_product_is_not_restored_by_concurrent_order(settings) -> None:
    engine = POSEngine(YieldingStore(lock_wait=5.0), settings)
    restaurant_id = await engine.registry.register("menu@bistro.test", "pw", "Menu", "PAID")
    cake = await engine.products.create_product(
        restaurant_id, "Cake", 5.0, ProductCategory.FOOD,
        [Ingredient(name="flour", quantity=100, unit="g")],
    )
    await engine.inventory.adjust(restaurant_id, "flour", 1000, "g")

    await asyncio.gather(
        engine.orders.place_order(restaurant_id, 1, [line("Cake", 1, 5.0, product_id=cake)]),
        engine.products.delete_product(restaurant_id, cake),
    )

    assert await engine.products.list_products(restaurant_id) == []
    assert await _stock(engine, restaurant_id) == {"flour": 900}
