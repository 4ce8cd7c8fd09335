import asyncio

import pytest

from restaurant_pos import keys
from restaurant_pos.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    PaymentRequired,
    Unauthorized,
    ValidationError,
)


async def test_signup_provisions_ten_empty_tables(engine, restaurant_id) -> None:
    tables = await engine.orders.list_tables(restaurant_id)

    assert sorted(table.number for table in tables) == list(range(1, 11))
    assert all(table.orders == [] for table in tables)


async def test_signup_writes_restaurant_and_email_index(engine, store, restaurant_id) -> None:
    assert await store.get(keys.email_index_key("owner@bistro.test")) == restaurant_id

    record = await store.get(keys.restaurant_key(restaurant_id))
    assert record["email"] == "owner@bistro.test"
    assert record["name"] == "Bistro"
    assert record["paid"] is True
    assert record["managerPassword"] == ""


async def test_signup_without_payment_creates_nothing(engine, store) -> None:
    with pytest.raises(PaymentRequired):
        await engine.registry.register("new@bistro.test", "pw", "New Place", "CARD-123")

    assert await store.get(keys.email_index_key("new@bistro.test")) is None
    assert store.keys() == []


async def test_signup_duplicate_email(engine, restaurant_id) -> None:
    with pytest.raises(DuplicateEmail):
        await engine.registry.register("owner@bistro.test", "other", "Copycat", "PAID")


async def test_concurrent_signups_with_same_email_create_one_restaurant(engine, store) -> None:
    results = await asyncio.gather(
        engine.registry.register("race@bistro.test", "pw", "One", "PAID"),
        engine.registry.register("race@bistro.test", "pw", "Two", "PAID"),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, str)]
    rejected = [r for r in results if isinstance(r, DuplicateEmail)]
    assert len(created) == 1
    assert len(rejected) == 1
    assert await store.get(keys.email_index_key("race@bistro.test")) == created[0]


@pytest.mark.parametrize(
    "email,password,name",
    [("", "pw", "Name"), ("a@b.test", "", "Name"), ("a@b.test", "pw", "")],
)
async def test_signup_requires_fields(engine, email, password, name) -> None:
    with pytest.raises(ValidationError):
        await engine.registry.register(email, password, name, "PAID")


async def test_authenticate(engine, restaurant_id) -> None:
    result = await engine.registry.authenticate("owner@bistro.test", "secret")

    assert result.restaurant_id == restaurant_id
    assert result.name == "Bistro"
    assert result.has_manager_password is False


async def test_authenticate_rejects_wrong_password_and_unknown_email(engine, restaurant_id) -> None:
    with pytest.raises(InvalidCredentials):
        await engine.registry.authenticate("owner@bistro.test", "Secret")
    with pytest.raises(InvalidCredentials):
        await engine.registry.authenticate("nobody@bistro.test", "secret")


async def test_manager_password_gate(engine, restaurant_id) -> None:
    await engine.registry.set_manager_password(restaurant_id, "1234")

    assert await engine.registry.verify_manager_password(restaurant_id, "1234") is True
    with pytest.raises(Unauthorized):
        await engine.registry.verify_manager_password(restaurant_id, "0000")

    result = await engine.registry.authenticate("owner@bistro.test", "secret")
    assert result.has_manager_password is True


async def test_manager_password_is_overwritten(engine, restaurant_id) -> None:
    await engine.registry.set_manager_password(restaurant_id, "1234")
    await engine.registry.set_manager_password(restaurant_id, "9876")

    assert await engine.registry.verify_manager_password(restaurant_id, "9876") is True
    with pytest.raises(Unauthorized):
        await engine.registry.verify_manager_password(restaurant_id, "1234")


async def test_manager_password_unknown_restaurant(engine) -> None:
    with pytest.raises(NotFound):
        await engine.registry.set_manager_password("missing", "1234")
    with pytest.raises(NotFound):
        await engine.registry.verify_manager_password("missing", "1234")
