"""
Restaurant Registry

Creates and authenticates restaurant accounts. Owns the email → id index,
the signup payment gate and the manager-password gate.

Signup flow:
    1. Payment token must equal the accepted sentinel (no real gateway)
    2. Email must not already resolve through the index
    3. Restaurant record + email index are written
    4. Tables 1..N are provisioned with empty order lists

Passwords are compared as stored (exact match). They are not hashed.

Version: 1.0.0
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from restaurant_pos import keys
from restaurant_pos.core.config import Settings, get_settings
from restaurant_pos.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    PaymentRequired,
    Unauthorized,
    require_fields,
)
from restaurant_pos.models import Restaurant, Table
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of a successful login."""
    restaurant_id: str
    name: str
    has_manager_password: bool


class RestaurantRegistry:
    """
    Restaurant accounts and their credentials.

    Example:
        >>> registry = RestaurantRegistry(store)
        >>> rid = await registry.register("a@b.com", "pw", "Bistro", "PAID")
        >>> (await registry.authenticate("a@b.com", "pw")).restaurant_id == rid
        True
    """

    def __init__(self, store: BaseKeyValueStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        payment_token: str,
    ) -> str:
        """
        Create a restaurant account and provision its tables.

        Args:
            email: Login email, unique across restaurants
            password: Login password
            name: Display name
            payment_token: Must equal the accepted payment sentinel

        Returns:
            str: The new restaurant id

        Raises:
            ValidationError: A required field is empty
            PaymentRequired: Token is not the accepted sentinel
            DuplicateEmail: Email already registered
        """
        require_fields(
            email=email,
            password=password,
            restaurantName=name,
            paymentToken=payment_token,
        )

        if payment_token != self._settings.accepted_payment_token:
            logger.info(f"Signup rejected for {email}: payment required")
            raise PaymentRequired("Payment required to create account")

        async with self._store.lock(keys.email_lock(email)):
            existing_id = await self._store.get(keys.email_index_key(email))
            if existing_id:
                raise DuplicateEmail("Email already registered")

            restaurant = Restaurant(
                id=str(uuid.uuid4()),
                email=email,
                password=password,
                name=name,
                paid=True,
                manager_password="",
                created_at=int(time.time() * 1000),
            )

            await self._store.set(keys.restaurant_key(restaurant.id), restaurant.to_store())
            await self._store.set(keys.email_index_key(email), restaurant.id)

            for number in range(1, self._settings.table_count + 1):
                table = Table(restaurant_id=restaurant.id, number=number, orders=[])
                await self._store.set(
                    keys.table_key(restaurant.id, number),
                    table.to_store(),
                )

        logger.info(
            f"Restaurant {restaurant.id} registered "
            f"({name}, {self._settings.table_count} tables)"
        )
        return restaurant.id

    async def get(self, restaurant_id: str) -> Restaurant:
        """Load a restaurant or raise NotFound."""
        data = await self._store.get(keys.restaurant_key(restaurant_id))
        if not data:
            raise NotFound("Restaurant not found")
        return Restaurant.model_validate(data)

    async def authenticate(self, email: str, password: str) -> AuthResult:
        """
        Check login credentials.

        Raises:
            ValidationError: Email or password empty
            InvalidCredentials: Unknown email or wrong password
        """
        require_fields(email=email, password=password)

        restaurant_id = await self._store.get(keys.email_index_key(email))
        if not restaurant_id:
            raise InvalidCredentials("Invalid credentials")

        data = await self._store.get(keys.restaurant_key(restaurant_id))
        if not data:
            logger.warning(f"Email index for {email} points at missing restaurant {restaurant_id}")
            raise InvalidCredentials("Invalid credentials")

        restaurant = Restaurant.model_validate(data)
        if restaurant.password != password:
            raise InvalidCredentials("Invalid credentials")

        return AuthResult(
            restaurant_id=restaurant.id,
            name=restaurant.name,
            has_manager_password=restaurant.has_manager_password,
        )

    async def set_manager_password(self, restaurant_id: str, password: str) -> None:
        """Overwrite the manager password unconditionally."""
        require_fields(restaurantId=restaurant_id)

        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            restaurant = await self.get(restaurant_id)
            restaurant.manager_password = password
            await self._store.set(keys.restaurant_key(restaurant_id), restaurant.to_store())

        logger.info(f"Manager password updated for restaurant {restaurant_id}")

    async def verify_manager_password(self, restaurant_id: str, password: str) -> bool:
        """
        Gate manager access.

        Returns:
            bool: True when the password matches

        Raises:
            NotFound: Unknown restaurant
            Unauthorized: Password mismatch
        """
        restaurant = await self.get(restaurant_id)
        if restaurant.manager_password != password:
            logger.info(f"Manager access denied for restaurant {restaurant_id}")
            raise Unauthorized("Invalid manager password")
        return True
