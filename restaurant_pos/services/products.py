"""
Product Catalog

Menu entries created and deleted by the manager. Products are immutable
once created; order placement reads their ingredient requirements.
"""

import logging
import uuid
from typing import Optional

from restaurant_pos import keys
from restaurant_pos.core.exceptions import ValidationError, require_fields
from restaurant_pos.models import Ingredient, Product, ProductCategory
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Product CRUD for one store."""

    def __init__(self, store: BaseKeyValueStore):
        self._store = store

    async def create_product(
        self,
        restaurant_id: str,
        name: str,
        price: float,
        category: ProductCategory,
        ingredients: Optional[list[Ingredient]] = None,
    ) -> str:
        """
        Add a product to the menu.

        Returns:
            str: The new product id
        """
        require_fields(restaurantId=restaurant_id, name=name)
        if price is None or price < 0:
            raise ValidationError("Price must be zero or greater")

        product = Product(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            name=name,
            price=price,
            category=ProductCategory(category),
            ingredients=ingredients or [],
        )
        await self._store.set(keys.product_key(restaurant_id, product.id), product.to_store())

        logger.info(f"Product {product.id} ({name}) created for restaurant {restaurant_id}")
        return product.id

    async def get_product(self, restaurant_id: str, product_id: str) -> Optional[Product]:
        data = await self._store.get(keys.product_key(restaurant_id, product_id))
        return None if data is None else Product.model_validate(data)

    async def list_products(self, restaurant_id: str) -> list[Product]:
        records = await self._store.get_by_prefix(keys.scan_prefix(keys.PRODUCT, restaurant_id))
        return [Product.model_validate(record) for record in records]

    async def delete_product(self, restaurant_id: str, product_id: str) -> None:
        """Remove a product. Unknown ids are ignored."""
        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            await self._store.delete(keys.product_key(restaurant_id, product_id))
        logger.info(f"Product {product_id} deleted for restaurant {restaurant_id}")
