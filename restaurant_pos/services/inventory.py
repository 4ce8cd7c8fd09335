"""
Inventory Ledger

Per-ingredient stock levels for a restaurant.

    - Restocking (manager action) adds a positive delta, creating the
      record at quantity 0 first when the ingredient is new
    - Order placement subtracts ``ingredient.quantity × item.quantity`` for
      every ingredient of every ordered product that declares ingredients
    - There is no floor: a negative quantity means the ingredient is oversold

Units are never reconciled. When a delta arrives in a different unit than
the stored record, the stored unit is kept and a warning is logged.

Version: 1.0.0
"""

import logging
import math

from restaurant_pos import keys
from restaurant_pos.core.exceptions import ValidationError, require_fields
from restaurant_pos.models import InventoryItem, LineItem
from restaurant_pos.services.products import ProductCatalog
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Stock levels keyed by ingredient name.

    Methods prefixed ``apply_``/``deduct_`` expect the caller to already hold
    the restaurant writer lock; ``adjust`` takes it itself.

    Example:
        >>> await ledger.adjust("r1", "flour", 100, "g")
        >>> await ledger.adjust("r1", "flour", -40, "g")
        >>> [item.quantity for item in await ledger.list_inventory("r1")]
        [60.0]
    """

    def __init__(self, store: BaseKeyValueStore, catalog: ProductCatalog):
        self._store = store
        self._catalog = catalog

    async def adjust(
        self,
        restaurant_id: str,
        ingredient: str,
        delta: float,
        unit: str,
    ) -> InventoryItem:
        """
        Add delta to an ingredient's stock level.

        Args:
            restaurant_id: Owning restaurant
            ingredient: Ingredient name (the record key)
            delta: Signed quantity change
            unit: Unit used when the record is created

        Returns:
            InventoryItem: The stored record after the change
        """
        require_fields(restaurantId=restaurant_id, ingredient=ingredient, unit=unit)
        if delta is None or not math.isfinite(delta):
            raise ValidationError("Quantity must be a finite number")

        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            return await self.apply_adjustment(restaurant_id, ingredient, delta, unit)

    async def apply_adjustment(
        self,
        restaurant_id: str,
        ingredient: str,
        delta: float,
        unit: str,
    ) -> InventoryItem:
        key = keys.inventory_key(restaurant_id, ingredient)
        data = await self._store.get(key)

        if data is None:
            item = InventoryItem(
                restaurant_id=restaurant_id,
                ingredient=ingredient,
                quantity=0,
                unit=unit,
            )
        else:
            item = InventoryItem.model_validate(data)
            self._warn_on_unit_mismatch(restaurant_id, item, unit)

        item.quantity += delta
        await self._store.set(key, item.to_store())

        logger.debug(f"Inventory {restaurant_id}/{ingredient}: {delta:+g} → {item.quantity:g}")
        return item

    async def deduct_for_items(self, restaurant_id: str, items: list[LineItem]) -> None:
        """
        Consume the ingredients behind freshly ordered line items.

        Products that no longer exist and ingredients that were never
        stocked are skipped.
        """
        for line in items:
            if not line.product_id:
                continue

            product = await self._catalog.get_product(restaurant_id, line.product_id)
            if product is None:
                logger.debug(f"Product {line.product_id} no longer exists, nothing to deduct")
                continue

            for requirement in product.ingredients:
                key = keys.inventory_key(restaurant_id, requirement.name)
                data = await self._store.get(key)
                if data is None:
                    logger.debug(f"Ingredient {requirement.name} is not stocked, skipping")
                    continue

                item = InventoryItem.model_validate(data)
                self._warn_on_unit_mismatch(restaurant_id, item, requirement.unit)
                item.quantity -= requirement.quantity * line.quantity
                await self._store.set(key, item.to_store())

                if item.quantity < 0:
                    logger.info(
                        f"Ingredient {requirement.name} oversold for restaurant "
                        f"{restaurant_id} (quantity {item.quantity:g})"
                    )

    async def list_inventory(self, restaurant_id: str) -> list[InventoryItem]:
        records = await self._store.get_by_prefix(keys.scan_prefix(keys.INVENTORY, restaurant_id))
        return [InventoryItem.model_validate(record) for record in records]

    @staticmethod
    def _warn_on_unit_mismatch(restaurant_id: str, item: InventoryItem, unit: str) -> None:
        if unit and item.unit != unit:
            logger.warning(
                f"Unit mismatch for {restaurant_id}/{item.ingredient}: "
                f"stored in {item.unit}, adjusted in {unit} (stored unit kept)"
            )
