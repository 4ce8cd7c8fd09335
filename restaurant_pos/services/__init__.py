"""
                        Services Module

Contains the transaction engine that mutates per-restaurant state.

Services:
    - registry: restaurant accounts, login, manager password
    - orders: tables and order lifecycle
    - inventory: ingredient stock levels
    - sales: daily revenue totals
    - products: menu catalog
    - excel_manager: sales report export with file locking

Usage:
    from restaurant_pos.services import get_pos_engine

    engine = get_pos_engine()
    order_id = await engine.orders.place_order(restaurant_id, 3, items)
"""

import logging
from functools import lru_cache
from typing import Optional

from restaurant_pos.core.config import Settings, get_settings
from restaurant_pos.services.excel_manager import ExcelManager
from restaurant_pos.services.inventory import InventoryLedger
from restaurant_pos.services.orders import TableBill, TableOrderLedger
from restaurant_pos.services.products import ProductCatalog
from restaurant_pos.services.registry import AuthResult, RestaurantRegistry
from restaurant_pos.services.sales import SalesAggregator
from restaurant_pos.store import get_kv_store
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


class POSEngine:
    """
    All ledgers wired to one key-value store.

    Attributes:
        store: Shared key-value store
        registry: Restaurant accounts
        products: Menu catalog
        inventory: Stock levels
        sales: Daily totals
        orders: Tables and orders
    """

    def __init__(self, store: BaseKeyValueStore, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.store = store
        self.registry = RestaurantRegistry(store, settings)
        self.products = ProductCatalog(store)
        self.inventory = InventoryLedger(store, self.products)
        self.sales = SalesAggregator(store, settings)
        self.orders = TableOrderLedger(store, self.inventory, self.sales, settings)

    async def health_check(self) -> dict[str, str]:
        healthy = await self.store.health_check()
        return {
            "status": "operational" if healthy else "degraded",
            "store": f"{self.store.provider_name}: {'healthy' if healthy else 'unhealthy'}",
        }


@lru_cache()
def get_pos_engine() -> POSEngine:
    """Engine bound to the configured store (cached)."""
    store = get_kv_store()
    logger.info(f"POS engine using {store.provider_name} store")
    return POSEngine(store)


def reset_pos_engine() -> None:
    """Clear the cached engine instance."""
    get_pos_engine.cache_clear()


__all__ = [
    "POSEngine",
    "get_pos_engine",
    "reset_pos_engine",
    "AuthResult",
    "TableBill",
    "ExcelManager",
]
