"""
Table & Order Ledger

Owns table existence, the order ids attached to each table and the order
lifecycle:

    pending ──(kitchen confirms)──▶ ready
       │                             │
       └──(completed / table closed)─┴──▶ removed (record deleted)

Tables are a back-reference only: the order record is the source of truth,
and readers skip table entries whose order no longer resolves. Table 0 is
the off-premises sentinel and is never linked to a physical table.

Every mutation runs under the restaurant writer lock, so concurrent roles
cannot lose each other's read-modify-write cycles on tables, stock or
sales totals.

Version: 1.0.0
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from restaurant_pos import keys
from restaurant_pos.core.config import Settings, get_settings
from restaurant_pos.core.exceptions import NotFound, ValidationError, require_fields
from restaurant_pos.models import LineItem, Order, OrderStatus, SalesRecord, Table
from restaurant_pos.services.inventory import InventoryLedger
from restaurant_pos.services.sales import SalesAggregator
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)

OFF_PREMISES_TABLE = 0


@dataclass
class TableBill:
    """What a table owes before it is closed."""
    table_number: int
    orders: list[Order] = field(default_factory=list)
    subtotal: float = 0.0
    service_charge: float = 0.0
    total: float = 0.0


class TableOrderLedger:
    """
    Tables and their in-flight orders.

    Attributes:
        service_charge_rate: Fraction added to a subtotal when a table closes

    Example:
        >>> order_id = await ledger.place_order("r1", 3, [LineItem(...)])
        >>> await ledger.mark_ready("r1", order_id)
        >>> await ledger.close_table("r1", 3, subtotal=42.0)
    """

    def __init__(
        self,
        store: BaseKeyValueStore,
        inventory: InventoryLedger,
        sales: SalesAggregator,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._inventory = inventory
        self._sales = sales
        settings = settings or get_settings()
        self.service_charge_rate = settings.service_charge_rate

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def _load_table(self, restaurant_id: str, table_number: int) -> Optional[Table]:
        data = await self._store.get(keys.table_key(restaurant_id, table_number))
        return None if data is None else Table.model_validate(data)

    async def _load_order(self, restaurant_id: str, order_id: str) -> Optional[Order]:
        data = await self._store.get(keys.order_key(restaurant_id, order_id))
        return None if data is None else Order.model_validate(data)

    async def _require_order(self, restaurant_id: str, order_id: str) -> Order:
        order = await self._load_order(restaurant_id, order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    async def _save_order(self, order: Order) -> None:
        await self._store.set(keys.order_key(order.restaurant_id, order.id), order.to_store())

    async def list_tables(self, restaurant_id: str) -> list[Table]:
        records = await self._store.get_by_prefix(keys.scan_prefix(keys.TABLE, restaurant_id))
        return [Table.model_validate(record) for record in records]

    async def list_orders(self, restaurant_id: str) -> list[Order]:
        records = await self._store.get_by_prefix(keys.scan_prefix(keys.ORDER, restaurant_id))
        return [Order.model_validate(record) for record in records]

    async def list_kitchen_orders(self, restaurant_id: str) -> list[Order]:
        """Pending orders containing at least one food item."""
        orders = await self.list_orders(restaurant_id)
        return [
            order for order in orders
            if order.status == OrderStatus.PENDING and order.has_food()
        ]

    async def list_ready_orders(self, restaurant_id: str) -> list[Order]:
        """Orders the kitchen has confirmed, waiting to be served."""
        orders = await self.list_orders(restaurant_id)
        return [order for order in orders if order.status == OrderStatus.READY]

    async def list_table_orders(self, restaurant_id: str, table_number: int) -> list[Order]:
        """
        Resolve a table's order ids into orders.

        Ids whose order was already removed are skipped. An unknown table
        has no orders.
        """
        table = await self._load_table(restaurant_id, table_number)
        if table is None:
            return []

        orders = []
        for order_id in table.orders:
            order = await self._load_order(restaurant_id, order_id)
            if order is None:
                logger.debug(f"Table {table_number} references removed order {order_id}")
                continue
            orders.append(order)
        return orders

    async def table_bill(self, restaurant_id: str, table_number: int) -> TableBill:
        """Subtotal, service charge and total for a table's live orders."""
        orders = await self.list_table_orders(restaurant_id, table_number)
        subtotal = sum(order.subtotal for order in orders)
        service_charge = subtotal * self.service_charge_rate
        return TableBill(
            table_number=table_number,
            orders=orders,
            subtotal=subtotal,
            service_charge=service_charge,
            total=subtotal + service_charge,
        )

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def place_order(
        self,
        restaurant_id: str,
        table_number: int,
        items: list[LineItem],
    ) -> str:
        """
        Create a pending order, link it to its table and consume stock.

        A missing table does not fail the order: the order is stored
        unlinked and a warning is logged. Nothing is rolled back if the
        inventory step fails after the order was written.

        Args:
            restaurant_id: Owning restaurant
            table_number: Physical table, or 0 for off-premises orders
            items: Line items, each with quantity of at least 1

        Returns:
            str: The new order id
        """
        require_fields(restaurantId=restaurant_id)
        if table_number is None or table_number < 0:
            raise ValidationError("Table number must be zero or greater")
        if not items:
            raise ValidationError("An order needs at least one item")
        if any(item.quantity < 1 for item in items):
            raise ValidationError("Item quantity must be at least 1")

        order = Order(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            table_number=table_number,
            items=items,
            status=OrderStatus.PENDING,
            timestamp=int(time.time() * 1000),
        )

        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            await self._save_order(order)

            if table_number != OFF_PREMISES_TABLE:
                table = await self._load_table(restaurant_id, table_number)
                if table is None:
                    logger.warning(
                        f"Order {order.id} placed for unknown table {table_number} "
                        f"of restaurant {restaurant_id}; order kept unlinked"
                    )
                else:
                    table.orders.append(order.id)
                    await self._store.set(
                        keys.table_key(restaurant_id, table_number),
                        table.to_store(),
                    )

            await self._inventory.deduct_for_items(restaurant_id, order.items)

        logger.info(
            f"Order {order.id} placed for restaurant {restaurant_id}, "
            f"table {table_number} ({len(items)} items)"
        )
        return order.id

    async def mark_ready(self, restaurant_id: str, order_id: str) -> Order:
        """Kitchen confirmation. Repeating it leaves the order ready."""
        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            order = await self._require_order(restaurant_id, order_id)
            if order.status != OrderStatus.READY:
                order.status = OrderStatus.READY
                await self._save_order(order)

        logger.info(f"Order {order_id} ready")
        return order

    async def complete_order(self, restaurant_id: str, order_id: str) -> None:
        """Delete an order whatever its status. Unknown ids are ignored."""
        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            await self._store.delete(keys.order_key(restaurant_id, order_id))
        logger.info(f"Order {order_id} completed")

    async def update_line_item(
        self,
        restaurant_id: str,
        order_id: str,
        item_index: int,
        quantity: int,
    ) -> Order:
        """
        Change one line's quantity; quantity 0 removes the line.

        Removing a line shifts later lines down by one. Stock consumed at
        placement time is not given back.
        """
        if quantity is None or quantity < 0:
            raise ValidationError("Quantity must be zero or greater")

        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            order = await self._require_order(restaurant_id, order_id)

            if item_index is None or not 0 <= item_index < len(order.items):
                raise ValidationError(f"Item index {item_index} out of range")

            if quantity == 0:
                removed = order.items.pop(item_index)
                logger.info(f"Order {order_id}: removed {removed.name}")
            else:
                order.items[item_index].quantity = quantity

            await self._save_order(order)

        return order

    async def close_table(
        self,
        restaurant_id: str,
        table_number: int,
        subtotal: float,
    ) -> SalesRecord:
        """
        Settle a table: remove its orders, clear it and record the sale.

        The sale adds ``subtotal × (1 + service charge)`` to today's total
        and counts one closed table.

        Returns:
            SalesRecord: Today's record after the sale

        Raises:
            NotFound: The table does not exist
        """
        if subtotal is None or subtotal < 0:
            raise ValidationError("Subtotal must be zero or greater")

        async with self._store.lock(keys.restaurant_lock(restaurant_id)):
            table = await self._load_table(restaurant_id, table_number)
            if table is None:
                raise NotFound("Table not found")

            for order_id in table.orders:
                await self._store.delete(keys.order_key(restaurant_id, order_id))

            closed_orders = len(table.orders)
            table.orders = []
            await self._store.set(keys.table_key(restaurant_id, table_number), table.to_store())

            amount = subtotal * (1 + self.service_charge_rate)
            record = await self._sales.record_sale(restaurant_id, self._sales.today(), amount)

        logger.info(
            f"Table {table_number} of restaurant {restaurant_id} closed "
            f"({closed_orders} orders, charged {amount:.2f})"
        )
        return record
