"""
Domain Records

Pydantic models for every entity the engine keeps in the key-value store.
Records serialize with camelCase field names (``restaurantId``,
``tableNumber``, ``managerPassword``...) because that is how existing
persisted data is shaped; Python code uses the snake_case attributes.

Entities:
    - Restaurant: account, credentials and manager password gate
    - Table: a table number and the ids of its open orders
    - Order: line items plus pending/ready status
    - Product: menu entry with its ingredient requirements
    - InventoryItem: signed stock level of one ingredient
    - SalesRecord: revenue and order count for one day

Version: 1.0.0
"""

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, enum.Enum):
    """Order lifecycle. Removal (completion or table close) deletes the record."""
    PENDING = "pending"
    READY = "ready"


class ProductCategory(str, enum.Enum):
    FOOD = "food"
    DRINK = "drink"


class StoredRecord(BaseModel):
    """Base for records persisted in the key-value store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_store(self) -> dict:
        """Serialize for the store (camelCase, JSON-compatible)."""
        return self.model_dump(mode="json", by_alias=True)


class Restaurant(StoredRecord):
    id: str
    email: str
    password: str
    name: str
    paid: bool = True
    manager_password: str = ""
    created_at: int = 0  # epoch milliseconds

    @property
    def has_manager_password(self) -> bool:
        return bool(self.manager_password)


class Table(StoredRecord):
    restaurant_id: Optional[str] = None
    number: int
    orders: list[str] = Field(default_factory=list)


class LineItem(StoredRecord):
    """One product line of an order, priced at the time it was ordered."""
    product_id: Optional[str] = None
    name: str
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)
    category: ProductCategory

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Order(StoredRecord):
    id: str
    restaurant_id: str
    table_number: int
    items: list[LineItem] = Field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    timestamp: int = 0  # epoch milliseconds

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    def has_food(self) -> bool:
        return any(item.category == ProductCategory.FOOD for item in self.items)


class Ingredient(StoredRecord):
    """Amount of one ingredient consumed by a single unit of a product."""
    name: str
    quantity: float
    unit: str


class Product(StoredRecord):
    id: str
    restaurant_id: Optional[str] = None
    name: str
    price: float = Field(..., ge=0)
    category: ProductCategory
    ingredients: list[Ingredient] = Field(default_factory=list)


class InventoryItem(StoredRecord):
    """Stock level; quantity goes negative when an ingredient is oversold."""
    restaurant_id: Optional[str] = None
    ingredient: str
    quantity: float = 0.0
    unit: str


class SalesRecord(StoredRecord):
    restaurant_id: Optional[str] = None
    date: str  # YYYY-MM-DD in the business timezone
    total: float = 0.0
    count: int = 0
