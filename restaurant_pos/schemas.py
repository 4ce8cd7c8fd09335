"""
Pydantic Schemas for Request/Response Validation

One request schema per operation, validated at the HTTP boundary before
the engine is called. Field names travel in camelCase on the wire
(``restaurantId``, ``tableNumber``, ``itemIndex``...) so existing
front-ends keep working.

Version: 1.0.0
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from restaurant_pos.models import (
    Ingredient,
    InventoryItem,
    LineItem,
    Order,
    Product,
    ProductCategory,
    SalesRecord,
    Table,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SignupRequest(CamelModel):
    """Restaurant signup. paymentToken stands in for a real payment."""
    email: str = Field(..., min_length=1, examples=["owner@bistro.com"])
    password: str = Field(..., min_length=1)
    restaurant_name: str = Field(..., min_length=1, examples=["Bistro 21"])
    payment_token: str = Field(..., min_length=1, examples=["PAID"])


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ManagerPasswordRequest(CamelModel):
    restaurant_id: str = Field(..., min_length=1)
    password: str


class OrderItemCreate(CamelModel):
    """Single line of a new order."""
    product_id: Optional[str] = None
    name: str = Field(..., min_length=1, examples=["Margherita"])
    quantity: int = Field(..., ge=1, examples=[2])
    price: float = Field(..., ge=0, examples=[12.5])
    category: ProductCategory

    def to_line_item(self) -> LineItem:
        return LineItem(**self.model_dump())


class OrderCreate(CamelModel):
    """Request schema for placing an order. tableNumber 0 = off-premises."""
    restaurant_id: str = Field(..., min_length=1)
    table_number: int = Field(..., ge=0, examples=[3])
    items: List[OrderItemCreate] = Field(..., min_length=1)


class LineItemUpdate(CamelModel):
    item_index: int = Field(..., ge=0)
    quantity: int = Field(..., ge=0)


class CloseTableRequest(CamelModel):
    subtotal: float = Field(..., ge=0, allow_inf_nan=False)


class ProductCreate(CamelModel):
    restaurant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    category: ProductCategory = ProductCategory.FOOD
    ingredients: List[Ingredient] = Field(default_factory=list)


class InventoryAdjust(CamelModel):
    """Positive quantity restocks, negative quantity writes stock off."""
    restaurant_id: str = Field(..., min_length=1)
    ingredient: str = Field(..., min_length=1, examples=["flour"])
    quantity: float = Field(..., allow_inf_nan=False, examples=[500])
    unit: str = Field(..., min_length=1, examples=["g"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SuccessResponse(CamelModel):
    success: bool = True


class SignupResponse(SuccessResponse):
    restaurant_id: str


class LoginResponse(SuccessResponse):
    restaurant_id: str
    restaurant_name: str
    has_manager_password: bool


class OrderCreateResponse(SuccessResponse):
    order_id: str


class ProductCreateResponse(SuccessResponse):
    product_id: str


class TableListResponse(CamelModel):
    tables: List[Table]


class OrderListResponse(CamelModel):
    orders: List[Order]


class OrderUpdateResponse(SuccessResponse):
    order: Order


class TableBillResponse(CamelModel):
    table_number: int
    orders: List[Order]
    subtotal: float
    service_charge: float
    total: float


class CloseTableResponse(SuccessResponse):
    sales: SalesRecord


class ProductListResponse(CamelModel):
    products: List[Product]


class InventoryListResponse(CamelModel):
    inventory: List[InventoryItem]


class InventoryAdjustResponse(SuccessResponse):
    item: InventoryItem


class SalesListResponse(CamelModel):
    sales: List[SalesRecord]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    store: str
    timestamp: datetime
