"""
FastAPI Application Entry Point

Restaurant POS Engine - request/response surface for the waiter, kitchen,
cashier and manager front-ends. Every route validates its payload, calls
one engine operation and returns synchronously; the kitchen and cashier
screens poll the list endpoints.

Endpoints (under API_PREFIX):
    - POST /signup, /login, /set-manager-password, /verify-manager
    - GET /tables/{restaurant_id}
    - POST /orders, GET /kitchen-orders/{restaurant_id}, GET /ready-orders/{restaurant_id}
    - PUT /orders/{restaurant_id}/{order_id}/ready, PUT .../items, DELETE /orders/...
    - GET /tables/{restaurant_id}/{table_number}/orders, .../bill, POST .../close
    - GET/POST/DELETE /products, GET/POST /inventory, GET /sales, GET /sales/.../export
    - GET /health: System health check

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from restaurant_pos.core.config import get_settings, setup_logging
from restaurant_pos.core.exceptions import POSError, StoreUnavailable
from restaurant_pos.schemas import (
    CloseTableRequest,
    CloseTableResponse,
    ErrorResponse,
    HealthResponse,
    InventoryAdjust,
    InventoryAdjustResponse,
    InventoryListResponse,
    LineItemUpdate,
    LoginRequest,
    LoginResponse,
    ManagerPasswordRequest,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderUpdateResponse,
    ProductCreate,
    ProductCreateResponse,
    ProductListResponse,
    SalesListResponse,
    SignupRequest,
    SignupResponse,
    SuccessResponse,
    TableBillResponse,
    TableListResponse,
)
from restaurant_pos.services import ExcelManager, POSEngine, get_pos_engine
from restaurant_pos.store.sql import SqlKeyValueStore

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_engine() -> POSEngine:
    """Dependency returning the shared engine (overridden in tests)."""
    return get_pos_engine()


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   KV Backend: {settings.kv_backend.value}")
    logger.info("=" * 60)

    engine = get_pos_engine()
    if isinstance(engine.store, SqlKeyValueStore):
        await engine.store.initialize()

    problems = settings.validate_production_config()
    if problems:
        logger.warning(f"⚠️ Configuration problems: {problems}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.store.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Point-of-sale backend for a single restaurant tenant: tables, orders, "
        "ingredient inventory and daily sales."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Content-Length"],
    max_age=600,
)

router = APIRouter(
    prefix=settings.api_prefix,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(engine: POSEngine = Depends(get_engine)) -> HealthResponse:
    """Verify the key-value store is reachable."""
    report = await engine.health_check()
    return HealthResponse(
        status=report["status"],
        store=report["store"],
        timestamp=datetime.now(),
    )


# =============================================================================
# RESTAURANT ACCOUNTS
# =============================================================================

@router.post("/signup", response_model=SignupResponse, tags=["Restaurants"])
async def signup(
    payload: SignupRequest,
    engine: POSEngine = Depends(get_engine),
) -> SignupResponse:
    restaurant_id = await engine.registry.register(
        email=payload.email,
        password=payload.password,
        name=payload.restaurant_name,
        payment_token=payload.payment_token,
    )
    return SignupResponse(restaurant_id=restaurant_id)


@router.post("/login", response_model=LoginResponse, tags=["Restaurants"])
async def login(
    payload: LoginRequest,
    engine: POSEngine = Depends(get_engine),
) -> LoginResponse:
    result = await engine.registry.authenticate(payload.email, payload.password)
    return LoginResponse(
        restaurant_id=result.restaurant_id,
        restaurant_name=result.name,
        has_manager_password=result.has_manager_password,
    )


@router.post("/set-manager-password", response_model=SuccessResponse, tags=["Restaurants"])
async def set_manager_password(
    payload: ManagerPasswordRequest,
    engine: POSEngine = Depends(get_engine),
) -> SuccessResponse:
    await engine.registry.set_manager_password(payload.restaurant_id, payload.password)
    return SuccessResponse()


@router.post("/verify-manager", response_model=SuccessResponse, tags=["Restaurants"])
async def verify_manager(
    payload: ManagerPasswordRequest,
    engine: POSEngine = Depends(get_engine),
) -> SuccessResponse:
    await engine.registry.verify_manager_password(payload.restaurant_id, payload.password)
    return SuccessResponse()


# =============================================================================
# TABLES & ORDERS
# =============================================================================

@router.get("/tables/{restaurant_id}", response_model=TableListResponse, tags=["Tables"])
async def list_tables(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> TableListResponse:
    return TableListResponse(tables=await engine.orders.list_tables(restaurant_id))


@router.post("/orders", response_model=OrderCreateResponse, tags=["Orders"])
async def place_order(
    payload: OrderCreate,
    engine: POSEngine = Depends(get_engine),
) -> OrderCreateResponse:
    order_id = await engine.orders.place_order(
        payload.restaurant_id,
        payload.table_number,
        [item.to_line_item() for item in payload.items],
    )
    return OrderCreateResponse(order_id=order_id)


@router.get("/kitchen-orders/{restaurant_id}", response_model=OrderListResponse, tags=["Orders"])
async def kitchen_orders(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> OrderListResponse:
    """Pending food orders. The kitchen screen polls this."""
    return OrderListResponse(orders=await engine.orders.list_kitchen_orders(restaurant_id))


@router.get("/ready-orders/{restaurant_id}", response_model=OrderListResponse, tags=["Orders"])
async def ready_orders(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> OrderListResponse:
    return OrderListResponse(orders=await engine.orders.list_ready_orders(restaurant_id))


@router.put(
    "/orders/{restaurant_id}/{order_id}/ready",
    response_model=OrderUpdateResponse,
    tags=["Orders"],
)
async def mark_ready(
    restaurant_id: str,
    order_id: str,
    engine: POSEngine = Depends(get_engine),
) -> OrderUpdateResponse:
    order = await engine.orders.mark_ready(restaurant_id, order_id)
    return OrderUpdateResponse(order=order)


@router.put(
    "/orders/{restaurant_id}/{order_id}/items",
    response_model=OrderUpdateResponse,
    tags=["Orders"],
)
async def update_line_item(
    restaurant_id: str,
    order_id: str,
    payload: LineItemUpdate,
    engine: POSEngine = Depends(get_engine),
) -> OrderUpdateResponse:
    order = await engine.orders.update_line_item(
        restaurant_id,
        order_id,
        payload.item_index,
        payload.quantity,
    )
    return OrderUpdateResponse(order=order)


@router.delete(
    "/orders/{restaurant_id}/{order_id}",
    response_model=SuccessResponse,
    tags=["Orders"],
)
async def complete_order(
    restaurant_id: str,
    order_id: str,
    engine: POSEngine = Depends(get_engine),
) -> SuccessResponse:
    await engine.orders.complete_order(restaurant_id, order_id)
    return SuccessResponse()


@router.get(
    "/tables/{restaurant_id}/{table_number}/orders",
    response_model=OrderListResponse,
    tags=["Tables"],
)
async def table_orders(
    restaurant_id: str,
    table_number: int,
    engine: POSEngine = Depends(get_engine),
) -> OrderListResponse:
    return OrderListResponse(
        orders=await engine.orders.list_table_orders(restaurant_id, table_number)
    )


@router.get(
    "/tables/{restaurant_id}/{table_number}/bill",
    response_model=TableBillResponse,
    tags=["Tables"],
)
async def table_bill(
    restaurant_id: str,
    table_number: int,
    engine: POSEngine = Depends(get_engine),
) -> TableBillResponse:
    bill = await engine.orders.table_bill(restaurant_id, table_number)
    return TableBillResponse(
        table_number=bill.table_number,
        orders=bill.orders,
        subtotal=round(bill.subtotal, 2),
        service_charge=round(bill.service_charge, 2),
        total=round(bill.total, 2),
    )


@router.post(
    "/tables/{restaurant_id}/{table_number}/close",
    response_model=CloseTableResponse,
    tags=["Tables"],
)
async def close_table(
    restaurant_id: str,
    table_number: int,
    payload: CloseTableRequest,
    engine: POSEngine = Depends(get_engine),
) -> CloseTableResponse:
    record = await engine.orders.close_table(restaurant_id, table_number, payload.subtotal)
    return CloseTableResponse(sales=record)


# =============================================================================
# PRODUCTS
# =============================================================================

@router.get("/products/{restaurant_id}", response_model=ProductListResponse, tags=["Products"])
async def list_products(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> ProductListResponse:
    return ProductListResponse(products=await engine.products.list_products(restaurant_id))


@router.post("/products", response_model=ProductCreateResponse, tags=["Products"])
async def create_product(
    payload: ProductCreate,
    engine: POSEngine = Depends(get_engine),
) -> ProductCreateResponse:
    product_id = await engine.products.create_product(
        payload.restaurant_id,
        payload.name,
        payload.price,
        payload.category,
        payload.ingredients,
    )
    return ProductCreateResponse(product_id=product_id)


@router.delete(
    "/products/{restaurant_id}/{product_id}",
    response_model=SuccessResponse,
    tags=["Products"],
)
async def delete_product(
    restaurant_id: str,
    product_id: str,
    engine: POSEngine = Depends(get_engine),
) -> SuccessResponse:
    await engine.products.delete_product(restaurant_id, product_id)
    return SuccessResponse()


# =============================================================================
# INVENTORY & SALES
# =============================================================================

@router.get("/inventory/{restaurant_id}", response_model=InventoryListResponse, tags=["Inventory"])
async def list_inventory(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> InventoryListResponse:
    return InventoryListResponse(inventory=await engine.inventory.list_inventory(restaurant_id))


@router.post("/inventory", response_model=InventoryAdjustResponse, tags=["Inventory"])
async def adjust_inventory(
    payload: InventoryAdjust,
    engine: POSEngine = Depends(get_engine),
) -> InventoryAdjustResponse:
    item = await engine.inventory.adjust(
        payload.restaurant_id,
        payload.ingredient,
        payload.quantity,
        payload.unit,
    )
    return InventoryAdjustResponse(item=item)


@router.get("/sales/{restaurant_id}", response_model=SalesListResponse, tags=["Sales"])
async def list_sales(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> SalesListResponse:
    return SalesListResponse(sales=await engine.sales.list_sales(restaurant_id))


@router.get("/sales/{restaurant_id}/export", tags=["Sales"])
async def export_sales(
    restaurant_id: str,
    engine: POSEngine = Depends(get_engine),
) -> FileResponse:
    """Download the restaurant's daily sales as an Excel workbook."""
    records = await engine.sales.list_sales(restaurant_id)
    result = await run_in_threadpool(ExcelManager.export_sales, restaurant_id, records)
    if not result["success"]:
        raise StoreUnavailable(f"Sales export failed: {result['message']}")

    return FileResponse(
        result["file_path"],
        media_type=XLSX_MEDIA_TYPE,
        filename=f"sales_{restaurant_id}.xlsx",
    )


app.include_router(router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(POSError)
async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    """Engine failures are user-visible and never retried."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are reported as 400 validation errors."""
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": f"Missing or invalid fields: {', '.join(fields)}",
            "detail": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
