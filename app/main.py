"""
FastAPI Application Entry Point

Restaurant Order Management API
Menu catalog backed by an external asset store, plus customer orders.

Endpoints:
    - GET/POST /api/categories, GET/DELETE /api/categories/{id}
    - GET/POST /api/menuitems, GET/PUT/DELETE /api/menuitems/{id}
    - GET/POST /api/orders, GET/PUT /api/orders/{id}
    - GET /health: System health check

Catalog and category mutations require a staff or admin bearer token.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings, setup_logging
from app.core.errors import RestaurantError, ValidationError
from app.core.security import Subject, guard_order_status, require_staff
from app.database import get_db, init_db, engine
from app.schemas import (
    CategoryResponse,
    ErrorResponse,
    HealthResponse,
    MenuItemResponse,
    MessageResponse,
    OrderListResponse,
    OrderResponse,
)
from app.services.assets import BaseAssetStore, get_asset_store
from app.services.catalog import CatalogManager
from app.services.orders import OrderLifecycleManager
from app.services.validation import require_body

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
GUARDED_RESPONSES = {
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and report which stores and policies are active."""
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} "
        f"[{settings.env_mode.value}{', debug' if settings.debug else ''}]"
    )

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Missing configuration for {settings.env_mode.value}: {missing}")

    await init_db()

    logger.info(f"Asset store: {get_asset_store().provider_name}")
    logger.info(
        "Order status changes: "
        f"{'transition graph enforced' if settings.enforce_status_transitions else 'any valid label'}"
        f"{', staff only' if settings.protect_order_status else ''}"
    )

    yield

    await engine.dispose()
    logger.info("Record store connections closed")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant order management backend: menu catalog with externally "
        "hosted images, customer orders and their status workflow."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_catalog_manager(
    db: AsyncSession = Depends(get_db),
    asset_store: BaseAssetStore = Depends(get_asset_store),
) -> CatalogManager:
    return CatalogManager(db, asset_store)


def get_order_manager(db: AsyncSession = Depends(get_db)) -> OrderLifecycleManager:
    return OrderLifecycleManager(db)


async def read_json_body(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object, reporting problems as 400."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    return require_body(body)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "docs": "/docs",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    asset_store: BaseAssetStore = Depends(get_asset_store),
) -> HealthResponse:
    """Verify the record store and the asset store are reachable."""

    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    asset_status = "healthy" if await asset_store.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, asset_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        asset_store=asset_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATEGORY ENDPOINTS
# =============================================================================

@app.get("/api/categories", response_model=list[CategoryResponse], tags=["Categories"])
async def list_categories(
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> list[CategoryResponse]:
    return [CategoryResponse.from_record(c) for c in await catalog.list_categories()]


@app.get(
    "/api/categories/{category_id}",
    response_model=CategoryResponse,
    responses=ERROR_RESPONSES,
    tags=["Categories"],
)
async def get_category(
    category_id: str,
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> CategoryResponse:
    return CategoryResponse.from_record(await catalog.get_category(category_id))


@app.post(
    "/api/categories",
    response_model=CategoryResponse,
    status_code=201,
    responses=GUARDED_RESPONSES,
    tags=["Categories"],
)
async def create_category(
    request: Request,
    subject: Subject = Depends(require_staff),
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> CategoryResponse:
    body = await read_json_body(request)
    category = await catalog.create_category(body.get("name"), body.get("description"))
    return CategoryResponse.from_record(category)


@app.delete(
    "/api/categories/{category_id}",
    response_model=MessageResponse,
    responses=GUARDED_RESPONSES,
    tags=["Categories"],
)
async def delete_category(
    category_id: str,
    subject: Subject = Depends(require_staff),
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> MessageResponse:
    await catalog.delete_category(category_id)
    return MessageResponse(message="Category deleted successfully")


# =============================================================================
# MENU ITEM ENDPOINTS
# =============================================================================

@app.get("/api/menuitems", response_model=list[MenuItemResponse], tags=["Menu Items"])
async def list_menu_items(
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> list[MenuItemResponse]:
    items = await catalog.list_items()
    categories = await catalog.categories_for(items)
    return [
        MenuItemResponse.from_record(item, categories.get(item.category_id))
        for item in items
    ]


@app.get(
    "/api/menuitems/{item_id}",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    tags=["Menu Items"],
)
async def get_menu_item(
    item_id: str,
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> MenuItemResponse:
    item = await catalog.get_item(item_id)
    categories = await catalog.categories_for([item])
    return MenuItemResponse.from_record(item, categories.get(item.category_id))


@app.post(
    "/api/menuitems",
    response_model=MenuItemResponse,
    status_code=201,
    responses=GUARDED_RESPONSES,
    tags=["Menu Items"],
    summary="Create Menu Item",
)
async def create_menu_item(
    request: Request,
    subject: Subject = Depends(require_staff),
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> MenuItemResponse:
    """
    Create a menu item.

    The ``image`` field is a URL or data URI; it is uploaded to the asset
    store before the record is written.
    """
    body = await read_json_body(request)
    logger.info(f"Create menu item requested by {subject.subject_id}: {body.get('name')!r}")

    item = await catalog.create_item(
        name=body.get("name"),
        description=body.get("description"),
        price=body.get("price"),
        category_id=body.get("category"),
        available=body.get("available"),
        image=body.get("image"),
    )
    return MenuItemResponse.from_record(item)


@app.put(
    "/api/menuitems/{item_id}",
    response_model=MenuItemResponse,
    responses=GUARDED_RESPONSES,
    tags=["Menu Items"],
    summary="Update Menu Item",
)
async def update_menu_item(
    item_id: str,
    request: Request,
    subject: Subject = Depends(require_staff),
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> MenuItemResponse:
    body = await read_json_body(request)
    item = await catalog.update_item(item_id, body)
    categories = await catalog.categories_for([item])
    return MenuItemResponse.from_record(item, categories.get(item.category_id))


@app.delete(
    "/api/menuitems/{item_id}",
    response_model=MessageResponse,
    responses=GUARDED_RESPONSES,
    tags=["Menu Items"],
)
async def delete_menu_item(
    item_id: str,
    subject: Subject = Depends(require_staff),
    catalog: CatalogManager = Depends(get_catalog_manager),
) -> MessageResponse:
    await catalog.delete_item(item_id)
    return MessageResponse(message="Menu item deleted successfully")


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    request: Request,
    orders: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    body = await read_json_body(request)
    order = await orders.submit_order(
        user_id=body.get("user"),
        items=body.get("items"),
        total_amount=body.get("totalAmount"),
        payment_method=body.get("paymentMethod"),
        delivery_address=body.get("deliveryAddress"),
        dine_in=body.get("dineIn"),
    )
    return OrderResponse.from_record(order)


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    orders: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderListResponse:
    """Retrieve a paginated list of orders, newest first."""
    total, page = await orders.list_orders(skip=skip, limit=limit, status=status)
    users, menu_items = await orders.load_references(page)
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.from_record(o, users, menu_items) for o in page],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    orders: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    """Get an order with its customer and menu items."""
    order = await orders.get_order(order_id)
    users, menu_items = await orders.load_references([order])
    return OrderResponse.from_record(order, users, menu_items)


@app.put(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=GUARDED_RESPONSES,
    tags=["Orders"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    request: Request,
    subject: Optional[Subject] = Depends(guard_order_status),
    orders: OrderLifecycleManager = Depends(get_order_manager),
) -> OrderResponse:
    body = await read_json_body(request)
    order = await orders.set_status(order_id, body.get("status"))
    return OrderResponse.from_record(order)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RestaurantError)
async def restaurant_error_handler(request: Request, exc: RestaurantError) -> JSONResponse:
    """Map application errors to their HTTP status."""
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "INTERNAL_SERVER_ERROR",
            "message": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
