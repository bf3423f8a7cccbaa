"""
Pydantic Schemas for API Responses

Responses are serialized with camelCase keys. Records are mapped
explicitly through the ``from_record`` constructors; referenced documents
(category, customer, menu items) are attached only when the caller fetched
them.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models import Category, MenuItem, Order, User


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# CATALOG
# =============================================================================

class ImageResponse(CamelModel):
    public_id: str
    url: str


class CategoryResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, category: Category) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
        )


class MenuItemResponse(CamelModel):
    """A menu item; ``category_detail`` is the joined category, if it still exists."""
    id: str
    name: str
    description: Optional[str] = None
    price: float
    category: str
    category_detail: Optional[CategoryResponse] = None
    available: bool
    image: Optional[ImageResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(
        cls,
        item: MenuItem,
        category: Optional[Category] = None,
    ) -> "MenuItemResponse":
        image = None
        if item.image_public_id:
            image = ImageResponse(public_id=item.image_public_id, url=item.image_url)
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            category=item.category_id,
            category_detail=CategoryResponse.from_record(category) if category else None,
            available=item.available,
            image=image,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# ORDERS
# =============================================================================

class MenuItemSummary(CamelModel):
    id: str
    name: str
    price: float


class CustomerSummary(CamelModel):
    id: str
    name: str
    email: str


class DeliveryAddress(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class LineItemResponse(CamelModel):
    menu_item_id: str
    quantity: int
    price: float
    menu_item: Optional[MenuItemSummary] = None


class OrderResponse(CamelModel):
    id: str
    user: str
    customer: Optional[CustomerSummary] = None
    items: List[LineItemResponse]
    total_amount: float
    payment_method: str
    delivery_address: Optional[DeliveryAddress] = None
    dine_in: bool
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(
        cls,
        order: Order,
        users: Optional[dict[str, User]] = None,
        menu_items: Optional[dict[str, MenuItem]] = None,
    ) -> "OrderResponse":
        users = users or {}
        menu_items = menu_items or {}

        items = []
        for li in order.line_items:
            menu_item = menu_items.get(li["menu_item_id"])
            items.append(LineItemResponse(
                menu_item_id=li["menu_item_id"],
                quantity=li["quantity"],
                price=li["price"],
                menu_item=MenuItemSummary(
                    id=menu_item.id, name=menu_item.name, price=menu_item.price,
                ) if menu_item else None,
            ))

        user = users.get(order.user_id)
        address = order.delivery_address
        return cls(
            id=order.id,
            user=order.user_id,
            customer=CustomerSummary(
                id=user.id, name=user.name, email=user.email,
            ) if user else None,
            items=items,
            total_amount=order.total_amount,
            payment_method=order.payment_method.value,
            delivery_address=DeliveryAddress(**address) if address else None,
            dine_in=order.dine_in,
            status=order.status.value,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(CamelModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


# =============================================================================
# SYSTEM
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    message: str


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    database: str
    asset_store: str
    timestamp: datetime
