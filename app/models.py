"""
SQLAlchemy Database Models

Record store tables for the restaurant backend:
- Users (referenced by orders, carry the role checked by the access guard)
- Categories and menu items (catalog)
- Orders with their line items

References between tables are plain identifier columns: the service checks
them explicitly, and deleting a category never cascades to menu items.
"""

import enum
import json
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime, Text, Enum, Boolean

from app.core.identifiers import generate_object_id
from app.database import Base


NAME_MAX_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    STAFF = "staff"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    phone = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<User {self.id} - {self.email} - {self.role.value}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<Category {self.id} - {self.name}>"


class MenuItem(Base):
    """
    Catalog entry.

    The image columns hold a committed asset reference: either both are
    set and point at an asset the asset store holds, or both are null.
    """
    __tablename__ = "menu_items"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    category_id = Column(String(24), nullable=False, index=True)
    available = Column(Boolean, default=True, nullable=False)

    # =========================================================================
    # IMAGE (asset store reference)
    # =========================================================================
    image_public_id = Column(String(255), nullable=True)
    image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - ${self.price:.2f}>"


class Order(Base):
    """
    Customer order.

    Created once in PENDING status; afterwards only the status changes.
    """
    __tablename__ = "orders"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    user_id = Column(String(24), nullable=False, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(Text, nullable=False)  # JSON list of line items, in order
    total_amount = Column(Float, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    dine_in = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # DELIVERY ADDRESS (only for non-dine-in orders)
    # =========================================================================
    delivery_street = Column(Text, nullable=True)
    delivery_city = Column(Text, nullable=True)
    delivery_state = Column(Text, nullable=True)
    delivery_zip = Column(Text, nullable=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def line_items(self) -> list[dict]:
        return json.loads(self.items) if self.items else []

    @property
    def delivery_address(self) -> dict | None:
        if not any((self.delivery_street, self.delivery_city, self.delivery_zip)):
            return None
        return {
            "street": self.delivery_street,
            "city": self.delivery_city,
            "state": self.delivery_state,
            "zip": self.delivery_zip,
        }

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value} - ${self.total_amount:.2f}>"
