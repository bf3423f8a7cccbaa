"""
Order Lifecycle Manager

Validates order submissions and moves orders through their status
workflow:

    pending ──▶ preparing ──▶ delivered
       │            │
       └────────────┴──────▶ canceled

By default any of the four labels is accepted as the new status. With
``enforce_transitions`` enabled, only the edges above are allowed and
delivered / canceled are terminal. Re-applying the current status is
always accepted.

Submission checks run in a fixed order and each one fails with its own
message. Menu item references are format-checked only, and totalAmount is
stored exactly as given (a mismatch with the line items is logged).
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import (
    IllegalTransitionError,
    InvalidStatusError,
    NotFoundError,
    RecordStoreError,
    ValidationError,
)
from app.core.identifiers import is_valid_object_id
from app.models import MenuItem, Order, OrderStatus, PaymentMethod, User
from app.services.record_store import RecordStore
from app.services.validation import (
    is_positive_integer,
    is_positive_number,
    is_present,
    require_bool,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELED})

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}


def parse_status(value: Any) -> OrderStatus:
    """Map a status label to OrderStatus or raise InvalidStatusError."""
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError()


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new == current or new in ALLOWED_TRANSITIONS[current]


def _validate_line_items(items: Any) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Items must be a non-empty array", field="items")

    line_items = []
    for item in items:
        if not isinstance(item, dict) or not is_valid_object_id(item.get("menuItemId")):
            raise ValidationError("Invalid menu item ID", field="items")
        if not is_positive_integer(item.get("quantity")):
            raise ValidationError("Quantity must be a positive integer", field="items")
        if not is_positive_number(item.get("price")):
            raise ValidationError("Price must be a positive number", field="items")
        line_items.append({
            "menu_item_id": item["menuItemId"],
            "quantity": item["quantity"],
            "price": item["price"],
        })
    return line_items


ADDRESS_FIELDS = ("street", "city", "state", "zip")


def _has_complete_address(address: Any) -> bool:
    return isinstance(address, dict) and all(
        is_present(address.get(key)) for key in ("street", "city", "zip")
    )


class OrderLifecycleManager:
    """
    Order submission and status changes.

    Example:
        >>> manager = OrderLifecycleManager(db)
        >>> order = await manager.submit_order(
        ...     user_id=user.id,
        ...     items=[{"menuItemId": item.id, "quantity": 2, "price": 9.99}],
        ...     total_amount=19.98,
        ...     payment_method="card",
        ...     delivery_address={"street": "123 Main St", "city": "X", "zip": "00000"},
        ... )
        >>> order.status
        <OrderStatus.PENDING: 'pending'>
    """

    def __init__(
        self,
        session: AsyncSession,
        enforce_transitions: Optional[bool] = None,
    ):
        self._orders = RecordStore(session, Order)
        self._users = RecordStore(session, User)
        self._menu_items = RecordStore(session, MenuItem)
        if enforce_transitions is None:
            enforce_transitions = get_settings().enforce_status_transitions
        self.enforce_transitions = enforce_transitions

    async def submit_order(
        self,
        user_id: Any,
        items: Any,
        total_amount: Any,
        payment_method: Any,
        delivery_address: Any = None,
        dine_in: Any = None,
    ) -> Order:
        """
        Validate and persist a new order in pending status.

        Raises:
            ValidationError: The first failed check, in submission order
            RecordStoreError: The order could not be saved
        """
        if not is_present(user_id):
            raise ValidationError("User ID is required", field="user")
        if not is_valid_object_id(user_id):
            raise ValidationError("Invalid user ID", field="user")

        line_items = _validate_line_items(items)

        if not is_positive_number(total_amount):
            raise ValidationError("Total amount must be a positive number", field="totalAmount")

        if payment_method not in [m.value for m in PaymentMethod]:
            raise ValidationError(
                "Payment method must be either cash or card", field="paymentMethod"
            )

        if dine_in is None:
            dine_in = False
        require_bool(dine_in, "Dine-in flag must be true or false", "dineIn")

        if not dine_in and not _has_complete_address(delivery_address):
            raise ValidationError(
                "Delivery address is required for non-dine-in orders",
                field="deliveryAddress",
            )
        if isinstance(delivery_address, dict) and any(
            delivery_address.get(key) is not None
            and not isinstance(delivery_address[key], str)
            for key in ADDRESS_FIELDS
        ):
            raise ValidationError(
                "Delivery address fields must be strings", field="deliveryAddress"
            )

        subtotal = round(sum(li["quantity"] * li["price"] for li in line_items), 2)
        if abs(subtotal - total_amount) > 0.005:
            logger.warning(
                f"Order total {total_amount} for user {user_id} differs from "
                f"line item sum {subtotal}; storing caller total"
            )

        address = delivery_address if isinstance(delivery_address, dict) else {}
        try:
            order = await self._orders.insert({
                "user_id": user_id,
                "items": json.dumps(line_items),
                "total_amount": total_amount,
                "payment_method": PaymentMethod(payment_method),
                "dine_in": dine_in,
                "delivery_street": address.get("street"),
                "delivery_city": address.get("city"),
                "delivery_state": address.get("state"),
                "delivery_zip": address.get("zip"),
                "status": OrderStatus.PENDING,
            })
        except RecordStoreError as e:
            raise RecordStoreError("Error placing order") from e

        logger.info(
            f"Order {order.id} placed by user {user_id} "
            f"({len(line_items)} items, ${order.total_amount:.2f}, {payment_method})"
        )
        return order

    async def set_status(self, order_id: str, new_status: Any) -> Order:
        """
        Change an order's status.

        Raises:
            InvalidStatusError: Label is not one of the four statuses
            NotFoundError: Order does not exist
            IllegalTransitionError: Transition graph enforced and edge not allowed
            RecordStoreError: The update could not be saved
        """
        status = parse_status(new_status)

        if self.enforce_transitions:
            order = await self._orders.find_by_id(order_id)
            if order is None:
                raise NotFoundError("Order not found")
            if not can_transition(order.status, status):
                logger.warning(
                    f"Rejected status change for order {order_id}: "
                    f"{order.status.value} -> {status.value}"
                )
                raise IllegalTransitionError(order.status.value, status.value)

        try:
            updated = await self._orders.update_by_id(order_id, {"status": status})
        except RecordStoreError as e:
            raise RecordStoreError("Error updating order status") from e
        if updated is None:
            raise NotFoundError("Order not found")

        logger.info(f"Order {order_id} status set to {status.value}")
        return updated

    async def get_order(self, order_id: str) -> Order:
        order = await self._orders.find_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def list_orders(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> tuple[int, list[Order]]:
        filters = {}
        if status is not None:
            filters["status"] = parse_status(status)
        total = await self._orders.count(**filters)
        orders = await self._orders.list_all(
            offset=skip, limit=limit, newest_first=True, **filters
        )
        return total, orders

    async def load_references(
        self, orders: list[Order]
    ) -> tuple[dict[str, User], dict[str, MenuItem]]:
        """Fetch the users and menu items referenced by orders, keyed by id."""
        users = await self._users.find_many([o.user_id for o in orders])
        menu_items = await self._menu_items.find_many([
            li["menu_item_id"] for o in orders for li in o.line_items
        ])
        return users, menu_items
