"""
Order placement and the customer-facing reads.

Items are snapshotted at placement: later menu edits never touch an existing order.
"""
import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Sequence

from marketplace.clock import utcnow
from marketplace.config import settings
from marketplace.errors import NotFoundError, ValidationError
from marketplace.guard import ensure_can_view, require_role
from marketplace.metrics import orders_placed_total
from marketplace.models import (
    Actor,
    Order,
    OrderItem,
    OrderStatus,
    OrderTracking,
    PaymentMethod,
    PaymentStatus,
    Restaurant,
    Role,
)
from marketplace.order_state import progress
from marketplace.store import OrderQuery, OrderStore

logger = logging.getLogger(__name__)


def _validate_items(items: Sequence[OrderItem]) -> list[OrderItem]:
    if not items:
        raise ValidationError("Order must contain at least one item")
    for item in items:
        if item.quantity < 1:
            raise ValidationError(f"Quantity for {item.name!r} must be at least 1")
        if item.unit_price < 0:
            raise ValidationError(f"Price for {item.name!r} cannot be negative")
        if not item.name or not item.menu_item_id:
            raise ValidationError("Every item needs a menu item id and a name")
    return [item.model_copy() for item in items]


def _required(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Missing field: {field}")
    return value.strip()


async def place_order(
    store: OrderStore,
    actor: Actor,
    restaurant_id: str,
    items: Sequence[OrderItem],
    delivery_address: str,
    customer_phone: str,
    payment_method: PaymentMethod | str,
    special_instructions: str | None = None,
    customer_name: str | None = None,
    order_id: str | None = None,
    now: datetime | None = None,
) -> Order:
    require_role(actor, Role.CUSTOMER)
    snapshot = _validate_items(items)
    delivery_address = _required(delivery_address, "deliveryAddress")
    customer_phone = _required(customer_phone, "customerPhone")
    customer_name = _required(customer_name or actor.name, "customerName")
    try:
        payment_method = PaymentMethod(payment_method)
    except ValueError:
        raise ValidationError(f"Invalid payment method: {payment_method!r}")

    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")

    now = now or utcnow()
    subtotal = sum((item.line_total for item in snapshot), Decimal("0"))
    delivery_fee = restaurant.delivery_fee
    order = Order(
        id=order_id or uuid.uuid4().hex,
        customer_id=actor.id,
        restaurant_id=restaurant.id,
        items=snapshot,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=subtotal + delivery_fee,
        status=OrderStatus.PENDING,
        payment_method=payment_method,
        # No capture happens here: cash is settled on delivery, everything else counts as paid
        payment_status=PaymentStatus.PENDING if payment_method == PaymentMethod.CASH else PaymentStatus.PAID,
        delivery_address=delivery_address,
        customer_phone=customer_phone,
        customer_name=customer_name,
        special_instructions=special_instructions,
        estimated_delivery_time=now + timedelta(minutes=settings.estimated_delivery_minutes),
        created_at=now,
        updated_at=now,
    )
    order = await store.insert_order(order)
    orders_placed_total.labels(payment_method=payment_method.value).inc()
    logger.info(
        "Placed order_id=%s customer=%s restaurant=%s total=%s",
        order.id,
        actor.id,
        restaurant.id,
        order.total,
    )
    return order


async def get_customer_orders(store: OrderStore, actor: Actor) -> list[Order]:
    return await store.find_orders(OrderQuery(customer_id=actor.id))


async def _viewable_order(store: OrderStore, order_id: str, actor: Actor) -> Order:
    order = await store.get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    restaurant = None
    if actor.role == Role.RESTAURANT and settings.restrict_order_reads:
        restaurant = await store.get_restaurant_by_owner(actor.id)
    ensure_can_view(order, actor, restaurant)
    return order


async def get_order_by_id(store: OrderStore, order_id: str, actor: Actor) -> Order:
    return await _viewable_order(store, order_id, actor)


async def track_order(store: OrderStore, order_id: str, actor: Actor) -> OrderTracking:
    order = await _viewable_order(store, order_id, actor)
    restaurant: Restaurant | None = await store.get_restaurant(order.restaurant_id)
    return OrderTracking(
        order_id=order.id,
        status=order.status,
        progress=progress(order.status),
        restaurant_name=restaurant.name if restaurant else None,
        restaurant_address=restaurant.address if restaurant else None,
        restaurant_phone=restaurant.phone_number if restaurant else None,
        rider_id=order.rider_id,
        estimated_delivery_time=order.estimated_delivery_time,
        actual_delivery_time=order.actual_delivery_time,
        placed_at=order.created_at,
    )
