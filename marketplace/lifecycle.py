"""
Restaurant-driven status changes and the restaurant's order list.
"""
import logging

from marketplace.config import settings
from marketplace.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from marketplace.guard import restaurant_for_actor
from marketplace.metrics import order_status_transitions_total, order_transitions_rejected_total
from marketplace.models import Actor, Order, OrderStatus
from marketplace.order_state import RESTAURANT_STATUSES, can_restaurant_set, parse_status
from marketplace.store import OrderQuery, OrderStore

logger = logging.getLogger(__name__)


async def update_order_status(
    store: OrderStore,
    order_id: str,
    requested_status: str | OrderStatus,
    actor: Actor,
) -> Order:
    """
    Move an order along the kitchen chain or cancel it. Only the status changes.
    The write is conditional on the status we validated against; losing that race
    raises ConflictError rather than overwriting a newer state.
    """
    restaurant = await restaurant_for_actor(store, actor)

    order = await store.get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.restaurant_id != restaurant.id:
        raise ForbiddenError()

    requested = parse_status(requested_status)
    if requested not in RESTAURANT_STATUSES:
        raise ValidationError(f"Invalid status: {requested.value!r}")

    current = order.status
    if not can_restaurant_set(current, requested, strict=settings.strict_status_adjacency):
        order_transitions_rejected_total.labels(
            current_status=current.value,
            requested_status=requested.value,
        ).inc()
        logger.warning("Rejected order_id=%s transition %s -> %s", order.id, current.value, requested.value)
        raise ValidationError(f"Cannot change order status from {current.value} to {requested.value}")

    updated = await store.compare_and_set(order.id, {"status": current}, {"status": requested})
    if updated is None:
        latest = await store.get_order(order.id)
        if latest is None:
            raise NotFoundError("Order not found")
        raise ConflictError(f"Order status changed to {latest.status.value}; refresh and retry")

    order_status_transitions_total.labels(from_status=current.value, to_status=requested.value).inc()
    logger.info("Order order_id=%s %s -> %s by restaurant=%s", order.id, current.value, requested.value, restaurant.id)
    return updated


async def get_restaurant_orders(
    store: OrderStore,
    restaurant_id: str,
    status: str | OrderStatus | None = None,
) -> list[Order]:
    statuses = frozenset({parse_status(status)}) if status else None
    return await store.find_orders(OrderQuery(restaurant_id=restaurant_id, statuses=statuses))
