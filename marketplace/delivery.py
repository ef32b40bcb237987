"""
Rider side of the lifecycle: claiming ready orders and completing them.

Both mutations are single conditional updates. Under concurrent claims exactly one
rider's update matches `rider_id IS NULL`; every other caller gets ConflictError.
"""
import logging

from marketplace.clock import utcnow
from marketplace.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from marketplace.guard import require_role
from marketplace.metrics import delivery_claim_conflicts_total, order_status_transitions_total
from marketplace.models import Actor, Order, OrderStatus, PaymentStatus, Role
from marketplace.store import OrderQuery, OrderStore

logger = logging.getLogger(__name__)

DELIVERY_HISTORY_LIMIT = 50


async def get_available_deliveries(store: OrderStore) -> list[Order]:
    """Ready and unclaimed, oldest first."""
    return await store.find_orders(
        OrderQuery(
            statuses=frozenset({OrderStatus.READY}),
            unassigned=True,
            descending=False,
        )
    )


async def accept_delivery(store: OrderStore, order_id: str, actor: Actor) -> Order:
    require_role(actor, Role.RIDER)
    claimed = await store.compare_and_set(
        order_id,
        {"status": OrderStatus.READY, "rider_id": None},
        {"status": OrderStatus.PICKED_UP, "rider_id": actor.id},
    )
    if claimed is not None:
        order_status_transitions_total.labels(
            from_status=OrderStatus.READY.value,
            to_status=OrderStatus.PICKED_UP.value,
        ).inc()
        logger.info("Rider=%s claimed order_id=%s", actor.id, order_id)
        return claimed

    order = await store.get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.rider_id == actor.id:
        raise ConflictError("You have already accepted this order")
    if order.rider_id is not None:
        delivery_claim_conflicts_total.inc()
        logger.warning("Rider=%s lost claim on order_id=%s (already assigned)", actor.id, order_id)
        raise ConflictError("Order already assigned to another rider")
    raise ValidationError("Order is not ready for pickup")


async def complete_delivery(store: OrderStore, order_id: str, actor: Actor) -> Order:
    require_role(actor, Role.RIDER)
    delivered = await store.compare_and_set(
        order_id,
        {"status": OrderStatus.PICKED_UP, "rider_id": actor.id},
        {
            "status": OrderStatus.DELIVERED,
            "payment_status": PaymentStatus.PAID,
            "actual_delivery_time": utcnow(),
        },
    )
    if delivered is not None:
        order_status_transitions_total.labels(
            from_status=OrderStatus.PICKED_UP.value,
            to_status=OrderStatus.DELIVERED.value,
        ).inc()
        logger.info("Rider=%s delivered order_id=%s", actor.id, order_id)
        return delivered

    order = await store.get_order(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if order.rider_id != actor.id:
        raise ForbiddenError()
    raise ValidationError("Order is not in picked-up status")


async def get_active_deliveries(store: OrderStore, rider_id: str) -> list[Order]:
    return await store.find_orders(
        OrderQuery(rider_id=rider_id, statuses=frozenset({OrderStatus.PICKED_UP}))
    )


async def get_delivery_history(store: OrderStore, rider_id: str) -> list[Order]:
    return await store.find_orders(
        OrderQuery(
            rider_id=rider_id,
            statuses=frozenset({OrderStatus.DELIVERED}),
            sort_by="actual_delivery_time",
            limit=DELIVERY_HISTORY_LIMIT,
        )
    )
