"""
Access guard: role and ownership checks on an explicit Actor.
"""
import logging

from marketplace.config import settings
from marketplace.errors import ForbiddenError, NotFoundError
from marketplace.models import Actor, Order, OrderStatus, Restaurant, Role
from marketplace.store import OrderStore

logger = logging.getLogger(__name__)


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        logger.info("Denied actor=%s role=%s (needs %s)", actor.id, actor.role.value, [r.value for r in roles])
        raise ForbiddenError()


async def restaurant_for_actor(store: OrderStore, actor: Actor) -> Restaurant:
    """The restaurant owned by a restaurant-role actor."""
    require_role(actor, Role.RESTAURANT)
    restaurant = await store.get_restaurant_by_owner(actor.id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant


def ensure_can_view(order: Order, actor: Actor, restaurant: Restaurant | None = None) -> None:
    """
    The order's customer may always read it. Any restaurant or rider may too, unless
    restrict_order_reads is on: then only the owning restaurant, the assigned rider,
    or any rider while the order is an open delivery.
    """
    if actor.role == Role.CUSTOMER:
        if order.customer_id != actor.id:
            raise ForbiddenError()
        return
    if not settings.restrict_order_reads:
        return
    if actor.role == Role.RESTAURANT:
        if restaurant is None or restaurant.id != order.restaurant_id:
            raise ForbiddenError()
        return
    if actor.role == Role.RIDER:
        if order.rider_id == actor.id:
            return
        if order.status == OrderStatus.READY and order.rider_id is None:
            return
        raise ForbiddenError()
    raise ForbiddenError()
