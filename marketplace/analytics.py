"""
Read-side summaries over committed orders: restaurant dashboard/analytics, rider earnings.
Every call rescans the matching orders; nothing is cached.

Revenue is always summed over subtotals (delivery fees belong to riders/platform).
Note the dashboard's today_revenue counts every order placed today whatever its
status, while total_revenue and analytics only count delivered orders.
"""
from collections import Counter
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from marketplace.clock import as_aware, local_midnight
from marketplace.config import settings
from marketplace.models import (
    Analytics,
    Dashboard,
    Earnings,
    EarningsRecord,
    Order,
    OrderStatus,
    Restaurant,
    TopSellingItem,
)
from marketplace.order_state import IN_KITCHEN_STATUSES
from marketplace.store import OrderQuery, OrderStore

CENT = Decimal("0.01")
TOP_SELLING_LIMIT = 10

_DELIVERED = frozenset({OrderStatus.DELIVERED})


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _subtotals(orders: list[Order]) -> Decimal:
    return sum((o.subtotal for o in orders), Decimal("0"))


def rider_share(delivery_fee: Decimal) -> Decimal:
    """Rider's cut of a delivery fee; the platform keeps the rest."""
    return delivery_fee * Decimal(str(settings.rider_earnings_share))


async def get_dashboard(store: OrderStore, restaurant: Restaurant, now: datetime | None = None) -> Dashboard:
    orders = await store.find_orders(OrderQuery(restaurant_id=restaurant.id))
    today_start = local_midnight(now)
    today_orders = [o for o in orders if o.created_at >= today_start]
    delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]
    return Dashboard(
        today_orders=len(today_orders),
        today_revenue=_money(_subtotals(today_orders)),
        pending_orders=sum(1 for o in orders if o.status in IN_KITCHEN_STATUSES),
        total_orders=len(orders),
        total_revenue=_money(_subtotals(delivered)),
        restaurant=restaurant,
    )


def top_selling_items(orders: list[Order], limit: int = TOP_SELLING_LIMIT) -> list[TopSellingItem]:
    """Quantity per item name across all given orders, whatever their status."""
    sold: Counter[str] = Counter()
    for order in orders:
        for item in order.items:
            sold[item.name] += item.quantity
    return [TopSellingItem(name=name, quantity=qty) for name, qty in sold.most_common(limit)]


async def get_analytics(
    store: OrderStore,
    restaurant_id: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> Analytics:
    orders = await store.find_orders(
        OrderQuery(
            restaurant_id=restaurant_id,
            created_from=as_aware(start_date),
            created_to=as_aware(end_date),
        )
    )
    delivered = [o for o in orders if o.status == OrderStatus.DELIVERED]
    total_revenue = _subtotals(delivered)
    average = total_revenue / len(orders) if orders else Decimal("0")
    return Analytics(
        total_orders=len(orders),
        completed_orders=len(delivered),
        cancelled_orders=sum(1 for o in orders if o.status == OrderStatus.CANCELLED),
        total_revenue=_money(total_revenue),
        average_order_value=_money(average),
        top_selling_items=top_selling_items(orders),
    )


async def get_earnings(store: OrderStore, rider_id: str, now: datetime | None = None) -> Earnings:
    delivered = await store.find_orders(OrderQuery(rider_id=rider_id, statuses=_DELIVERED))
    today_start = local_midnight(now)
    today = [
        o for o in delivered
        if o.actual_delivery_time is not None and o.actual_delivery_time >= today_start
    ]
    return Earnings(
        total_earnings=_money(sum((rider_share(o.delivery_fee) for o in delivered), Decimal("0"))),
        today_earnings=_money(sum((rider_share(o.delivery_fee) for o in today), Decimal("0"))),
        total_deliveries=len(delivered),
        today_deliveries=len(today),
    )


async def get_earnings_history(
    store: OrderStore,
    rider_id: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[EarningsRecord]:
    orders = await store.find_orders(
        OrderQuery(
            rider_id=rider_id,
            statuses=_DELIVERED,
            delivered_from=as_aware(start_date),
            delivered_to=as_aware(end_date),
            sort_by="actual_delivery_time",
        )
    )
    names: dict[str, str | None] = {}
    history = []
    for order in orders:
        if order.restaurant_id not in names:
            restaurant = await store.get_restaurant(order.restaurant_id)
            names[order.restaurant_id] = restaurant.name if restaurant else None
        history.append(
            EarningsRecord(
                order_id=order.id,
                restaurant_name=names[order.restaurant_id],
                delivery_fee=order.delivery_fee,
                earnings=_money(rider_share(order.delivery_fee)),
                delivered_at=order.actual_delivery_time,
            )
        )
    return history
