"""
Shared helpers for the order lifecycle tests: seeded restaurants, actors, order builders.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from marketplace.lifecycle import update_order_status
from marketplace.models import (
    Actor,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Restaurant,
    Role,
)
from marketplace.ordering import place_order

RESTAURANT_A = Restaurant(
    id="rest-a",
    owner_id="owner-a",
    name="Pizza Paradise",
    address="123 Main St, Downtown",
    phone_number="+1-555-0101",
    delivery_fee=Decimal("500"),
    minimum_order=Decimal("1000"),
)
RESTAURANT_B = Restaurant(
    id="rest-b",
    owner_id="owner-b",
    name="Burger Barn",
    address="456 Oak Ave, Midtown",
    delivery_fee=Decimal("300"),
)

CUSTOMER = Actor(id="cust-1", role=Role.CUSTOMER, name="John Doe")
OTHER_CUSTOMER = Actor(id="cust-2", role=Role.CUSTOMER, name="Jane Smith")
OWNER_A = Actor(id="owner-a", role=Role.RESTAURANT)
OWNER_B = Actor(id="owner-b", role=Role.RESTAURANT)
OWNER_WITHOUT_RESTAURANT = Actor(id="owner-z", role=Role.RESTAURANT)
RIDER_X = Actor(id="rider-x", role=Role.RIDER)
RIDER_Y = Actor(id="rider-y", role=Role.RIDER)

KITCHEN_STEPS = (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY)


def make_items(*lines: tuple[str, str, int]) -> list[OrderItem]:
    """make_items(("Pizza", "1500", 2), ...) -> snapshot items with generated menu ids."""
    return [
        OrderItem(menu_item_id=f"menu-{i}", name=name, unit_price=Decimal(price), quantity=qty)
        for i, (name, price, qty) in enumerate(lines, start=1)
    ]


async def place(store, actor=CUSTOMER, restaurant_id="rest-a", items=None, payment_method="card", now=None):
    return await place_order(
        store,
        actor,
        restaurant_id=restaurant_id,
        items=items or make_items(("Large Pepperoni Pizza", "1500", 2), ("Garlic Bread", "2000", 1)),
        delivery_address="100 Customer Lane, Apt 1",
        customer_phone="+1-555-1001",
        payment_method=payment_method,
        special_instructions="Ring twice",
        now=now,
    )


async def make_ready(store, order_id: str, owner=OWNER_A) -> Order:
    order = None
    for step in KITCHEN_STEPS:
        order = await update_order_status(store, order_id, step, owner)
    return order


def make_order(
    order_id: str,
    status: OrderStatus = OrderStatus.PENDING,
    subtotal: str = "1000",
    delivery_fee: str = "500",
    restaurant_id: str = "rest-a",
    rider_id: str | None = None,
    created_at: datetime | None = None,
    delivered_at: datetime | None = None,
    items: list[OrderItem] | None = None,
) -> Order:
    """A persisted-looking order in any state, for the read-side tests."""
    created_at = created_at or datetime.now(timezone.utc)
    subtotal_d = Decimal(subtotal)
    fee = Decimal(delivery_fee)
    if delivered_at is None and status == OrderStatus.DELIVERED:
        delivered_at = created_at + timedelta(minutes=30)
    return Order(
        id=order_id,
        customer_id=CUSTOMER.id,
        restaurant_id=restaurant_id,
        rider_id=rider_id,
        items=items or [OrderItem(menu_item_id="menu-1", name="Dish", unit_price=subtotal_d, quantity=1)],
        subtotal=subtotal_d,
        delivery_fee=fee,
        total=subtotal_d + fee,
        status=status,
        payment_method=PaymentMethod.CARD,
        payment_status=PaymentStatus.PAID,
        delivery_address="100 Customer Lane",
        customer_phone="+1-555-1001",
        customer_name="John Doe",
        estimated_delivery_time=created_at + timedelta(minutes=45),
        actual_delivery_time=delivered_at,
        created_at=created_at,
        updated_at=created_at,
    )


# camelCase body for POST /orders
ORDER_BODY = {
    "restaurantId": "rest-a",
    "items": [
        {"menuItemId": "menu-1", "name": "Large Pepperoni Pizza", "unitPrice": 1500, "quantity": 2},
        {"menuItemId": "menu-2", "name": "Garlic Bread", "unitPrice": 2000, "quantity": 1},
    ],
    "deliveryAddress": "100 Customer Lane, Apt 1",
    "customerPhone": "+1-555-1001",
    "paymentMethod": "cash",
    "specialInstructions": "Ring twice",
}
