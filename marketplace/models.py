"""
Order, restaurant and read-model schemas. camelCase on the wire, snake_case in Python.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Role(str, Enum):
    CUSTOMER = "customer"
    RIDER = "rider"
    RESTAURANT = "restaurant"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked-up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CARD = "card"
    TRANSFER = "transfer"
    CASH = "cash"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Actor(Schema):
    """Who is calling, as vouched for by the identity provider."""
    id: str
    role: Role
    name: str | None = None


class OrderItem(Schema):
    menu_item_id: str
    name: str
    unit_price: Money
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Restaurant(Schema):
    id: str
    owner_id: str
    name: str
    address: str | None = None
    phone_number: str | None = None
    delivery_fee: Money = Decimal("0")
    minimum_order: Money = Decimal("0")
    is_open: bool = True
    rating: float = 0.0


class Order(Schema):
    id: str
    customer_id: str
    restaurant_id: str
    rider_id: str | None = None
    items: list[OrderItem]
    subtotal: Money
    delivery_fee: Money
    total: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    delivery_address: str
    customer_phone: str
    customer_name: str
    special_instructions: str | None = None
    estimated_delivery_time: datetime
    actual_delivery_time: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PlaceOrderRequest(Schema):
    restaurant_id: str
    items: list[OrderItem]
    delivery_address: str
    customer_phone: str
    payment_method: PaymentMethod
    special_instructions: str | None = None
    customer_name: str | None = None


class StatusUpdateRequest(Schema):
    status: str


class OrderTracking(Schema):
    order_id: str
    status: OrderStatus
    progress: list[OrderStatus]
    restaurant_name: str | None = None
    restaurant_address: str | None = None
    restaurant_phone: str | None = None
    rider_id: str | None = None
    estimated_delivery_time: datetime
    actual_delivery_time: datetime | None = None
    placed_at: datetime


class Dashboard(Schema):
    today_orders: int
    today_revenue: Money
    pending_orders: int
    total_orders: int
    total_revenue: Money
    restaurant: Restaurant


class TopSellingItem(Schema):
    name: str
    quantity: int


class Analytics(Schema):
    total_orders: int
    completed_orders: int
    cancelled_orders: int
    total_revenue: Money
    average_order_value: Money
    top_selling_items: list[TopSellingItem] = Field(default_factory=list)


class Earnings(Schema):
    total_earnings: Money
    today_earnings: Money
    total_deliveries: int
    today_deliveries: int


class EarningsRecord(Schema):
    order_id: str
    restaurant_name: str | None = None
    delivery_fee: Money
    earnings: Money
    delivered_at: datetime
