"""
Order persistence interface and the in-process backend.

Every status change goes through compare_and_set: the update is applied only if
the stored order still matches `expected` at the instant of the write.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from marketplace.config import settings
from marketplace.models import Order, OrderStatus, Restaurant

SORTABLE_FIELDS = ("created_at", "actual_delivery_time")
MUTABLE_FIELDS = ("status", "rider_id", "payment_status", "actual_delivery_time")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DuplicateOrderError(Exception):
    """Raised when an order id already exists."""


class DuplicateRestaurantError(Exception):
    """Raised when an owner already has a different restaurant."""


@dataclass(frozen=True)
class OrderQuery:
    customer_id: str | None = None
    restaurant_id: str | None = None
    rider_id: str | None = None
    unassigned: bool = False  # rider_id IS NULL
    statuses: frozenset[OrderStatus] | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    delivered_from: datetime | None = None
    delivered_to: datetime | None = None
    sort_by: str = "created_at"
    descending: bool = True
    limit: int | None = None

    def matches(self, order: Order) -> bool:
        if self.customer_id is not None and order.customer_id != self.customer_id:
            return False
        if self.restaurant_id is not None and order.restaurant_id != self.restaurant_id:
            return False
        if self.rider_id is not None and order.rider_id != self.rider_id:
            return False
        if self.unassigned and order.rider_id is not None:
            return False
        if self.statuses is not None and order.status not in self.statuses:
            return False
        if self.created_from is not None and order.created_at < self.created_from:
            return False
        if self.created_to is not None and order.created_at > self.created_to:
            return False
        if self.delivered_from is not None or self.delivered_to is not None:
            delivered = order.actual_delivery_time
            if delivered is None:
                return False
            if self.delivered_from is not None and delivered < self.delivered_from:
                return False
            if self.delivered_to is not None and delivered > self.delivered_to:
                return False
        return True


class OrderStore(Protocol):
    async def insert_order(self, order: Order) -> Order: ...

    async def get_order(self, order_id: str) -> Order | None: ...

    async def find_orders(self, query: OrderQuery) -> list[Order]: ...

    async def compare_and_set(
        self,
        order_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Order | None: ...

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None: ...

    async def get_restaurant_by_owner(self, owner_id: str) -> Restaurant | None: ...

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant: ...

    async def close(self) -> None: ...


class InMemoryStore:
    """Dict-backed store for tests and local runs. Conditional updates hold a lock."""

    def __init__(self, restaurants=(), orders=()):
        self._restaurants: dict[str, Restaurant] = {r.id: r for r in restaurants}
        self._orders: dict[str, Order] = {o.id: o for o in orders}
        self._lock = asyncio.Lock()

    async def insert_order(self, order: Order) -> Order:
        async with self._lock:
            if order.id in self._orders:
                raise DuplicateOrderError(order.id)
            self._orders[order.id] = order.model_copy(deep=True)
        return order

    async def get_order(self, order_id: str) -> Order | None:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def find_orders(self, query: OrderQuery) -> list[Order]:
        found = [o for o in self._orders.values() if query.matches(o)]

        def sort_key(o: Order):
            value = getattr(o, query.sort_by)
            return value if value is not None else _EPOCH

        found.sort(key=sort_key, reverse=query.descending)
        if query.limit is not None:
            found = found[: query.limit]
        return [o.model_copy(deep=True) for o in found]

    async def compare_and_set(
        self,
        order_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Order | None:
        _check_fields(expected, changes)
        async with self._lock:
            current = self._orders.get(order_id)
            if current is None:
                return None
            for field, value in expected.items():
                if getattr(current, field) != value:
                    return None
            updated = current.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)},
            )
            self._orders[order_id] = updated
        return updated.model_copy(deep=True)

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        return self._restaurants.get(restaurant_id)

    async def get_restaurant_by_owner(self, owner_id: str) -> Restaurant | None:
        for restaurant in self._restaurants.values():
            if restaurant.owner_id == owner_id:
                return restaurant
        return None

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant:
        other = await self.get_restaurant_by_owner(restaurant.owner_id)
        if other is not None and other.id != restaurant.id:
            raise DuplicateRestaurantError(restaurant.owner_id)
        self._restaurants[restaurant.id] = restaurant
        return restaurant

    async def close(self) -> None:
        return None


def _check_fields(expected: dict[str, Any], changes: dict[str, Any]) -> None:
    for field in (*expected, *changes):
        if field not in MUTABLE_FIELDS:
            raise ValueError(f"field {field!r} cannot be conditionally updated")


_store: OrderStore | None = None


async def get_store() -> OrderStore:
    global _store
    if _store is None:
        if settings.store_backend == "memory":
            _store = InMemoryStore()
        else:
            from marketplace.db import PostgresStore
            _store = await PostgresStore.connect(settings.database_url)
    return _store


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
