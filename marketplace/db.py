"""
Async Postgres: restaurants (read-only directory) + orders (one row per order, items as JSONB).
Status changes are single conditional UPDATEs, so the row is only touched if it
still holds the state the caller read.
"""
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import asyncpg
from asyncpg.exceptions import UniqueViolationError

from marketplace.config import settings
from marketplace.models import Order, Restaurant
from marketplace.store import (
    MUTABLE_FIELDS,
    SORTABLE_FIELDS,
    DuplicateOrderError,
    DuplicateRestaurantError,
    OrderQuery,
)

ORDER_COLUMNS = (
    "id",
    "customer_id",
    "restaurant_id",
    "rider_id",
    "items",
    "subtotal",
    "delivery_fee",
    "total",
    "status",
    "payment_method",
    "payment_status",
    "delivery_address",
    "customer_phone",
    "customer_name",
    "special_instructions",
    "estimated_delivery_time",
    "actual_delivery_time",
    "created_at",
    "updated_at",
)


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS restaurants (
                id VARCHAR(64) PRIMARY KEY,
                owner_id VARCHAR(64) NOT NULL UNIQUE,
                name VARCHAR(255) NOT NULL,
                address TEXT,
                phone_number VARCHAR(50),
                delivery_fee NUMERIC(12, 2) NOT NULL DEFAULT 0,
                minimum_order NUMERIC(12, 2) NOT NULL DEFAULT 0,
                is_open BOOLEAN NOT NULL DEFAULT TRUE,
                rating DOUBLE PRECISION NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id VARCHAR(64) PRIMARY KEY,
                customer_id VARCHAR(64) NOT NULL,
                restaurant_id VARCHAR(64) NOT NULL REFERENCES restaurants(id),
                rider_id VARCHAR(64),
                items JSONB NOT NULL,
                subtotal NUMERIC(12, 2) NOT NULL,
                delivery_fee NUMERIC(12, 2) NOT NULL,
                total NUMERIC(12, 2) NOT NULL,
                status VARCHAR(20) NOT NULL DEFAULT 'pending',
                payment_method VARCHAR(20) NOT NULL,
                payment_status VARCHAR(20) NOT NULL DEFAULT 'pending',
                delivery_address TEXT NOT NULL,
                customer_phone VARCHAR(50) NOT NULL,
                customer_name VARCHAR(255) NOT NULL,
                special_instructions TEXT,
                estimated_delivery_time TIMESTAMPTZ NOT NULL,
                actual_delivery_time TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
        """)
        for column in ("restaurant_id", "customer_id", "rider_id", "status", "created_at"):
            await conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_orders_{column} ON orders({column});"
            )


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _row_to_order(row: asyncpg.Record) -> Order:
    data = dict(row)
    if isinstance(data["items"], str):
        data["items"] = json.loads(data["items"])
    return Order.model_validate(data)


def build_conditional_update(
    order_id: str,
    expected: dict[str, Any],
    changes: dict[str, Any],
    now: datetime,
) -> tuple[str, list[Any]]:
    """
    UPDATE orders SET <changes>, updated_at WHERE id AND <expected> RETURNING *.
    An expected value of None becomes IS NULL.
    """
    for field in (*expected, *changes):
        if field not in MUTABLE_FIELDS:
            raise ValueError(f"field {field!r} cannot be conditionally updated")

    args: list[Any] = [order_id]
    assignments = []
    for field, value in changes.items():
        args.append(_db_value(value))
        assignments.append(f"{field} = ${len(args)}")
    args.append(now)
    assignments.append(f"updated_at = ${len(args)}")

    conditions = ["id = $1"]
    for field, value in expected.items():
        if value is None:
            conditions.append(f"{field} IS NULL")
        else:
            args.append(_db_value(value))
            conditions.append(f"{field} = ${len(args)}")

    sql = (
        f"UPDATE orders SET {', '.join(assignments)} "
        f"WHERE {' AND '.join(conditions)} RETURNING *;"
    )
    return sql, args


def build_order_select(query: OrderQuery) -> tuple[str, list[Any]]:
    if query.sort_by not in SORTABLE_FIELDS:
        raise ValueError(f"cannot sort orders by {query.sort_by!r}")

    args: list[Any] = []
    conditions = []

    def add(template: str, value: Any) -> None:
        args.append(value)
        conditions.append(template.format(f"${len(args)}"))

    if query.customer_id is not None:
        add("customer_id = {}", query.customer_id)
    if query.restaurant_id is not None:
        add("restaurant_id = {}", query.restaurant_id)
    if query.rider_id is not None:
        add("rider_id = {}", query.rider_id)
    if query.unassigned:
        conditions.append("rider_id IS NULL")
    if query.statuses is not None:
        add("status = ANY({}::varchar[])", sorted(s.value for s in query.statuses))
    if query.created_from is not None:
        add("created_at >= {}", query.created_from)
    if query.created_to is not None:
        add("created_at <= {}", query.created_to)
    if query.delivered_from is not None:
        add("actual_delivery_time >= {}", query.delivered_from)
    if query.delivered_to is not None:
        add("actual_delivery_time <= {}", query.delivered_to)

    sql = "SELECT * FROM orders"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += f" ORDER BY {query.sort_by} {'DESC' if query.descending else 'ASC'}"
    if query.limit is not None:
        args.append(query.limit)
        sql += f" LIMIT ${len(args)}"
    return sql + ";", args


class PostgresStore:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @classmethod
    async def connect(cls, database_url: str) -> "PostgresStore":
        pool = await asyncpg.create_pool(
            database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=60,
        )
        await init_schema(pool)
        return cls(pool)

    async def close(self) -> None:
        await self.pool.close()

    async def insert_order(self, order: Order) -> Order:
        data = order.model_dump()
        data["items"] = json.dumps(
            [item.model_dump() for item in order.items],
            default=str,
        )
        values = [_db_value(data[c]) for c in ORDER_COLUMNS]
        placeholders = ", ".join(f"${i}" for i in range(1, len(ORDER_COLUMNS) + 1))
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"INSERT INTO orders ({', '.join(ORDER_COLUMNS)}) "
                    f"VALUES ({placeholders}) RETURNING *;",
                    *values,
                )
            except UniqueViolationError:
                raise DuplicateOrderError(order.id)
        return _row_to_order(row)

    async def get_order(self, order_id: str) -> Order | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM orders WHERE id = $1;", order_id)
        return _row_to_order(row) if row else None

    async def find_orders(self, query: OrderQuery) -> list[Order]:
        sql, args = build_order_select(query)
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, *args)
        return [_row_to_order(r) for r in rows]

    async def compare_and_set(
        self,
        order_id: str,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Order | None:
        sql, args = build_conditional_update(order_id, expected, changes, datetime.now(timezone.utc))
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(sql, *args)
        return _row_to_order(row) if row else None

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM restaurants WHERE id = $1;", restaurant_id)
        return Restaurant.model_validate(dict(row)) if row else None

    async def get_restaurant_by_owner(self, owner_id: str) -> Restaurant | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM restaurants WHERE owner_id = $1;", owner_id)
        return Restaurant.model_validate(dict(row)) if row else None

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant:
        async with self.pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO restaurants (id, owner_id, name, address, phone_number,
                                             delivery_fee, minimum_order, is_open, rating, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, NOW())
                    ON CONFLICT (id) DO UPDATE SET
                        name = EXCLUDED.name,
                        address = EXCLUDED.address,
                        phone_number = EXCLUDED.phone_number,
                        delivery_fee = EXCLUDED.delivery_fee,
                        minimum_order = EXCLUDED.minimum_order,
                        is_open = EXCLUDED.is_open,
                        rating = EXCLUDED.rating,
                        updated_at = NOW();
                    """,
                    restaurant.id,
                    restaurant.owner_id,
                    restaurant.name,
                    restaurant.address,
                    restaurant.phone_number,
                    restaurant.delivery_fee,
                    restaurant.minimum_order,
                    restaurant.is_open,
                    restaurant.rating,
                )
            except UniqueViolationError:
                raise DuplicateRestaurantError(restaurant.owner_id)
        return restaurant
