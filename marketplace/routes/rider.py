from datetime import datetime

from fastapi import APIRouter, Depends, Query

from marketplace.analytics import get_earnings, get_earnings_history
from marketplace.auth import require
from marketplace.delivery import (
    accept_delivery,
    complete_delivery,
    get_active_deliveries,
    get_available_deliveries,
    get_delivery_history,
)
from marketplace.models import Actor, Earnings, EarningsRecord, Order, Role
from marketplace.store import OrderStore, get_store

router = APIRouter(prefix="/rider", tags=["rider"])

rider_only = require(Role.RIDER)


@router.get("/deliveries/available", response_model=list[Order])
async def available(
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await get_available_deliveries(store)


@router.post("/deliveries/{order_id}/accept", response_model=Order)
async def accept(
    order_id: str,
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    """First claim wins; a losing rider gets 409 and should refresh the available list."""
    return await accept_delivery(store, order_id, actor)


@router.post("/deliveries/{order_id}/complete", response_model=Order)
async def complete(
    order_id: str,
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await complete_delivery(store, order_id, actor)


@router.get("/deliveries/active", response_model=list[Order])
async def active(
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await get_active_deliveries(store, actor.id)


@router.get("/deliveries/history", response_model=list[Order])
async def history(
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await get_delivery_history(store, actor.id)


@router.get("/earnings", response_model=Earnings)
async def earnings(
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await get_earnings(store, actor.id)


@router.get("/earnings/history", response_model=list[EarningsRecord])
async def earnings_history(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    actor: Actor = Depends(rider_only),
    store: OrderStore = Depends(get_store),
):
    return await get_earnings_history(store, actor.id, start_date, end_date)
