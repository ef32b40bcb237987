from datetime import datetime

from fastapi import APIRouter, Depends, Query

from marketplace.analytics import get_analytics, get_dashboard
from marketplace.auth import require
from marketplace.guard import restaurant_for_actor
from marketplace.lifecycle import get_restaurant_orders, update_order_status
from marketplace.models import Actor, Analytics, Dashboard, Order, Role, StatusUpdateRequest
from marketplace.store import OrderStore, get_store

router = APIRouter(prefix="/restaurant", tags=["restaurant"])


@router.get("/dashboard", response_model=Dashboard)
async def dashboard(
    actor: Actor = Depends(require(Role.RESTAURANT)),
    store: OrderStore = Depends(get_store),
):
    restaurant = await restaurant_for_actor(store, actor)
    return await get_dashboard(store, restaurant)


@router.get("/orders", response_model=list[Order])
async def restaurant_orders(
    status: str | None = Query(default=None),
    actor: Actor = Depends(require(Role.RESTAURANT)),
    store: OrderStore = Depends(get_store),
):
    restaurant = await restaurant_for_actor(store, actor)
    return await get_restaurant_orders(store, restaurant.id, status)


@router.patch("/orders/{order_id}/status", response_model=Order)
async def change_status(
    order_id: str,
    body: StatusUpdateRequest,
    actor: Actor = Depends(require(Role.RESTAURANT)),
    store: OrderStore = Depends(get_store),
):
    return await update_order_status(store, order_id, body.status, actor)


@router.get("/analytics", response_model=Analytics)
async def analytics(
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    actor: Actor = Depends(require(Role.RESTAURANT)),
    store: OrderStore = Depends(get_store),
):
    restaurant = await restaurant_for_actor(store, actor)
    return await get_analytics(store, restaurant.id, start_date, end_date)
