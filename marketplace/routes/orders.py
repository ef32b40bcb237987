import asyncio
import uuid

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from marketplace.auth import get_current_actor, require
from marketplace.errors import ConflictError
from marketplace.models import Actor, Order, OrderTracking, PlaceOrderRequest, Role
from marketplace.ordering import get_customer_orders, get_order_by_id, place_order, track_order
from marketplace.redis_client import claim_idempotency_key, release_idempotency_key
from marketplace.store import OrderStore, get_store

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=Order, status_code=201)
async def create_order(
    body: PlaceOrderRequest,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    actor: Actor = Depends(require(Role.CUSTOMER)),
    store: OrderStore = Depends(get_store),
):
    """
    Place an order. With an Idempotency-Key header, repeating the request returns
    the order placed the first time (200) instead of creating another one.
    """
    order_id = uuid.uuid4().hex
    if idempotency_key:
        earlier = await claim_idempotency_key(actor.id, idempotency_key, order_id)
        if earlier is not None:
            order = await store.get_order(earlier)
            if order is None:
                raise ConflictError("A request with this idempotency key is still in progress")
            return JSONResponse(status_code=200, content=order.model_dump(mode="json", by_alias=True))

    placed = False
    try:
        order = await place_order(
            store,
            actor,
            restaurant_id=body.restaurant_id,
            items=body.items,
            delivery_address=body.delivery_address,
            customer_phone=body.customer_phone,
            payment_method=body.payment_method,
            special_instructions=body.special_instructions,
            customer_name=body.customer_name,
            order_id=order_id,
        )
        placed = True
        return order
    finally:
        if idempotency_key and not placed:
            # completes even when the request itself was cancelled
            await asyncio.shield(release_idempotency_key(actor.id, idempotency_key))


@router.get("/mine", response_model=list[Order])
async def my_orders(
    actor: Actor = Depends(get_current_actor),
    store: OrderStore = Depends(get_store),
):
    return await get_customer_orders(store, actor)


@router.get("/{order_id}", response_model=Order)
async def order_detail(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    store: OrderStore = Depends(get_store),
):
    return await get_order_by_id(store, order_id, actor)


@router.get("/{order_id}/track", response_model=OrderTracking)
async def order_tracking(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    store: OrderStore = Depends(get_store),
):
    return await track_order(store, order_id, actor)
