import pytest

from marketplace.config import settings
from marketplace.delivery import accept_delivery
from marketplace.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from marketplace.lifecycle import get_restaurant_orders, update_order_status
from marketplace.models import OrderStatus

from _helper import (
    CUSTOMER,
    OWNER_A,
    OWNER_B,
    OWNER_WITHOUT_RESTAURANT,
    RIDER_X,
    make_ready,
    place,
)


async def test_kitchen_chain_to_ready(store):
    order = await place(store)
    before = await store.get_order(order.id)

    for step in ("confirmed", "preparing", "ready"):
        order = await update_order_status(store, order.id, step, OWNER_A)
        assert order.status == OrderStatus(step)

    assert order.rider_id is None
    # nothing but status (and the bookkeeping timestamp) moved
    assert order.model_dump(exclude={"status", "updated_at"}) == before.model_dump(exclude={"status", "updated_at"})


async def test_other_restaurant_is_forbidden(store):
    order = await place(store)
    with pytest.raises(ForbiddenError):
        await update_order_status(store, order.id, "confirmed", OWNER_B)
    assert (await store.get_order(order.id)).status == OrderStatus.PENDING


async def test_non_restaurant_actor_is_forbidden(store):
    order = await place(store)
    with pytest.raises(ForbiddenError):
        await update_order_status(store, order.id, "confirmed", CUSTOMER)


async def test_missing_order_or_restaurant(store):
    order = await place(store)
    with pytest.raises(NotFoundError):
        await update_order_status(store, "missing", "confirmed", OWNER_A)
    with pytest.raises(NotFoundError):
        await update_order_status(store, order.id, "confirmed", OWNER_WITHOUT_RESTAURANT)


@pytest.mark.parametrize("requested", ["picked-up", "delivered", "shipped", ""])
async def test_values_outside_restaurant_set(store, requested):
    order = await place(store)
    with pytest.raises(ValidationError):
        await update_order_status(store, order.id, requested, OWNER_A)


async def test_no_backward_moves(store):
    order = await place(store)
    await make_ready(store, order.id)
    for backwards in ("pending", "confirmed", "preparing"):
        with pytest.raises(ValidationError):
            await update_order_status(store, order.id, backwards, OWNER_A)
    assert (await store.get_order(order.id)).status == OrderStatus.READY


async def test_jump_to_ready_allowed_unless_strict(store, monkeypatch):
    order = await place(store)
    assert (await update_order_status(store, order.id, "ready", OWNER_A)).status == OrderStatus.READY

    monkeypatch.setattr(settings, "strict_status_adjacency", True)
    strict = await place(store)
    with pytest.raises(ValidationError):
        await update_order_status(store, strict.id, "ready", OWNER_A)
    assert (await update_order_status(store, strict.id, "confirmed", OWNER_A)).status == OrderStatus.CONFIRMED


async def test_cancel_from_any_kitchen_state(store):
    for steps in ([], ["confirmed"], ["confirmed", "preparing"], ["ready"]):
        order = await place(store)
        for step in steps:
            await update_order_status(store, order.id, step, OWNER_A)
        cancelled = await update_order_status(store, order.id, "cancelled", OWNER_A)
        assert cancelled.status == OrderStatus.CANCELLED


async def test_cancelled_is_terminal(store):
    order = await place(store)
    await update_order_status(store, order.id, "cancelled", OWNER_A)
    for target in ("pending", "confirmed", "ready", "cancelled"):
        with pytest.raises(ValidationError):
            await update_order_status(store, order.id, target, OWNER_A)


async def test_no_cancel_after_pickup(store):
    order = await place(store)
    await make_ready(store, order.id)
    await accept_delivery(store, order.id, RIDER_X)
    with pytest.raises(ValidationError):
        await update_order_status(store, order.id, "cancelled", OWNER_A)


async def test_stale_write_is_a_conflict(store):
    order = await place(store)
    await make_ready(store, order.id)

    # a rider claims the order between the restaurant's read and its write
    real_get = store.get_order
    calls = 0

    async def stale_get(order_id):
        nonlocal calls
        calls += 1
        snapshot = await real_get(order_id)
        if calls == 1:
            await accept_delivery(store, order_id, RIDER_X)
        return snapshot

    store.get_order = stale_get
    with pytest.raises(ConflictError):
        await update_order_status(store, order.id, "cancelled", OWNER_A)
    store.get_order = real_get

    latest = await store.get_order(order.id)
    assert latest.status == OrderStatus.PICKED_UP
    assert latest.rider_id == RIDER_X.id


async def test_restaurant_orders_filter(store):
    first = await place(store)
    second = await place(store)
    await place(store, restaurant_id="rest-b")
    await update_order_status(store, second.id, "confirmed", OWNER_A)

    all_orders = await get_restaurant_orders(store, "rest-a")
    assert {o.id for o in all_orders} == {first.id, second.id}
    confirmed = await get_restaurant_orders(store, "rest-a", "confirmed")
    assert [o.id for o in confirmed] == [second.id]
    with pytest.raises(ValidationError):
        await get_restaurant_orders(store, "rest-a", "bogus")
