"""
Order lifecycle state machine. Valid transitions enforce business rules.

Restaurants drive pending -> confirmed -> preparing -> ready and may cancel
anything they still hold. Riders own ready -> picked-up -> delivered.
"""
from marketplace.errors import ValidationError
from marketplace.models import OrderStatus

# Current state -> states it may move to (forward only)
VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),  # terminal
    OrderStatus.CANCELLED: frozenset(),  # terminal
}

# Kitchen chain served by get_next_status
RESTAURANT_CHAIN: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)

# Values a restaurant is allowed to request
RESTAURANT_STATUSES: frozenset[OrderStatus] = frozenset(RESTAURANT_CHAIN) | {OrderStatus.CANCELLED}

# Position along the delivery chain; cancelled sits outside it
STATUS_RANK: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.PICKED_UP: 4,
    OrderStatus.DELIVERED: 5,
}

TERMINAL_STATUSES = frozenset(s for s, nxt in VALID_TRANSITIONS.items() if not nxt)

# Still with the kitchen, counted as "pending" on the dashboard
IN_KITCHEN_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING})


def parse_status(value: str | OrderStatus) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value!r}")


def get_next_status(current: OrderStatus) -> OrderStatus | None:
    """Strict successor along the kitchen chain; None at ready and beyond."""
    if current not in RESTAURANT_CHAIN:
        return None
    idx = RESTAURANT_CHAIN.index(current)
    if idx + 1 >= len(RESTAURANT_CHAIN):
        return None
    return RESTAURANT_CHAIN[idx + 1]


def is_valid_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """True if target is allowed after current."""
    return target in VALID_TRANSITIONS.get(current, frozenset())


def can_restaurant_set(current: OrderStatus, target: OrderStatus, strict: bool = False) -> bool:
    """
    Restaurant-driven move. Loose mode allows any forward jump inside the kitchen
    chain (e.g. pending -> ready for pre-made items); strict mode only the next step.
    Cancelling is allowed from every state the restaurant still holds.
    """
    if target not in RESTAURANT_STATUSES:
        return False
    if not is_valid_transition(current, target):
        return False
    if strict and target != OrderStatus.CANCELLED:
        return target == get_next_status(current)
    return True


def progress(status: OrderStatus) -> list[OrderStatus]:
    """Chain states already reached, in order. Cancelled orders report [cancelled]."""
    if status == OrderStatus.CANCELLED:
        return [OrderStatus.CANCELLED]
    rank = STATUS_RANK[status]
    return [s for s, r in STATUS_RANK.items() if r <= rank]
