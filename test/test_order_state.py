import pytest

from marketplace.errors import ValidationError
from marketplace.models import OrderStatus
from marketplace.order_state import (
    RESTAURANT_STATUSES,
    STATUS_RANK,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    can_restaurant_set,
    get_next_status,
    is_valid_transition,
    parse_status,
    progress,
)

S = OrderStatus


@pytest.mark.parametrize(
    "current, expected",
    [
        (S.PENDING, S.CONFIRMED),
        (S.CONFIRMED, S.PREPARING),
        (S.PREPARING, S.READY),
        (S.READY, None),
        (S.PICKED_UP, None),
        (S.DELIVERED, None),
        (S.CANCELLED, None),
    ],
)
def test_next_status_only_walks_the_kitchen_chain(current, expected):
    assert get_next_status(current) == expected


def test_every_status_has_a_row():
    assert set(VALID_TRANSITIONS) == set(OrderStatus)


def test_terminal_states_have_no_way_out():
    assert TERMINAL_STATUSES == {S.DELIVERED, S.CANCELLED}
    for terminal in TERMINAL_STATUSES:
        for target in OrderStatus:
            assert not is_valid_transition(terminal, target)


def test_transitions_never_go_backwards():
    for current, targets in VALID_TRANSITIONS.items():
        for target in targets:
            if target == S.CANCELLED:
                continue
            assert STATUS_RANK[target] > STATUS_RANK[current]


def test_cancel_only_before_pickup():
    cancellable = {s for s, targets in VALID_TRANSITIONS.items() if S.CANCELLED in targets}
    assert cancellable == {S.PENDING, S.CONFIRMED, S.PREPARING, S.READY}


def test_restaurant_cannot_request_rider_states():
    assert S.PICKED_UP not in RESTAURANT_STATUSES
    assert S.DELIVERED not in RESTAURANT_STATUSES
    assert not can_restaurant_set(S.READY, S.PICKED_UP)
    assert not can_restaurant_set(S.PICKED_UP, S.DELIVERED)


def test_loose_mode_allows_forward_jumps():
    assert can_restaurant_set(S.PENDING, S.READY)
    assert can_restaurant_set(S.CONFIRMED, S.READY)
    assert not can_restaurant_set(S.READY, S.PREPARING)
    assert not can_restaurant_set(S.PENDING, S.PENDING)


def test_strict_mode_allows_one_step_or_cancel():
    assert can_restaurant_set(S.PENDING, S.CONFIRMED, strict=True)
    assert not can_restaurant_set(S.PENDING, S.READY, strict=True)
    assert can_restaurant_set(S.PREPARING, S.CANCELLED, strict=True)
    assert not can_restaurant_set(S.PICKED_UP, S.CANCELLED, strict=True)


def test_parse_status_rejects_unknown_values():
    assert parse_status("picked-up") == S.PICKED_UP
    with pytest.raises(ValidationError):
        parse_status("shipped")


def test_progress():
    assert progress(S.PREPARING) == [S.PENDING, S.CONFIRMED, S.PREPARING]
    assert progress(S.DELIVERED)[-1] == S.DELIVERED
    assert progress(S.CANCELLED) == [S.CANCELLED]
