"""Tests for the shared order status table."""

import pytest

from storefront.constants.order_status import (
    FULFILMENT_FLOW,
    OrderStatus,
    TransitionError,
    check_cancellation,
    check_transition,
    next_status,
)

NEW = OrderStatus.NEW.value
AWAITING = OrderStatus.AWAITING_PAYMENT.value
PENDING = OrderStatus.PENDING.value
PREPARING = OrderStatus.PREPARING.value
SHIPPING = OrderStatus.SHIPPING.value
DELIVERED = OrderStatus.DELIVERED.value
CANCELLED = OrderStatus.CANCELLED.value


class TestForwardProgression:
    @pytest.mark.parametrize(
        "current,requested",
        [(PENDING, PREPARING), (PREPARING, SHIPPING), (SHIPPING, DELIVERED)],
    )
    def test_next_step_is_allowed(self, current, requested):
        assert check_transition(current, requested, paid=True) == OrderStatus(requested)

    @pytest.mark.parametrize(
        "current,requested",
        [(PENDING, SHIPPING), (PENDING, DELIVERED), (PREPARING, DELIVERED), (SHIPPING, PREPARING)],
    )
    def test_skipping_or_going_back_is_rejected(self, current, requested):
        with pytest.raises(TransitionError) as exc:
            check_transition(current, requested, paid=True)
        assert exc.value.status_code == 400

    def test_rejection_names_the_next_status(self):
        with pytest.raises(TransitionError) as exc:
            check_transition(PENDING, SHIPPING, paid=True)
        assert PREPARING in exc.value.detail

    def test_repeating_current_status_is_rejected(self):
        with pytest.raises(TransitionError) as exc:
            check_transition(PREPARING, PREPARING, paid=True)
        assert exc.value.status_code == 400

    @pytest.mark.parametrize("current", [DELIVERED, CANCELLED])
    def test_terminal_states_are_immutable(self, current):
        with pytest.raises(TransitionError) as exc:
            check_transition(current, PREPARING, paid=True)
        assert exc.value.status_code == 400

    def test_unknown_status_is_rejected(self):
        with pytest.raises(TransitionError) as exc:
            check_transition(PENDING, "shipped", paid=True)
        assert exc.value.status_code == 400

    @pytest.mark.parametrize("requested", [AWAITING, CANCELLED, NEW])
    def test_restricted_targets_cannot_be_set_directly(self, requested):
        with pytest.raises(TransitionError) as exc:
            check_transition(PENDING, requested, paid=True)
        assert exc.value.status_code == 400


class TestPaymentGate:
    @pytest.mark.parametrize("current", [NEW, AWAITING, PENDING, PREPARING])
    def test_unpaid_order_cannot_progress(self, current):
        with pytest.raises(TransitionError) as exc:
            check_transition(current, PREPARING if current != PREPARING else SHIPPING, paid=False)
        assert exc.value.status_code == 403

    def test_awaiting_payment_is_left_only_by_the_webhook(self):
        with pytest.raises(TransitionError) as exc:
            check_transition(AWAITING, PENDING, paid=True)
        assert exc.value.status_code == 400


class TestCancellation:
    @pytest.mark.parametrize("current", [NEW, AWAITING, PENDING, PREPARING])
    def test_cancel_allowed_before_shipping(self, current):
        assert check_cancellation(current) == OrderStatus.CANCELLED

    @pytest.mark.parametrize("current", [SHIPPING, DELIVERED])
    def test_cancel_refused_once_shipped(self, current):
        with pytest.raises(TransitionError) as exc:
            check_cancellation(current)
        assert exc.value.status_code == 400

    def test_cancel_twice_is_a_conflict(self):
        with pytest.raises(TransitionError) as exc:
            check_cancellation(CANCELLED)
        assert exc.value.status_code == 409


def test_flow_order():
    assert [next_status(s) for s in FULFILMENT_FLOW] == [
        OrderStatus.PREPARING,
        OrderStatus.SHIPPING,
        OrderStatus.DELIVERED,
        None,
    ]
    assert next_status(OrderStatus.NEW) is None
