"""Tests for the payment gate: webhook confirmation, paid lookup and refunds."""

from types import SimpleNamespace

import pytest

from storefront.constants.order_status import OrderStatus
from storefront.models.order import Order
from storefront.services.inventory_service import available_stock
from storefront.services.payment_service import (
    PaymentGateway,
    PaymentGatewayError,
    is_order_paid,
    issue_refund,
    to_minor_units,
)


class TestWebhook:
    def test_payment_confirms_new_order(self, client, session, product, place_order, pay):
        order = place_order(size="M", quantity=2)

        assert pay(order["id"], payment_id="pay_ABC") == {"received": True}

        stored = session.get(Order, order["id"])
        session.refresh(stored)
        assert stored.status == OrderStatus.PENDING.value
        assert stored.is_paid is True
        assert stored.payment_intent_id == "pay_ABC"
        assert stored.paid_at is not None

    def test_stock_is_taken_once(self, session, product, place_order, pay):
        order = place_order(size="M", quantity=2)
        pay(order["id"])
        assert available_stock(session, product.id, "M") == 8

    def test_redelivery_is_a_no_op(self, session, place_order, pay):
        order = place_order()
        pay(order["id"], payment_id="pay_first")
        pay(order["id"], payment_id="pay_second")

        stored = session.get(Order, order["id"])
        session.refresh(stored)
        assert stored.payment_intent_id == "pay_first"

    def test_bad_signature(self, session, place_order, post_webhook):
        order = place_order()
        event = {
            "event": "payment_link.paid",
            "payload": {
                "payment_link": {"entity": {"notes": {"order_id": str(order["id"])}}},
                "payment": {"entity": {"id": "pay_x"}},
            },
        }
        response = post_webhook(event, signature="forged")
        assert response.status_code == 400

    def test_other_events_are_acknowledged(self, post_webhook):
        response = post_webhook({"event": "payment.failed", "payload": {}})
        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_unknown_order_is_acknowledged(self, pay, admin):
        assert pay(12345) == {"received": True}

    def test_payment_after_cancel_is_refunded(self, client, session, gateway, customer_headers, place_order, pay):
        order = place_order()
        client.patch(
            f"/orders/{order['id']}",
            json={"status": OrderStatus.CANCELLED.value},
            headers=customer_headers,
        )

        pay(order["id"], payment_id="pay_late")

        stored = session.get(Order, order["id"])
        session.refresh(stored)
        assert stored.status == OrderStatus.CANCELLED.value
        assert stored.is_paid is True
        assert gateway.refunds == [("pay_late", None)]
        assert stored.refund_id == "rfnd_1"


class TestIsOrderPaid:
    def test_stored_flag_wins(self, gateway):
        order = Order(tracking_id="T1", user_id=1, total_amount=10, is_paid=True)
        assert is_order_paid(order, gateway) is True
        assert gateway.lookups == []

    def test_live_lookup(self, gateway):
        gateway.captured.add("pay_live")
        order = Order(tracking_id="T1", user_id=1, total_amount=10, payment_intent_id="pay_live")
        assert is_order_paid(order, gateway) is True

    def test_no_reference_means_unpaid(self, gateway):
        order = Order(tracking_id="T1", user_id=1, total_amount=10)
        assert is_order_paid(order, gateway) is False
        assert gateway.lookups == []

    def test_lookup_failure_means_unpaid(self, gateway):
        gateway.fail_lookups = True
        order = Order(tracking_id="T1", user_id=1, total_amount=10, payment_intent_id="pay_x")
        assert is_order_paid(order, gateway) is False


class TestIssueRefund:
    def test_returns_reference(self, gateway):
        assert issue_refund(gateway, "pay_1", 250.0) == "rfnd_1"
        assert gateway.refunds == [("pay_1", 250.0)]

    def test_failure_is_swallowed(self, gateway):
        gateway.fail_refunds = True
        assert issue_refund(gateway, "pay_1") is None

    def test_missing_reference(self, gateway):
        assert issue_refund(gateway, None) is None
        assert gateway.refunds == []


class TestRazorpayWrapper:
    """PaymentGateway against a stand-in Razorpay client."""

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def wrapper(self, calls):
        def create_link(data):
            calls.append(("link", data))
            return {"id": "plink_9", "short_url": "https://rzp.io/i/plink_9"}

        def refund(payment_id, data):
            calls.append(("refund", payment_id, data))
            return {"id": "rfnd_9"}

        def fetch(payment_id):
            if payment_id == "boom":
                raise RuntimeError("network")
            return {"id": payment_id, "status": "captured" if payment_id == "pay_ok" else "failed"}

        gateway = PaymentGateway.__new__(PaymentGateway)
        gateway.webhook_secret = "whsec"
        gateway.client = SimpleNamespace(
            payment_link=SimpleNamespace(create=create_link),
            payment=SimpleNamespace(refund=refund, fetch=fetch),
        )
        return gateway

    def test_minor_units(self):
        assert to_minor_units(1000) == 100000
        assert to_minor_units(19.99) == 1999

    def test_payment_link(self, wrapper, calls):
        link = wrapper.create_payment_link(
            amount=1000,
            reference="TD1-abc",
            description="order",
            customer={"name": "A"},
            notes={"order_kind": "order", "order_id": "1"},
        )
        assert link == {"id": "plink_9", "url": "https://rzp.io/i/plink_9"}
        assert calls[0][1]["amount"] == 100000
        assert calls[0][1]["reference_id"] == "TD1-abc"

    def test_full_and_partial_refund(self, wrapper, calls):
        assert wrapper.refund("pay_ok") == "rfnd_9"
        wrapper.refund("pay_ok", 250.5)
        assert calls == [("refund", "pay_ok", {}), ("refund", "pay_ok", {"amount": 25050})]

    def test_captured_lookup(self, wrapper):
        assert wrapper.is_payment_captured("pay_ok") is True
        assert wrapper.is_payment_captured("pay_no") is False
        with pytest.raises(PaymentGatewayError):
            wrapper.is_payment_captured("boom")
