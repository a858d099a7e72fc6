import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from fastapi import HTTPException
from sqlmodel import Session

from storefront.config import settings
from storefront.constants.order_status import OrderStatus
from storefront.models.order import Order
from storefront.models.special_order import SpecialOrder
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.services.order_event_service import log_order_event
from storefront.services.slip_service import build_payment_slip
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

ORDER_KIND = "order"
SPECIAL_ORDER_KIND = "special_order"

PAYMENT_LINK_PAID = "payment_link.paid"


class PaymentGatewayError(Exception):
    pass


def to_minor_units(amount: float) -> int:
    return int(round(float(amount) * 100))


class PaymentGateway:
    """Thin wrapper over the Razorpay client: hosted payment links, refunds, webhooks."""

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str):
        import razorpay

        self.client = razorpay.Client(auth=(key_id, key_secret))
        self.webhook_secret = webhook_secret

    def create_payment_link(
        self,
        *,
        amount: float,
        reference: str,
        description: str,
        customer: Dict[str, Any],
        notes: Dict[str, Any],
    ) -> Dict[str, str]:
        try:
            link = self.client.payment_link.create({
                "amount": to_minor_units(amount),
                "currency": settings.CURRENCY,
                "reference_id": reference,
                "description": description,
                "customer": customer,
                "notes": notes,
                "callback_url": f"{settings.APP_URL}/payment/success",
                "callback_method": "get",
            })
        except Exception as e:
            logger.exception(f"Payment link creation failed for {reference}")
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"Payment link {link['id']} created for {reference}")
        return {"id": link["id"], "url": link["short_url"]}

    def refund(self, payment_id: str, amount: Optional[float] = None) -> str:
        """Refund a captured payment; the full amount when `amount` is None."""
        data = {} if amount is None else {"amount": to_minor_units(amount)}
        try:
            refund = self.client.payment.refund(payment_id, data)
        except Exception as e:
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"Refund {refund['id']} issued for payment {payment_id}")
        return refund["id"]

    def is_payment_captured(self, payment_id: str) -> bool:
        try:
            payment = self.client.payment.fetch(payment_id)
        except Exception as e:
            raise PaymentGatewayError(str(e)) from e
        return payment.get("status") == "captured"

    def verify_webhook(self, body: str, signature: Optional[str]) -> bool:
        from razorpay.errors import SignatureVerificationError

        if not signature:
            return False
        try:
            self.client.utility.verify_webhook_signature(body, signature, self.webhook_secret)
        except SignatureVerificationError:
            return False
        return True


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        settings.RAZORPAY_WEBHOOK_SECRET,
    )


def is_order_paid(order: Union[Order, SpecialOrder], gateway: PaymentGateway) -> bool:
    """Stored flag first, then a live lookup of the stored payment reference."""
    if order.is_paid:
        return True
    if not order.payment_intent_id:
        return False

    try:
        return gateway.is_payment_captured(order.payment_intent_id)
    except PaymentGatewayError:
        logger.exception(f"Payment lookup failed for {order.tracking_id}, treating as unpaid")
        return False


def issue_refund(
    gateway: PaymentGateway,
    payment_id: Optional[str],
    amount: Optional[float] = None,
) -> Optional[str]:
    """
    Best-effort refund. Never raises; returns the refund reference or None.
    The caller's status change stands either way.
    """
    if not payment_id:
        logger.warning("Refund skipped: no payment reference stored")
        return None

    try:
        return gateway.refund(payment_id, amount)
    except PaymentGatewayError:
        logger.exception(f"Refund failed for payment {payment_id} (amount={amount})")
        return None


def record_refund(
    session: Session,
    order: Union[Order, SpecialOrder],
    gateway: PaymentGateway,
    *,
    amount: Optional[float] = None,
    order_kind: str = ORDER_KIND,
    actor: str = "system",
) -> Optional[str]:
    """
    Refund an order whose cancellation is already committed and store the
    refund reference.
    """
    refund_id = issue_refund(gateway, order.payment_intent_id, amount)
    if refund_id is None:
        return None

    logger.info(f"Refund {refund_id} issued for {order_kind} {order.tracking_id} (amount={amount})")

    order.refund_id = refund_id
    order.updated_at = utcnow()

    log_order_event(
        session,
        order.id,
        event_type="refund_issued",
        label=refund_id,
        order_kind=order_kind,
        created_by=actor,
        meta={"payment_id": order.payment_intent_id, "amount": amount},
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    return refund_id


def create_checkout_link(
    gateway: PaymentGateway,
    order: Union[Order, SpecialOrder],
    *,
    order_kind: str,
    amount: float,
) -> Dict[str, str]:
    customer = {"name": order.customer_name or ""}
    if order.email:
        customer["email"] = order.email
    if order.phone:
        customer["contact"] = order.phone

    return gateway.create_payment_link(
        amount=amount,
        # Razorpay rejects a reused reference_id, re-pricing needs a fresh one
        reference=f"{order.tracking_id}-{uuid4().hex[:6]}",
        description=f"{settings.STORE_NAME} order {order.tracking_id}",
        customer=customer,
        notes={"order_kind": order_kind, "order_id": str(order.id)},
    )


def start_checkout(session: Session, order: Order, gateway: PaymentGateway) -> Order:
    """Attach a hosted payment link to a NEW, unpaid order (reused when one exists)."""
    if order.is_paid:
        raise HTTPException(400, "Order has already been paid")
    if order.status != OrderStatus.NEW.value:
        raise HTTPException(400, f'Order in status "{order.status}" cannot be paid')

    if order.payment_url:
        return order

    try:
        link = create_checkout_link(
            gateway, order, order_kind=ORDER_KIND, amount=order.total_amount
        )
    except PaymentGatewayError:
        raise HTTPException(502, "Payment gateway is unavailable, please try again")

    order.payment_link_id = link["id"]
    order.payment_url = link["url"]
    order.updated_at = utcnow()

    log_order_event(
        session,
        order.id,
        event_type="payment_link_created",
        label="checkout",
        meta={"payment_link_id": link["id"]},
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


# ---------------------------------------------------------------------------
# Webhook confirmation
# ---------------------------------------------------------------------------

def confirm_payment(session: Session, event: Dict[str, Any], gateway: PaymentGateway) -> Optional[str]:
    """
    Apply a verified `payment_link.paid` webhook event.

    The payment link carries `order_kind` / `order_id` in its notes. Returns
    the kind that was handled, or None when the event is ignored.
    """
    if event.get("event") != PAYMENT_LINK_PAID:
        logger.info(f"Ignoring webhook event {event.get('event')}")
        return None

    payload = event.get("payload") or {}
    link = (payload.get("payment_link") or {}).get("entity") or {}
    payment = (payload.get("payment") or {}).get("entity") or {}
    notes = link.get("notes") or {}

    order_id = notes.get("order_id")
    if not order_id:
        logger.error(f"Webhook for link {link.get('id')} has no order_id in notes")
        return None

    kind = notes.get("order_kind", ORDER_KIND)
    model = SpecialOrder if kind == SPECIAL_ORDER_KIND else Order

    order = session.get(model, int(order_id))
    if not order:
        logger.error(f"Webhook references missing {kind} {order_id}")
        return None

    if order.is_paid:
        logger.info(f"{kind} {order.tracking_id} already paid, webhook redelivery ignored")
        return kind

    now = utcnow()
    previous = order.status

    order.is_paid = True
    order.payment_intent_id = payment.get("id")
    order.paid_at = now
    order.updated_at = now

    if order.status in (OrderStatus.NEW.value, OrderStatus.AWAITING_PAYMENT.value):
        order.status = OrderStatus.PENDING.value

    log_order_event(
        session,
        order.id,
        event_type="payment_confirmed",
        label=f"{previous} -> {order.status}",
        order_kind=kind,
        meta={"payment_id": order.payment_intent_id, "payment_link_id": link.get("id")},
    )

    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"Payment confirmed for {kind} {order.tracking_id}: {previous} -> {order.status}")

    if order.status == OrderStatus.CANCELLED.value:
        # Paid after it was cancelled: give the money back
        logger.warning(f"Payment arrived for cancelled {kind} {order.tracking_id}, refunding")
        record_refund(session, order, gateway, order_kind=kind)

    if kind == SPECIAL_ORDER_KIND:
        dispatch_order_event(
            NotificationEvent.PAYMENT_SUCCESS,
            to=order.email,
            customer_name=order.customer_name,
            tracking_id=order.tracking_id,
            total_amount=order.price,
            status=order.status,
            has_slip=False,
        )
        return kind

    attachments = None
    try:
        slip = build_payment_slip(order)
        attachments = [(f"slip-{order.tracking_id}.pdf", slip, "application/pdf")]
    except Exception:
        logger.exception(f"Slip generation failed for {order.tracking_id}")

    dispatch_order_event(
        NotificationEvent.PAYMENT_SUCCESS,
        to=order.email,
        attachments=attachments,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        total_amount=order.total_amount,
        status=order.status,
        has_slip=attachments is not None,
    )
    return kind
