import logging
from datetime import timedelta

from fastapi import HTTPException
from sqlmodel import Session

from storefront.config import settings
from storefront.constants.order_status import (
    OrderStatus,
    TransitionError,
    check_cancellation,
)
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.schemas.special_order_schemas import SpecialOrderCreate
from storefront.services.order_event_service import log_order_event
from storefront.services.order_service import generate_tracking_id, notify_cancelled
from storefront.services.payment_service import (
    SPECIAL_ORDER_KIND,
    PaymentGateway,
    PaymentGatewayError,
    create_checkout_link,
    is_order_paid,
    record_refund,
)
from storefront.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

PRICEABLE_STATUSES = {OrderStatus.NEW.value, OrderStatus.AWAITING_PAYMENT.value}


def create_special_order(session: Session, user: User, payload: SpecialOrderCreate) -> SpecialOrder:
    if payload.quantity < settings.SPECIAL_ORDER_MIN_QUANTITY:
        raise HTTPException(
            400,
            f"Special orders need at least {settings.SPECIAL_ORDER_MIN_QUANTITY} pieces",
        )

    order = SpecialOrder(
        tracking_id=generate_tracking_id("SP"),
        user_id=user.id,
        status=OrderStatus.NEW.value,
        **payload.model_dump(),
    )
    session.add(order)
    session.flush()

    log_order_event(
        session,
        order.id,
        event_type="order_created",
        label=OrderStatus.NEW.value,
        order_kind=SPECIAL_ORDER_KIND,
        created_by=f"user:{user.id}",
    )
    session.commit()
    session.refresh(order)

    logger.info(f"Special order {order.id} ({order.tracking_id}) created, qty {order.quantity}")

    dispatch_order_event(
        NotificationEvent.SPECIAL_ORDER_PLACED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        product_type=order.product_type,
        model=order.model,
        quantity=order.quantity,
        size_label=order.size_label,
        chest=order.chest,
        length=order.length,
    )
    return order


def set_price(
    session: Session,
    order: SpecialOrder,
    price: float,
    gateway: PaymentGateway,
    *,
    actor: str = "admin",
) -> SpecialOrder:
    """
    Admin approval: store the price, open a payment link and move the order
    to AWAITING_PAYMENT. Re-pricing an unpaid order replaces the link.
    """
    if order.is_paid or order.status not in PRICEABLE_STATUSES:
        raise HTTPException(
            400,
            f'Price can only be set before payment; order is "{order.status}"',
        )

    order.price = price
    try:
        link = create_checkout_link(
            gateway, order, order_kind=SPECIAL_ORDER_KIND, amount=price
        )
    except PaymentGatewayError:
        session.rollback()
        raise HTTPException(502, "Payment gateway is unavailable, please try again")

    previous = order.status
    order.is_approved = True
    order.payment_link_id = link["id"]
    order.payment_url = link["url"]
    order.status = OrderStatus.AWAITING_PAYMENT.value
    order.updated_at = utcnow()

    log_order_event(
        session,
        order.id,
        event_type="price_set",
        label=OrderStatus.AWAITING_PAYMENT.value,
        order_kind=SPECIAL_ORDER_KIND,
        created_by=actor,
        meta={"from": previous, "price": price, "payment_link_id": link["id"]},
    )
    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"Special order {order.id} priced at {price}: {previous} -> {order.status}")

    dispatch_order_event(
        NotificationEvent.SPECIAL_ORDER_PRICED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        price=order.price,
        payment_url=order.payment_url,
    )
    return order


def cancel_special_order(
    session: Session,
    order: SpecialOrder,
    gateway: PaymentGateway,
    *,
    reason: str,
    actor: str = "system",
) -> SpecialOrder:
    """
    Unpaid orders cancel freely. Paid ones only within the cancel window
    after payment, with a best-effort full refund. Nothing is restocked.
    """
    try:
        check_cancellation(order.status)
    except TransitionError as e:
        logger.warning(f"Rejected cancel of special order {order.id} from {order.status}: {e.detail}")
        raise

    paid = is_order_paid(order, gateway)
    now = utcnow()

    if paid and order.paid_at:
        window = timedelta(days=settings.SPECIAL_CANCEL_WINDOW_DAYS)
        if now - as_utc(order.paid_at) > window:
            raise HTTPException(
                400,
                f"Paid special orders can only be cancelled within "
                f"{settings.SPECIAL_CANCEL_WINDOW_DAYS} days of payment",
            )

    previous = order.status
    order.status = OrderStatus.CANCELLED.value
    order.cancel_reason = reason
    order.updated_at = now

    if paid:
        order.is_paid = True

    log_order_event(
        session,
        order.id,
        event_type="order_cancelled",
        label=OrderStatus.CANCELLED.value,
        order_kind=SPECIAL_ORDER_KIND,
        created_by=actor,
        meta={"from": previous, "reason": reason, "paid": paid},
    )
    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"Special order {order.id}: {previous} -> {order.status}")

    if paid:
        record_refund(session, order, gateway, order_kind=SPECIAL_ORDER_KIND, actor=actor)

    notify_cancelled(order)
    return order
