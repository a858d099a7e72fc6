"""
Order lifecycle: checkout, admin status progression and cancellation.

Every status write goes through `check_transition` / `check_cancellation` and
is committed together with its stock movement and timeline event. Emails and
refunds run afterwards as best-effort side effects.
"""
import logging
from typing import List, Optional, Union
from uuid import uuid4

from fastapi import HTTPException
from sqlmodel import Session, select

from storefront.constants.order_status import (
    OrderStatus,
    TransitionError,
    check_cancellation,
    check_transition,
)
from storefront.models.cart import CartItem
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.models.product import Product, SIZES
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.schemas.order_schemas import OrderCreate
from storefront.services.inventory_service import (
    StockLine,
    available_stock,
    reduce_inventory,
    restore_inventory,
)
from storefront.services.order_event_service import log_order_event
from storefront.services.payment_service import (
    ORDER_KIND,
    PaymentGateway,
    is_order_paid,
    record_refund,
)
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

AnyOrder = Union[Order, SpecialOrder]


def generate_tracking_id(prefix: str = "TD") -> str:
    return f"{prefix}{utcnow():%y%m%d}{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

def _requested_lines(session: Session, user: User, payload: OrderCreate):
    if payload.items:
        return [StockLine(i.product_id, i.size, i.quantity) for i in payload.items], False

    cart = session.exec(select(CartItem).where(CartItem.user_id == user.id)).all()
    if not cart:
        raise HTTPException(400, "Cart is empty")
    return [StockLine(c.product_id, c.size, c.quantity) for c in cart], True


def _build_items(session: Session, lines: List[StockLine]) -> List[OrderItem]:
    items = []
    for line in lines:
        if line.quantity < 1:
            raise HTTPException(400, "Quantity must be at least 1")
        if line.size not in SIZES:
            raise HTTPException(400, f"Unknown size: {line.size}")

        product = session.get(Product, line.product_id)
        if not product:
            raise HTTPException(404, f"Product {line.product_id} not found")

        unit_price = product.price_for(line.size)
        if unit_price is None:
            raise HTTPException(400, f"{product.name} is not sold in size {line.size}")

        if available_stock(session, product.id, line.size) < line.quantity:
            raise HTTPException(
                400,
                f"Insufficient stock for {product.name} ({line.size})",
            )

        items.append(
            OrderItem(
                product_id=product.id,
                product_name=product.name,
                size=line.size,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=unit_price * line.quantity,
            )
        )
    return items


def create_order(session: Session, user: User, payload: OrderCreate) -> Order:
    name = payload.name or user.name
    phone = payload.phone or user.phone
    address = payload.address or user.address
    email = payload.email or user.email

    if not (name and phone and address):
        raise HTTPException(400, "Please complete your name, phone and address before ordering")

    lines, from_cart = _requested_lines(session, user, payload)
    items = _build_items(session, lines)

    order = Order(
        tracking_id=generate_tracking_id(),
        user_id=user.id,
        status=OrderStatus.NEW.value,
        total_amount=sum(i.total_price for i in items),
        name=name,
        phone=phone,
        address=address,
        email=email,
    )

    try:
        session.add(order)
        session.flush()

        for item in items:
            item.order_id = order.id
            session.add(item)

        reduce_inventory(session, items)

        if from_cart:
            for cart_item in session.exec(
                select(CartItem).where(CartItem.user_id == user.id)
            ).all():
                session.delete(cart_item)

        log_order_event(
            session,
            order.id,
            event_type="order_created",
            label=OrderStatus.NEW.value,
            created_by=f"user:{user.id}",
            meta={"total_amount": order.total_amount},
        )
        session.commit()
    except HTTPException:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} ({order.tracking_id}) created, total {order.total_amount}")

    dispatch_order_event(
        NotificationEvent.ORDER_PLACED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        items=order.items,
        total_amount=order.total_amount,
    )
    return order


# ---------------------------------------------------------------------------
# Status progression (ordinary and special orders)
# ---------------------------------------------------------------------------

def advance_status(
    session: Session,
    order: AnyOrder,
    requested: str,
    *,
    paid: bool,
    order_kind: str = ORDER_KIND,
    actor: str = "admin",
) -> AnyOrder:
    try:
        new_status = check_transition(order.status, requested, paid=paid)
    except TransitionError as e:
        logger.warning(
            f"Rejected {order_kind} {order.id} transition {order.status} -> {requested}: {e.detail}"
        )
        raise

    previous = order.status
    now = utcnow()

    order.status = new_status.value
    order.updated_at = now
    if not order.is_paid:
        # confirmed by live lookup
        order.is_paid = True
    if new_status == OrderStatus.DELIVERED:
        order.delivered_at = now

    log_order_event(
        session,
        order.id,
        event_type="status_changed",
        label=new_status.value,
        order_kind=order_kind,
        created_by=actor,
        meta={"from": previous, "to": new_status.value},
    )
    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"{order_kind} {order.id}: {previous} -> {order.status}")

    dispatch_order_event(
        NotificationEvent.STATUS_CHANGED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        status=order.status,
    )
    return order


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

def _check_refund_amount(refund_amount: Optional[float], total: float):
    if refund_amount is None:
        return
    if refund_amount <= 0 or refund_amount > total:
        raise HTTPException(400, f"refund_amount must be between 0 and {total}")


def notify_cancelled(order: AnyOrder):
    dispatch_order_event(
        NotificationEvent.ORDER_CANCELLED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        reason=order.cancel_reason,
        refund_id=order.refund_id,
    )


def cancel_order(
    session: Session,
    order: Order,
    gateway: PaymentGateway,
    *,
    reason: Optional[str] = None,
    refund_amount: Optional[float] = None,
    actor: str = "system",
) -> Order:
    """
    Cancel an ordinary order: restock every line, refund when paid.

    `refund_amount` is a partial refund; omitted means the full captured amount.
    """
    try:
        check_cancellation(order.status)
    except TransitionError as e:
        logger.warning(f"Rejected cancel of order {order.id} from {order.status}: {e.detail}")
        raise

    _check_refund_amount(refund_amount, order.total_amount)

    paid = is_order_paid(order, gateway)
    previous = order.status

    order.status = OrderStatus.CANCELLED.value
    order.cancel_reason = reason
    order.updated_at = utcnow()

    restored = restore_inventory(session, order.items)

    if paid:
        order.is_paid = True

    log_order_event(
        session,
        order.id,
        event_type="order_cancelled",
        label=OrderStatus.CANCELLED.value,
        created_by=actor,
        meta={
            "from": previous,
            "reason": reason,
            "restocked": restored,
            "paid": paid,
            "refund_amount": refund_amount,
        },
    )
    session.add(order)
    session.commit()
    session.refresh(order)

    logger.info(f"Order {order.id}: {previous} -> {order.status}, restocked {restored}")

    if paid:
        record_refund(session, order, gateway, amount=refund_amount, actor=actor)

    notify_cancelled(order)
    return order
