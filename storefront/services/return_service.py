"""
Return requests for delivered orders.

A return never changes the order status. Approval restocks the returned
quantities (ordinary orders) or refunds the payment (special orders).
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException, UploadFile
from sqlmodel import Session, select

from storefront.config import settings
from storefront.constants.order_status import OrderStatus
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.models.return_request import (
    RETURN_STATUS_ALIASES,
    ReturnItem,
    ReturnRequest,
    ReturnSpecialRequest,
    ReturnStatus,
)
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.notifications import NotificationEvent, dispatch_order_event
from storefront.schemas.return_schemas import ReturnLineIn
from storefront.services.inventory_service import StockLine, restore_inventory
from storefront.services.order_event_service import log_order_event
from storefront.services.payment_service import SPECIAL_ORDER_KIND, PaymentGateway, issue_refund
from storefront.utils.uploads import check_image_count, save_images
from storefront.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


def parse_decision(value: str) -> ReturnStatus:
    decision = RETURN_STATUS_ALIASES.get(value)
    if decision is None:
        try:
            decision = ReturnStatus(value)
        except ValueError:
            decision = None

    if decision not in (ReturnStatus.APPROVED, ReturnStatus.REJECTED):
        raise HTTPException(400, "status must be approved (อนุมัติ) or rejected (ปฏิเสธ)")
    return decision


def _check_window(order, now: datetime):
    if order.status != OrderStatus.DELIVERED.value:
        raise HTTPException(400, "Only delivered orders can be returned")

    delivered_at = as_utc(order.delivered_at or order.updated_at)
    if as_utc(now) - delivered_at > timedelta(days=settings.RETURN_WINDOW_DAYS):
        raise HTTPException(
            400,
            f"Returns must be requested within {settings.RETURN_WINDOW_DAYS} days of delivery",
        )


def _check_pending(request):
    if request.status != ReturnStatus.PENDING.value:
        raise HTTPException(409, f"Return request has already been {request.status}")


# ---------------------------------------------------------------------------
# Ordinary orders
# ---------------------------------------------------------------------------

def create_return(
    session: Session,
    user: User,
    order_id: int,
    reason: str,
    lines: List[ReturnLineIn],
    images: List[UploadFile],
    *,
    now: Optional[datetime] = None,
) -> ReturnRequest:
    now = now or utcnow()

    order = session.get(Order, order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(404, "Order not found")

    _check_window(order, now)

    if not lines:
        raise HTTPException(400, "Select at least one item to return")

    purchased = {item.id: item for item in order.items}
    seen = set()
    for line in lines:
        item = purchased.get(line.order_item_id)
        if item is None:
            raise HTTPException(400, f"Item {line.order_item_id} is not part of this order")
        if line.order_item_id in seen:
            raise HTTPException(400, f"Item {line.order_item_id} is listed more than once")
        if not 1 <= line.quantity <= item.quantity:
            raise HTTPException(
                400,
                f"Return quantity for {item.product_name} must be between 1 and {item.quantity}",
            )
        seen.add(line.order_item_id)

    already = session.exec(
        select(ReturnItem).where(ReturnItem.order_item_id.in_(seen))
    ).first()
    if already:
        raise HTTPException(400, f"Item {already.order_item_id} has already been returned")

    images = check_image_count(images)
    paths = save_images(images, f"returns/{order.id}")

    request = ReturnRequest(
        order_id=order.id,
        reason=reason,
        images=paths,
        items=[ReturnItem(order_item_id=line.order_item_id, quantity=line.quantity) for line in lines],
    )
    session.add(request)
    session.flush()

    log_order_event(
        session,
        order.id,
        event_type="return_requested",
        label=ReturnStatus.PENDING.value,
        created_by=f"user:{user.id}",
        meta={"return_request_id": request.id},
    )
    session.commit()
    session.refresh(request)

    logger.info(f"Return request {request.id} created for order {order.id}")

    dispatch_order_event(
        NotificationEvent.RETURN_REQUESTED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        reason=reason,
        image_count=len(paths),
    )
    return request


def process_return(
    session: Session,
    request: ReturnRequest,
    status: str,
    admin_note: Optional[str] = None,
    *,
    actor: str = "admin",
) -> ReturnRequest:
    decision = parse_decision(status)
    _check_pending(request)

    order = session.get(Order, request.order_id)
    restored = 0

    if decision == ReturnStatus.APPROVED:
        lines = []
        for returned in request.items:
            item = session.get(OrderItem, returned.order_item_id)
            lines.append(StockLine(item.product_id, item.size, returned.quantity))
        restored = restore_inventory(session, lines)

    request.status = decision.value
    request.admin_note = admin_note
    request.processed_at = utcnow()
    request.updated_at = request.processed_at

    log_order_event(
        session,
        order.id,
        event_type=f"return_{decision.value}",
        label=decision.value,
        created_by=actor,
        meta={"return_request_id": request.id, "restocked": restored},
    )
    session.add(request)
    session.commit()
    session.refresh(request)

    logger.info(f"Return request {request.id} {decision.value}, restocked {restored}")

    dispatch_order_event(
        NotificationEvent.RETURN_PROCESSED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        approved=decision == ReturnStatus.APPROVED,
        refund_id=None,
        admin_note=admin_note,
    )
    return request


def delete_return(session: Session, request: ReturnRequest, user: User):
    order = session.get(Order, request.order_id)
    if not user.is_admin and (not order or order.user_id != user.id):
        raise HTTPException(404, "Return request not found")

    # Decided requests keep their ReturnItem rows; each order line is returned once
    _check_pending(request)

    request_id = request.id
    session.delete(request)
    session.commit()
    logger.info(f"Return request {request_id} deleted by user {user.id}")


# ---------------------------------------------------------------------------
# Special orders
# ---------------------------------------------------------------------------

def create_special_return(
    session: Session,
    user: User,
    special_order_id: int,
    reason: str,
    images: List[UploadFile],
    *,
    now: Optional[datetime] = None,
) -> ReturnSpecialRequest:
    now = now or utcnow()

    order = session.get(SpecialOrder, special_order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(404, "Special order not found")

    _check_window(order, now)

    if not order.is_paid:
        raise HTTPException(400, "Only paid special orders can be returned")

    existing = session.exec(
        select(ReturnSpecialRequest).where(
            ReturnSpecialRequest.special_order_id == order.id
        )
    ).first()
    if existing:
        raise HTTPException(400, "A return request already exists for this order")

    images = check_image_count(images)
    paths = save_images(images, f"special-returns/{order.id}")

    request = ReturnSpecialRequest(special_order_id=order.id, reason=reason, images=paths)
    session.add(request)
    session.flush()

    log_order_event(
        session,
        order.id,
        event_type="return_requested",
        label=ReturnStatus.PENDING.value,
        order_kind=SPECIAL_ORDER_KIND,
        created_by=f"user:{user.id}",
        meta={"return_request_id": request.id},
    )
    session.commit()
    session.refresh(request)

    logger.info(f"Special return request {request.id} created for special order {order.id}")

    dispatch_order_event(
        NotificationEvent.RETURN_REQUESTED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        reason=reason,
        image_count=len(paths),
    )
    return request


def process_special_return(
    session: Session,
    request: ReturnSpecialRequest,
    status: str,
    gateway: PaymentGateway,
    admin_note: Optional[str] = None,
    *,
    actor: str = "admin",
) -> ReturnSpecialRequest:
    decision = parse_decision(status)
    _check_pending(request)

    order = session.get(SpecialOrder, request.special_order_id)

    if decision == ReturnStatus.APPROVED:
        if not order.payment_intent_id:
            raise HTTPException(400, "Order has no payment reference to refund")
        request.refund_id = issue_refund(gateway, order.payment_intent_id)
        order.refund_id = request.refund_id
        order.updated_at = utcnow()
        session.add(order)

    request.status = decision.value
    request.admin_note = admin_note
    request.processed_at = utcnow()
    request.updated_at = request.processed_at

    log_order_event(
        session,
        order.id,
        event_type=f"return_{decision.value}",
        label=decision.value,
        order_kind=SPECIAL_ORDER_KIND,
        created_by=actor,
        meta={"return_request_id": request.id, "refund_id": request.refund_id},
    )
    session.add(request)
    session.commit()
    session.refresh(request)

    logger.info(f"Special return request {request.id} {decision.value}, refund {request.refund_id}")

    dispatch_order_event(
        NotificationEvent.RETURN_PROCESSED,
        to=order.email,
        customer_name=order.customer_name,
        tracking_id=order.tracking_id,
        approved=decision == ReturnStatus.APPROVED,
        refund_id=request.refund_id,
        admin_note=admin_note,
    )
    return request
