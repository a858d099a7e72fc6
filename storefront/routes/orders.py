import io
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlmodel import Session, select

from storefront.constants.order_status import OrderStatus, parse_status
from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.order import Order
from storefront.models.order_event import OrderEvent
from storefront.models.user import User
from storefront.schemas.order_schemas import OrderCreate, OrderRead, OrderStatusUpdate
from storefront.services.order_service import advance_status, cancel_order, create_order
from storefront.services.payment_service import (
    PaymentGateway,
    get_payment_gateway,
    is_order_paid,
)
from storefront.services.slip_service import build_payment_slip
from storefront.utils.pagination import paginate
from storefront.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def get_visible_order(session: Session, order_id: int, user: User) -> Order:
    order = session.get(Order, order_id)
    if not order or (order.user_id != user.id and not user.is_admin):
        raise HTTPException(404, "Order not found")
    return order


@router.post("", status_code=status.HTTP_201_CREATED)
def place_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = create_order(session, current_user, payload)
    return {"message": "Order created", "order": OrderRead.model_validate(order)}


@router.get("")
def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    query = select(Order).order_by(Order.created_at.desc())
    if status_filter:
        query = query.where(Order.status == parse_status(status_filter).value)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=OrderRead.model_validate,
    )


@router.get("/history")
def order_history(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    orders = session.exec(
        select(Order)
        .where(Order.user_id == current_user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    ).all()

    return {"orders": [OrderRead.model_validate(o) for o in orders]}


@router.get("/{order_id}")
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = get_visible_order(session, order_id, current_user)
    return {"order": OrderRead.model_validate(order)}


@router.get("/{order_id}/timeline")
def order_timeline(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = get_visible_order(session, order_id, current_user)

    events = session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_kind == "order")
        .where(OrderEvent.order_id == order.id)
        .order_by(OrderEvent.created_at, OrderEvent.id)
    ).all()

    return {
        "order_id": order.id,
        "status": order.status,
        "events": [
            {
                "type": e.event_type,
                "label": e.label,
                "by": e.created_by,
                "meta": e.meta,
                "at": e.created_at,
            }
            for e in events
        ],
    }


@router.get("/{order_id}/slip")
def download_slip(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = get_visible_order(session, order_id, current_user)
    if not order.is_paid:
        raise HTTPException(400, "Payment slip is available once the order is paid")

    pdf = build_payment_slip(order)
    return StreamingResponse(
        io.BytesIO(pdf),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="slip-{order.tracking_id}.pdf"'},
    )


@router.patch("/{order_id}")
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = get_visible_order(session, order_id, current_user)
    requested = parse_status(payload.status)
    actor = f"{current_user.role}:{current_user.id}"

    # Owners may cancel their own order, everything else is admin only
    if requested == OrderStatus.CANCELLED:
        order = cancel_order(
            session,
            order,
            gateway,
            reason=payload.cancel_reason,
            actor=actor,
        )
        return {"message": "Order cancelled", "order": OrderRead.model_validate(order)}

    if not current_user.is_admin:
        raise HTTPException(403, "Admin access required")

    order = advance_status(
        session,
        order,
        requested.value,
        paid=is_order_paid(order, gateway),
        actor=actor,
    )
    return {"message": "Order status updated", "order": OrderRead.model_validate(order)}
