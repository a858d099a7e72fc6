from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.schemas.special_order_schemas import (
    SpecialOrderCreate,
    SpecialOrderPrice,
    SpecialOrderRead,
    SpecialOrderStatusUpdate,
)
from storefront.services.order_service import advance_status
from storefront.services.payment_service import (
    SPECIAL_ORDER_KIND,
    PaymentGateway,
    get_payment_gateway,
    is_order_paid,
)
from storefront.services.special_order_service import create_special_order, set_price
from storefront.utils.token import get_current_user

router = APIRouter()


def get_special_order(session: Session, order_id: int) -> SpecialOrder:
    order = session.get(SpecialOrder, order_id)
    if not order:
        raise HTTPException(404, "Special order not found")
    return order


@router.post("", status_code=status.HTTP_201_CREATED)
def place_special_order(
    payload: SpecialOrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = create_special_order(session, current_user, payload)
    return {"message": "Special order submitted", "order": SpecialOrderRead.model_validate(order)}


@router.get("")
def list_special_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(SpecialOrder).order_by(SpecialOrder.created_at.desc(), SpecialOrder.id.desc())
    if not current_user.is_admin:
        query = query.where(SpecialOrder.user_id == current_user.id)

    orders = session.exec(query).all()
    return {"orders": [SpecialOrderRead.model_validate(o) for o in orders]}


@router.put("")
def price_special_order(
    payload: SpecialOrderPrice,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = set_price(
        session,
        get_special_order(session, payload.id),
        payload.price,
        gateway,
        actor=f"admin:{admin.id}",
    )
    return {"message": "Price set, awaiting payment", "order": SpecialOrderRead.model_validate(order)}


@router.get("/{order_id}")
def get_special(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = get_special_order(session, order_id)
    if order.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(404, "Special order not found")
    return {"order": SpecialOrderRead.model_validate(order)}


@router.patch("/{order_id}")
def update_special_status(
    order_id: int,
    payload: SpecialOrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = get_special_order(session, order_id)

    order = advance_status(
        session,
        order,
        payload.status,
        paid=is_order_paid(order, gateway),
        order_kind=SPECIAL_ORDER_KIND,
        actor=f"admin:{admin.id}",
    )
    return {"message": "Special order status updated", "order": SpecialOrderRead.model_validate(order)}
