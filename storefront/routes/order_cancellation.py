from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.order import Order
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.schemas.order_schemas import CancelOrderRequest, OrderRead
from storefront.schemas.special_order_schemas import SpecialCancelRequest, SpecialOrderRead
from storefront.services.order_service import cancel_order
from storefront.services.payment_service import PaymentGateway, get_payment_gateway
from storefront.services.special_order_service import cancel_special_order
from storefront.utils.token import get_current_user

router = APIRouter()


@router.patch("/cancel-orders")
def admin_cancel_order(
    payload: CancelOrderRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Admin cancel with restock and a full or partial refund."""
    order = session.get(Order, payload.id)
    if not order:
        raise HTTPException(404, "Order not found")

    order = cancel_order(
        session,
        order,
        gateway,
        reason=payload.cancel_reason,
        refund_amount=payload.refund_amount,
        actor=f"admin:{admin.id}",
    )
    return {"message": "Order cancelled", "order": OrderRead.model_validate(order)}


@router.post("/cancel-special-orders")
def cancel_special(
    payload: SpecialCancelRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = session.get(SpecialOrder, payload.id)
    if not order or (order.user_id != current_user.id and not current_user.is_admin):
        raise HTTPException(404, "Special order not found")

    order = cancel_special_order(
        session,
        order,
        gateway,
        reason=payload.cancel_reason,
        actor=f"{current_user.role}:{current_user.id}",
    )
    return {"message": "Special order cancelled", "order": SpecialOrderRead.model_validate(order)}
