import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from storefront.database import get_session
from storefront.models.order import Order
from storefront.models.user import User
from storefront.schemas.order_schemas import PaymentRequest
from storefront.services.payment_service import (
    PaymentGateway,
    confirm_payment,
    get_payment_gateway,
    start_checkout,
)
from storefront.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "X-Razorpay-Signature"


@router.post("/payment")
def create_payment(
    payload: PaymentRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    order = session.get(Order, payload.order_id)
    if not order or order.user_id != current_user.id:
        raise HTTPException(404, "Order not found")

    order = start_checkout(session, order, gateway)
    return {
        "order_id": order.id,
        "tracking_id": order.tracking_id,
        "amount": order.total_amount,
        "payment_url": order.payment_url,
    }


async def _handle_webhook(request: Request, session: Session, gateway: PaymentGateway):
    body = (await request.body()).decode("utf-8")

    if not gateway.verify_webhook(body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Webhook rejected: bad signature")
        raise HTTPException(400, "Invalid webhook signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(400, "Invalid webhook payload")

    confirm_payment(session, event, gateway)
    return {"received": True}


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return await _handle_webhook(request, session, gateway)


@router.post("/special-orders/webhook")
@router.post("/special-orders/stripe/webhook")
async def special_order_webhook(
    request: Request,
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    # Same handler; the link notes say which kind of order was paid
    return await _handle_webhook(request, session, gateway)
