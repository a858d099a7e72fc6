from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.return_request import ReturnSpecialRequest
from storefront.models.special_order import SpecialOrder
from storefront.models.user import User
from storefront.schemas.return_schemas import ReturnProcess, ReturnSpecialRequestRead
from storefront.services.payment_service import PaymentGateway, get_payment_gateway
from storefront.services.return_service import create_special_return, process_special_return
from storefront.utils.token import get_current_user

router = APIRouter()


def get_special_request(session: Session, request_id: int) -> ReturnSpecialRequest:
    request = session.get(ReturnSpecialRequest, request_id)
    if not request:
        raise HTTPException(404, "Return request not found")
    return request


@router.post("/return-special-orders", status_code=status.HTTP_201_CREATED)
def request_special_return(
    special_order_id: int = Form(...),
    reason: str = Form(""),
    images: List[UploadFile] = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    request = create_special_return(session, current_user, special_order_id, reason, images)
    return {"message": "Return request submitted", "request": ReturnSpecialRequestRead.model_validate(request)}


@router.patch("/return-special-orders/{request_id}")
def decide_special_return(
    request_id: int,
    payload: ReturnProcess,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    request = process_special_return(
        session,
        get_special_request(session, request_id),
        payload.status,
        gateway,
        payload.admin_note,
        actor=f"admin:{admin.id}",
    )
    return {
        "message": f"Return request {request.status}",
        "request": ReturnSpecialRequestRead.model_validate(request),
    }


@router.get("/returnspecialrequest")
def list_special_returns(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(ReturnSpecialRequest).order_by(ReturnSpecialRequest.created_at.desc())
    if not current_user.is_admin:
        query = query.join(
            SpecialOrder, SpecialOrder.id == ReturnSpecialRequest.special_order_id
        ).where(SpecialOrder.user_id == current_user.id)

    requests = session.exec(query).all()
    return {"requests": [ReturnSpecialRequestRead.model_validate(r) for r in requests]}


@router.get("/returnspecialrequest/{request_id}")
def get_special_return(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    request = get_special_request(session, request_id)
    order = session.get(SpecialOrder, request.special_order_id)
    if not current_user.is_admin and order.user_id != current_user.id:
        raise HTTPException(404, "Return request not found")

    return {"request": ReturnSpecialRequestRead.model_validate(request)}
