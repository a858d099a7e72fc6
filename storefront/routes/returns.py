from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import TypeAdapter, ValidationError
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.order import Order
from storefront.models.return_request import ReturnRequest
from storefront.models.user import User
from storefront.schemas.return_schemas import ReturnLineIn, ReturnProcess, ReturnRequestRead
from storefront.services.return_service import create_return, delete_return, process_return
from storefront.utils.token import get_current_user

router = APIRouter()

return_lines = TypeAdapter(List[ReturnLineIn])


def parse_lines(raw: str) -> List[ReturnLineIn]:
    """`items` arrives as a JSON string inside the multipart form."""
    try:
        return return_lines.validate_json(raw)
    except ValidationError:
        raise HTTPException(
            400,
            'items must be a JSON list like [{"orderItemId": 1, "quantity": 1}]',
        )


def get_return_request(session: Session, request_id: int) -> ReturnRequest:
    request = session.get(ReturnRequest, request_id)
    if not request:
        raise HTTPException(404, "Return request not found")
    return request


@router.post("/orders/return", status_code=status.HTTP_201_CREATED)
def request_return(
    order_id: int = Form(...),
    reason: str = Form(""),
    items: str = Form(...),
    images: List[UploadFile] = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    request = create_return(
        session,
        current_user,
        order_id,
        reason,
        parse_lines(items),
        images,
    )
    return {"message": "Return request submitted", "request": ReturnRequestRead.model_validate(request)}


@router.get("/orders/return/{request_id}")
def get_return(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    request = get_return_request(session, request_id)
    order = session.get(Order, request.order_id)
    if not current_user.is_admin and order.user_id != current_user.id:
        raise HTTPException(404, "Return request not found")

    return {"request": ReturnRequestRead.model_validate(request)}


@router.patch("/orders/return/{request_id}")
def decide_return(
    request_id: int,
    payload: ReturnProcess,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    request = process_return(
        session,
        get_return_request(session, request_id),
        payload.status,
        payload.admin_note,
        actor=f"admin:{admin.id}",
    )
    return {"message": f"Return request {request.status}", "request": ReturnRequestRead.model_validate(request)}


@router.delete("/orders/return/{request_id}")
def remove_return(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    delete_return(session, get_return_request(session, request_id), current_user)
    return {"message": "Return request deleted"}


@router.get("/return_requests")
def list_returns(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    requests = session.exec(
        select(ReturnRequest).order_by(ReturnRequest.created_at.desc())
    ).all()
    return {"requests": [ReturnRequestRead.model_validate(r) for r in requests]}
