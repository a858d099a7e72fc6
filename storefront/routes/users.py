from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.user import User
from storefront.schemas.user_schemas import UserAdminRead
from storefront.utils.pagination import paginate

router = APIRouter()


# -------- ADMIN USER LIST --------

@router.get("")
def list_users(
    q: Optional[str] = None,
    role: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    query = select(User).order_by(User.created_at.desc(), User.id.desc())

    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(User.name.ilike(pattern) | User.email.ilike(pattern))
    if role:
        query = query.where(User.role == role)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda u: UserAdminRead.model_validate(u).model_dump(),
    )
