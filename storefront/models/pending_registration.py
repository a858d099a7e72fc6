from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow


class PendingRegistration(SQLModel, table=True):
    """Signup waiting for its OTP; replaced on re-register, deleted on confirm."""

    __tablename__ = "pending_registration"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    password_hash: str
    otp_hash: str
    expires_at: datetime = Field(sa_type=utc_column())
    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
