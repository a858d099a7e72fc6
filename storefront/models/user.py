from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = None
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    address: Optional[str] = None
    password: str
    role: str = Field(default="user")
    can_login: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
