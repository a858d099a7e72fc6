from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime
from enum import Enum

from storefront.utils.timeutils import utc_column, utcnow


class ReturnStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Admin screens send the Thai labels
RETURN_STATUS_ALIASES = {
    "อนุมัติ": ReturnStatus.APPROVED,
    "ปฏิเสธ": ReturnStatus.REJECTED,
}


class ReturnRequest(SQLModel, table=True):
    __tablename__ = "return_request"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)

    reason: str = ""
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = Field(default=ReturnStatus.PENDING.value)
    admin_note: Optional[str] = None

    processed_at: Optional[datetime] = Field(default=None, sa_type=utc_column())
    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())

    items: List["ReturnItem"] = Relationship(
        back_populates="request",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ReturnItem(SQLModel, table=True):
    __tablename__ = "return_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    return_request_id: int = Field(foreign_key="return_request.id", index=True)

    # An order line can be returned at most once
    order_item_id: int = Field(foreign_key="orderitem.id", unique=True)
    quantity: int

    request: Optional[ReturnRequest] = Relationship(back_populates="items")


class ReturnSpecialRequest(SQLModel, table=True):
    __tablename__ = "return_special_request"

    id: Optional[int] = Field(default=None, primary_key=True)
    special_order_id: int = Field(foreign_key="special_order.id", index=True)

    reason: str = ""
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = Field(default=ReturnStatus.PENDING.value)
    admin_note: Optional[str] = None
    refund_id: Optional[str] = None

    processed_at: Optional[datetime] = Field(default=None, sa_type=utc_column())
    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
