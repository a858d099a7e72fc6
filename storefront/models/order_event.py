from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON

from storefront.utils.timeutils import utc_column, utcnow


class OrderEvent(SQLModel, table=True):
    __tablename__ = "order_event"

    id: Optional[int] = Field(default=None, primary_key=True)

    # "order" or "special_order"
    order_kind: str = Field(default="order", index=True)
    order_id: int = Field(index=True)
    event_type: str = Field(index=True)

    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    created_by: str = Field(default="system")
