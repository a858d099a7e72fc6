from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow

from storefront.constants.order_status import OrderStatus
from storefront.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tracking_id: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    status: str = Field(default=OrderStatus.NEW.value, index=True)
    total_amount: float

    # Payment
    is_paid: bool = Field(default=False)
    payment_link_id: Optional[str] = None
    payment_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    paid_at: Optional[datetime] = Field(default=None, sa_type=utc_column())

    cancel_reason: Optional[str] = None
    delivered_at: Optional[datetime] = Field(default=None, sa_type=utc_column())

    # Contact snapshot taken at checkout
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())

    items: List["OrderItem"] = Relationship(back_populates="order")

    @property
    def customer_name(self) -> Optional[str]:
        return self.name
