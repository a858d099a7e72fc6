from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow

from storefront.constants.order_status import OrderStatus


class SpecialOrder(SQLModel, table=True):
    __tablename__ = "special_order"

    id: Optional[int] = Field(default=None, primary_key=True)
    tracking_id: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # Customer request
    first_name: str
    last_name: str
    phone: str
    email: str
    address: str
    product_type: str
    model: str
    quantity: int
    size_label: str
    chest: float
    length: float
    notes: Optional[str] = None

    status: str = Field(default=OrderStatus.NEW.value, index=True)

    # Set by admin review
    price: Optional[float] = None
    is_approved: bool = Field(default=False)

    # Payment
    is_paid: bool = Field(default=False)
    payment_link_id: Optional[str] = None
    payment_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    paid_at: Optional[datetime] = Field(default=None, sa_type=utc_column())

    cancel_reason: Optional[str] = None
    delivered_at: Optional[datetime] = Field(default=None, sa_type=utc_column())

    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
