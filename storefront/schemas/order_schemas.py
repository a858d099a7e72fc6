from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class OrderLineIn(BaseModel):
    product_id: int
    size: str
    quantity: int = Field(ge=1)


class OrderCreate(BaseModel):
    # Omitted: the caller's cart is ordered and cleared
    items: Optional[List[OrderLineIn]] = None

    # Omitted fields fall back to the profile
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None


class OrderStatusUpdate(BaseModel):
    status: str
    cancel_reason: Optional[str] = None


class CancelOrderRequest(BaseModel):
    id: int
    cancel_reason: str
    refund_amount: Optional[float] = None


class PaymentRequest(BaseModel):
    order_id: int


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    size: str
    quantity: int
    unit_price: float
    total_price: float


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tracking_id: str
    user_id: int
    status: str
    total_amount: float
    is_paid: bool
    payment_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    cancel_reason: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = []
