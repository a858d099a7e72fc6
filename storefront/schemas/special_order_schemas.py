from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SpecialOrderCreate(BaseModel):
    first_name: str
    last_name: str
    phone: str
    email: EmailStr
    address: str
    product_type: str
    model: str
    quantity: int
    size_label: str
    chest: float = Field(gt=0)
    length: float = Field(gt=0)
    notes: Optional[str] = None


class SpecialOrderPrice(BaseModel):
    id: int
    price: float = Field(gt=0)


class SpecialOrderStatusUpdate(BaseModel):
    status: str


class SpecialCancelRequest(BaseModel):
    id: int
    cancel_reason: str


class SpecialOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tracking_id: str
    user_id: int
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
    status: str
    price: Optional[float] = None
    is_approved: bool
    is_paid: bool
    payment_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    refund_id: Optional[str] = None
    cancel_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
