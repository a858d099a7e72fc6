from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReturnLineIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_item_id: int = Field(alias="orderItemId")
    quantity: int


class ReturnProcess(BaseModel):
    status: str
    admin_note: Optional[str] = None


class ReturnItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_item_id: int
    quantity: int


class ReturnRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    reason: str
    images: List[str] = []
    status: str
    admin_note: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    items: List[ReturnItemRead] = []


class ReturnSpecialRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    special_order_id: int
    reason: str
    images: List[str] = []
    status: str
    admin_note: Optional[str] = None
    refund_id: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
