from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow


class CartItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    size: str
    quantity: int = 1
    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
