from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint
from typing import Dict, List, Optional
from datetime import datetime

from storefront.utils.timeutils import utc_column, utcnow


SIZES = ("S", "M", "L", "XL")


class Product(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    category: str = Field(default="Uncategorized")
    image_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # size -> unit price
    price: Dict[str, float] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=utc_column())

    def price_for(self, size: str) -> Optional[float]:
        value = (self.price or {}).get(size)
        return float(value) if value is not None else None


class ProductStock(SQLModel, table=True):
    """One counter row per product and size."""

    __tablename__ = "product_stock"
    __table_args__ = (UniqueConstraint("product_id", "size"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    size: str
    quantity: int = Field(default=0)
