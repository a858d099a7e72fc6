from typing import Dict, List, Optional

from pydantic import BaseModel


class ProductCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: str = "Uncategorized"
    image_urls: List[str] = []
    price: Dict[str, float]
    stock: Dict[str, int] = {}


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_urls: Optional[List[str]] = None
    price: Optional[Dict[str, float]] = None
    stock: Optional[Dict[str, int]] = None
