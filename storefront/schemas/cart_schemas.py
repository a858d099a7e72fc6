from sqlmodel import SQLModel


class CartAddRequest(SQLModel):
    product_id: int
    size: str
    quantity: int = 1


class CartUpdateRequest(SQLModel):
    quantity: int
