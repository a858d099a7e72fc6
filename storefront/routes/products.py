import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.cart import CartItem
from storefront.models.order_item import OrderItem
from storefront.models.product import Product, ProductStock, SIZES
from storefront.models.user import User
from storefront.schemas.product_schemas import ProductCreate, ProductUpdate
from storefront.services.inventory_service import set_stock, stock_map
from storefront.utils.pagination import paginate
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def product_out(session: Session, product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "image_urls": product.image_urls or [],
        "price": product.price or {},
        "stock": stock_map(session, product.id),
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }


def _check_prices(price: dict):
    for size, value in price.items():
        if size not in SIZES:
            raise HTTPException(400, f"Unknown size: {size}")
        if value is None or value < 0:
            raise HTTPException(400, f"Price for size {size} must be a positive number")


# -------- PUBLIC --------

@router.get("")
def list_products(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    session: Session = Depends(get_session),
):
    query = select(Product).order_by(Product.created_at.desc())
    if category:
        query = query.where(Product.category == category)

    return paginate(
        session=session,
        query=query,
        page=page,
        limit=limit,
        serialize=lambda p: product_out(session, p),
    )


@router.get("/search")
def search_products(
    q: str = Query(..., min_length=1),
    session: Session = Depends(get_session),
):
    pattern = f"%{q.strip()}%"
    products = session.exec(
        select(Product)
        .where(Product.name.ilike(pattern) | Product.category.ilike(pattern))
        .order_by(Product.name)
    ).all()

    return [product_out(session, p) for p in products]


@router.get("/{product_id}")
def get_product(product_id: int, session: Session = Depends(get_session)):
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product_out(session, product)


# -------- ADMIN --------

@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    _check_prices(payload.price)

    product = Product(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        image_urls=payload.image_urls,
        price=payload.price,
    )
    session.add(product)
    session.flush()

    set_stock(session, product.id, {size: payload.stock.get(size, 0) for size in SIZES})

    session.commit()
    session.refresh(product)
    return product_out(session, product)


@router.put("/{product_id}")
def replace_product(
    product_id: int,
    payload: ProductCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(404, "Product not found")

    _check_prices(payload.price)

    product.name = payload.name
    product.description = payload.description
    product.category = payload.category
    product.image_urls = payload.image_urls
    product.price = payload.price
    set_stock(session, product.id, {size: payload.stock.get(size, 0) for size in SIZES})

    product.updated_at = utcnow()
    session.add(product)
    session.commit()
    session.refresh(product)
    return product_out(session, product)


@router.patch("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(404, "Product not found")

    data = payload.model_dump(exclude_unset=True)
    stock = data.pop("stock", None)

    if data.get("price") is not None:
        _check_prices(data["price"])

    for field, value in data.items():
        if value is not None:
            setattr(product, field, value)

    if stock:
        set_stock(session, product.id, stock)

    product.updated_at = utcnow()
    session.add(product)
    session.commit()
    session.refresh(product)
    return product_out(session, product)


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = session.get(Product, product_id)
    if not product:
        raise HTTPException(404, "Product not found")

    # Order lines keep their product reference for history
    ordered = session.exec(
        select(OrderItem.id).where(OrderItem.product_id == product.id)
    ).first()
    if ordered is not None:
        raise HTTPException(409, "Product has been ordered and cannot be deleted")

    for row in session.exec(select(ProductStock).where(ProductStock.product_id == product.id)).all():
        session.delete(row)
    for item in session.exec(select(CartItem).where(CartItem.product_id == product.id)).all():
        session.delete(item)

    session.delete(product)
    session.commit()

    logger.info(f"Product {product_id} deleted by admin {admin.id}")
    return {"message": "Product deleted"}
