from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from storefront.database import get_session
from storefront.models.cart import CartItem
from storefront.models.product import Product, SIZES
from storefront.models.user import User
from storefront.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from storefront.services.inventory_service import available_stock
from storefront.utils.token import get_current_user

router = APIRouter()


def _check_available(session: Session, product: Product, size: str, quantity: int):
    # Advisory only, stock is taken at checkout
    stock = available_stock(session, product.id, size)
    if quantity > stock:
        raise HTTPException(
            409,
            f"Only {stock} left for {product.name} ({size})",
        )


# Add to Cart

@router.post("/add")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if data.quantity < 1:
        raise HTTPException(400, "Quantity must be at least 1")
    if data.size not in SIZES:
        raise HTTPException(400, f"Unknown size: {data.size}")

    product = session.get(Product, data.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.price_for(data.size) is None:
        raise HTTPException(400, f"{product.name} is not sold in size {data.size}")

    existing_item = session.exec(
        select(CartItem).where(
            CartItem.user_id == current_user.id,
            CartItem.product_id == data.product_id,
            CartItem.size == data.size,
        )
    ).first()

    quantity = data.quantity + (existing_item.quantity if existing_item else 0)
    _check_available(session, product, data.size, quantity)

    if existing_item:
        existing_item.quantity = quantity
        session.add(existing_item)
        session.commit()
        session.refresh(existing_item)
        return {"message": "Cart updated", "item": existing_item}

    new_item = CartItem(
        user_id=current_user.id,
        product_id=product.id,
        size=data.size,
        quantity=data.quantity,
    )

    session.add(new_item)
    session.commit()
    session.refresh(new_item)

    return {"message": "Added to cart", "item": new_item}


# View Cart

@router.get("")
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = session.exec(
        select(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .where(CartItem.user_id == current_user.id)
    ).all()

    items = []
    subtotal = 0

    for cart_item, product in rows:
        price = product.price_for(cart_item.size) or 0
        stock = available_stock(session, product.id, cart_item.size)
        subtotal += price * cart_item.quantity

        items.append({
            "item_id": cart_item.id,
            "product_id": product.id,
            "product_name": product.name,
            "image_url": (product.image_urls or [None])[0],
            "size": cart_item.size,
            "price": price,
            "quantity": cart_item.quantity,
            "stock": stock,
            "in_stock": stock >= cart_item.quantity,
            "total": price * cart_item.quantity,
        })

    return {"items": items, "subtotal": subtotal}


# Update Cart

@router.put("/update/{item_id}")
def update_cart_item(
    item_id: int,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    item = session.get(CartItem, item_id)

    if not item or item.user_id != current_user.id:
        raise HTTPException(404, "Cart item not found")

    if data.quantity <= 0:
        session.delete(item)
        session.commit()
        return {"message": "Item removed"}

    product = session.get(Product, item.product_id)
    _check_available(session, product, item.size, data.quantity)

    item.quantity = data.quantity
    session.add(item)
    session.commit()
    session.refresh(item)

    return {"message": "Quantity updated", "item": item}


# Remove Cart

@router.delete("/remove/{item_id}")
def remove_item(
    item_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    item = session.get(CartItem, item_id)

    if not item or item.user_id != current_user.id:
        raise HTTPException(404, "Item not found")

    session.delete(item)
    session.commit()

    return {"message": "Item removed"}
