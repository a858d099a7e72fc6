import logging
from collections import namedtuple
from typing import Dict, Iterable, Optional

from fastapi import HTTPException
from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.product import ProductStock, SIZES

logger = logging.getLogger(__name__)

# Anything with product_id / size / quantity works (OrderItem included)
StockLine = namedtuple("StockLine", "product_id size quantity")


def _adjust(session: Session, product_id: int, size: str, delta: int, floor: Optional[int] = None) -> int:
    """Atomic `quantity = quantity + delta` on one counter row; returns rows hit."""
    statement = (
        update(ProductStock)
        .where(ProductStock.product_id == product_id)
        .where(ProductStock.size == size)
        .values(quantity=ProductStock.quantity + delta)
        .execution_options(synchronize_session=False)
    )
    if floor is not None:
        statement = statement.where(ProductStock.quantity >= floor)

    return session.execute(statement).rowcount


def available_stock(session: Session, product_id: int, size: str) -> int:
    row = session.exec(
        select(ProductStock)
        .where(ProductStock.product_id == product_id)
        .where(ProductStock.size == size)
        .execution_options(populate_existing=True)
    ).first()
    return row.quantity if row else 0


def stock_map(session: Session, product_id: int) -> Dict[str, int]:
    rows = session.exec(
        select(ProductStock).where(ProductStock.product_id == product_id)
        .execution_options(populate_existing=True)
    ).all()

    stock = {size: 0 for size in SIZES}
    for row in rows:
        stock[row.size] = row.quantity
    return stock


def set_stock(session: Session, product_id: int, stock: Dict[str, int]):
    """Admin edit: overwrite the counters for the given sizes."""
    for size, quantity in stock.items():
        if size not in SIZES:
            raise HTTPException(400, f"Unknown size: {size}")
        if quantity < 0:
            raise HTTPException(400, f"Stock for size {size} cannot be negative")

        row = session.exec(
            select(ProductStock)
            .where(ProductStock.product_id == product_id)
            .where(ProductStock.size == size)
        ).first()
        if row is None:
            row = ProductStock(product_id=product_id, size=size, quantity=quantity)
        else:
            row.quantity = quantity
        session.add(row)


def reduce_inventory(session: Session, items: Iterable):
    """
    Take every line's quantity off its product/size counter.

    Each decrement is a conditional UPDATE, so two concurrent checkouts can
    never push a counter below zero. The caller owns the transaction and must
    roll back when this raises.
    """
    for item in items:
        hit = _adjust(session, item.product_id, item.size, -item.quantity, floor=item.quantity)
        if not hit:
            logger.warning(
                f"Insufficient stock: product {item.product_id} size {item.size} qty {item.quantity}"
            )
            raise HTTPException(
                400,
                f"Insufficient stock for product {item.product_id} ({item.size})",
            )
        logger.info(f"Stock -{item.quantity}: product {item.product_id} size {item.size}")


def restore_inventory(session: Session, items: Iterable) -> int:
    restored = 0
    for item in items:
        if not _adjust(session, item.product_id, item.size, item.quantity):
            session.add(
                ProductStock(product_id=item.product_id, size=item.size, quantity=item.quantity)
            )
            session.flush()
        restored += item.quantity
        logger.info(f"Stock +{item.quantity}: product {item.product_id} size {item.size}")

    session.flush()
    return restored
