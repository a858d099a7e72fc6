"""Tests for the per-size stock counters."""

import pytest
from fastapi import HTTPException

from storefront.services.inventory_service import (
    StockLine,
    available_stock,
    reduce_inventory,
    restore_inventory,
    set_stock,
    stock_map,
)


def test_stock_map_lists_every_size(session, product):
    assert stock_map(session, product.id) == {"S": 5, "M": 10, "L": 10, "XL": 2}


def test_reduce_takes_quantity_per_size(session, product):
    reduce_inventory(session, [StockLine(product.id, "M", 3), StockLine(product.id, "XL", 2)])
    session.commit()

    assert available_stock(session, product.id, "M") == 7
    assert available_stock(session, product.id, "XL") == 0
    assert available_stock(session, product.id, "S") == 5


def test_reduce_never_goes_negative(session, product):
    with pytest.raises(HTTPException) as exc:
        reduce_inventory(session, [StockLine(product.id, "XL", 3)])
    session.rollback()

    assert exc.value.status_code == 400
    assert available_stock(session, product.id, "XL") == 2


def test_failed_line_rolls_back_earlier_lines(session, product):
    with pytest.raises(HTTPException):
        reduce_inventory(
            session,
            [StockLine(product.id, "M", 4), StockLine(product.id, "XL", 9)],
        )
    session.rollback()

    assert available_stock(session, product.id, "M") == 10


def test_restore_adds_back(session, product):
    restored = restore_inventory(session, [StockLine(product.id, "M", 3)])
    session.commit()

    assert restored == 3
    assert available_stock(session, product.id, "M") == 13


def test_restore_creates_missing_counter(session, product):
    # no counter row exists yet for this product
    restore_inventory(session, [StockLine(product.id + 100, "L", 2)])
    session.commit()

    assert available_stock(session, product.id + 100, "L") == 2


def test_set_stock_validates(session, product):
    with pytest.raises(HTTPException):
        set_stock(session, product.id, {"XXL": 1})
    with pytest.raises(HTTPException):
        set_stock(session, product.id, {"M": -1})
