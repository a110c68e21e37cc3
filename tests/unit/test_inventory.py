"""Unit tests for stock checks and atomic decrements."""

import uuid

import pytest
from fastapi import HTTPException
from services.store_service.models import Product
from services.store_service.services.inventory import (
    decrement_stock,
    decrement_stock_with_floor,
    ensure_stock,
)
from sqlalchemy import select
from tests.factories import ProductFactory


async def _make_product(db, **overrides) -> Product:
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


async def _stock(db, product_id) -> int:
    return await db.scalar(select(Product.stock).where(Product.id == product_id))


@pytest.mark.unit
def test_ensure_stock_rejects_short_product():
    product = ProductFactory.create(name="Desk Lamp", stock=1)

    ensure_stock(product, 1)
    with pytest.raises(HTTPException) as exc_info:
        ensure_stock(product, 2)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Insufficient stock for Desk Lamp"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_decrement_stock_takes_units_when_available(db_session):
    product = await _make_product(db_session, stock=5)

    assert await decrement_stock(db_session, product.id, 3) is True
    await db_session.commit()

    assert await _stock(db_session, product.id) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_decrement_stock_refuses_to_oversell(db_session):
    product = await _make_product(db_session, stock=2)

    assert await decrement_stock(db_session, product.id, 3) is False
    await db_session.commit()

    assert await _stock(db_session, product.id) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_sale_of_last_unit_fails(db_session):
    product = await _make_product(db_session, stock=1)

    first = await decrement_stock(db_session, product.id, 1)
    second = await decrement_stock(db_session, product.id, 1)
    await db_session.commit()

    assert (first, second) == (True, False)
    assert await _stock(db_session, product.id) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_floor_decrement_never_goes_negative(db_session):
    product = await _make_product(db_session, stock=2)

    await decrement_stock_with_floor(db_session, product.id, 5)
    await db_session.commit()

    assert await _stock(db_session, product.id) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_floor_decrement_subtracts_normally(db_session):
    product = await _make_product(db_session, stock=7)

    await decrement_stock_with_floor(db_session, product.id, 3)
    await db_session.commit()

    assert await _stock(db_session, product.id) == 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_floor_decrement_ignores_missing_product(db_session):
    await decrement_stock_with_floor(db_session, uuid.uuid4(), 1)
