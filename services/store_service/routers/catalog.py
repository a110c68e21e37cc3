"""Store catalog router: public product listing and lookup."""

import math
import uuid
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.db.session import get_async_db
from services.store_service.models import Category, Product
from services.store_service.schemas import (
    ProductEnvelope,
    ProductListResponse,
    ProductResponse,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["catalog"])


def category_filter(slug: str):
    return Product.category_id.in_(select(Category.id).where(Category.slug == slug))


SORT_ORDERS = {
    "newest": Product.created_at.desc(),
    "oldest": Product.created_at.asc(),
    "price_low": Product.price.asc(),
    "price_high": Product.price.desc(),
    "name": Product.name.asc(),
}


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    in_stock: bool = Query(False, alias="inStock"),
    sort: Literal["newest", "oldest", "price_low", "price_high", "name"] = "newest",
    db: AsyncSession = Depends(get_async_db),
):
    """List active products with filters and pagination; ``category`` is a category slug."""
    filters = [Product.is_active.is_(True)]
    if category:
        filters.append(category_filter(category))
    if brand:
        filters.append(Product.brand == brand)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )
    if min_price is not None:
        filters.append(Product.price >= min_price)
    if max_price is not None:
        filters.append(Product.price <= max_price)
    if in_stock:
        filters.append(Product.stock > 0)

    total = await db.scalar(select(func.count(Product.id)).where(*filters)) or 0

    query = (
        select(Product)
        .where(*filters)
        .options(selectinload(Product.category))
        .order_by(SORT_ORDERS[sort], Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    products = result.scalars().all()

    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
    )


@router.get("/products/{identifier}", response_model=ProductEnvelope)
async def get_product(
    identifier: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get an active product by ID or slug."""
    try:
        condition = Product.id == uuid.UUID(identifier)
    except ValueError:
        condition = Product.slug == identifier

    product = await db.scalar(
        select(Product)
        .where(condition, Product.is_active.is_(True))
        .options(selectinload(Product.category))
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    return ProductEnvelope(product=ProductResponse.model_validate(product))
