"""Store search router: keyword search, autocomplete and filter options."""

import math
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.store_service.models import Category, Product
from services.store_service.routers.catalog import category_filter
from services.store_service.schemas import (
    AutocompleteResponse,
    CategoryOption,
    FilterOptionsResponse,
    PriceRange,
    ProductResponse,
    SearchFilters,
    SearchResponse,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["search"])

SORT_ORDERS = {
    "newest": Product.created_at.desc(),
    "price_low": Product.price.asc(),
    "price_high": Product.price.desc(),
    "rating": Product.average_rating.desc(),
    "popularity": Product.num_reviews.desc(),
}


@router.get("/search", response_model=SearchResponse)
async def search_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    sort: Literal["newest", "price_low", "price_high", "rating", "popularity"] = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Search active products by keyword over name, description and brand."""
    filters = [Product.is_active.is_(True)]
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        filters.append(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.brand.ilike(pattern),
            )
        )
    if category:
        filters.append(category_filter(category))
    if brand:
        filters.append(Product.brand.ilike(f"%{brand.strip()}%"))
    if min_price is not None:
        filters.append(Product.price >= min_price)
    if max_price is not None:
        filters.append(Product.price <= max_price)
    if min_rating is not None:
        filters.append(Product.average_rating >= min_rating)

    total = await db.scalar(select(func.count(Product.id)).where(*filters)) or 0
    result = await db.execute(
        select(Product)
        .where(*filters)
        .options(selectinload(Product.category))
        .order_by(SORT_ORDERS[sort], Product.created_at.desc(), Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    products = result.scalars().all()

    return SearchResponse(
        count=len(products),
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
        products=[ProductResponse.model_validate(p) for p in products],
    )


@router.get("/search/autocomplete", response_model=AutocompleteResponse)
async def autocomplete(
    q: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """Up to ten product names containing ``q`` (at least two characters)."""
    if not q or len(q.strip()) < 2:
        return AutocompleteResponse(suggestions=[])

    result = await db.execute(
        select(Product.name)
        .where(Product.is_active.is_(True), Product.name.ilike(f"%{q.strip()}%"))
        .order_by(Product.name)
        .limit(10)
    )
    return AutocompleteResponse(suggestions=list(result.scalars().all()))


@router.get("/search/filters", response_model=FilterOptionsResponse)
async def filter_options(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """Brands and price range of active products, plus the active categories."""
    filters = [Product.is_active.is_(True)]
    if category:
        filters.append(category_filter(category))

    brands = await db.execute(
        select(Product.brand)
        .where(*filters, Product.brand.is_not(None), Product.brand != "")
        .distinct()
        .order_by(Product.brand)
    )
    price_row = (
        await db.execute(
            select(func.min(Product.price), func.max(Product.price)).where(*filters)
        )
    ).one()
    categories = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
    )

    return FilterOptionsResponse(
        filters=SearchFilters(
            brands=list(brands.scalars().all()),
            price_range=PriceRange(
                min_price=price_row[0] or Decimal("0"),
                max_price=price_row[1] or Decimal("0"),
            ),
            categories=[
                CategoryOption.model_validate(c) for c in categories.scalars().all()
            ],
        )
    )
