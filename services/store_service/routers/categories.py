"""Store categories router: public category listing, tree and category pages."""

import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.db.session import get_async_db
from services.store_service.models import Category, Product
from services.store_service.schemas import (
    CategoryDetail,
    CategoryEnvelope,
    CategoryListResponse,
    CategoryProductsPage,
    CategoryProductsResponse,
    CategoryResponse,
    CategorySummary,
    CategoryTreeNode,
    CategoryTreeResponse,
    ProductResponse,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["categories"])

CATEGORY_ORDER = (Category.sort_order, Category.name)


async def get_category_or_404(db: AsyncSession, identifier: str) -> Category:
    """Active category by UUID or slug."""
    try:
        condition = Category.id == uuid.UUID(identifier)
    except ValueError:
        condition = Category.slug == identifier

    category = await db.scalar(
        select(Category)
        .where(condition, Category.is_active.is_(True))
        .options(selectinload(Category.parent))
    )
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


async def category_path(db: AsyncSession, category: Category) -> str:
    """Names from the root down to ``category``, joined with " > "."""
    names = [category.name]
    seen = {category.id}
    parent_id = category.parent_id
    while parent_id is not None and parent_id not in seen:
        parent = await db.get(Category, parent_id)
        if parent is None:
            break
        names.insert(0, parent.name)
        seen.add(parent.id)
        parent_id = parent.parent_id
    return " > ".join(names)


def build_tree(categories: list[Category]) -> list[CategoryTreeNode]:
    """Nest active categories under their parents; orphans are dropped."""
    children: dict[Optional[uuid.UUID], list[Category]] = {}
    for category in categories:
        children.setdefault(category.parent_id, []).append(category)

    def nodes(parent_id: Optional[uuid.UUID]) -> list[CategoryTreeNode]:
        return [
            CategoryTreeNode(
                id=c.id,
                name=c.name,
                slug=c.slug,
                description=c.description,
                image_url=c.image_url,
                icon=c.icon,
                level=c.level,
                sort_order=c.sort_order,
                is_featured=c.is_featured,
                subcategories=nodes(c.id),
            )
            for c in children.get(parent_id, [])
        ]

    return nodes(None)


# ============================================================================
# CATEGORY ENDPOINTS
# ============================================================================


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    is_active: bool = Query(True, alias="isActive"),
    parent: Optional[str] = None,
    level: Optional[int] = Query(None, ge=0),
    is_featured: bool = Query(False, alias="isFeatured"),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """List categories; ``parent=null`` selects top-level ones."""
    filters = [Category.is_active.is_(is_active)]
    if parent == "null":
        filters.append(Category.parent_id.is_(None))
    elif parent:
        try:
            filters.append(Category.parent_id == uuid.UUID(parent))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid parent category id")
    if level is not None:
        filters.append(Category.level == level)
    if is_featured:
        filters.append(Category.is_featured.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(
            or_(Category.name.ilike(pattern), Category.description.ilike(pattern))
        )

    total = await db.scalar(select(func.count(Category.id)).where(*filters)) or 0
    result = await db.execute(
        select(Category)
        .where(*filters)
        .options(selectinload(Category.parent))
        .order_by(*CATEGORY_ORDER)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    categories = result.scalars().all()

    return CategoryListResponse(
        count=len(categories),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
        categories=[CategoryResponse.model_validate(c) for c in categories],
    )


@router.get("/categories/tree", response_model=CategoryTreeResponse)
async def get_category_tree(db: AsyncSession = Depends(get_async_db)):
    """Active categories nested by parent."""
    result = await db.execute(
        select(Category).where(Category.is_active.is_(True)).order_by(*CATEGORY_ORDER)
    )
    return CategoryTreeResponse(tree=build_tree(list(result.scalars().all())))


@router.get("/categories/{identifier}/products", response_model=CategoryProductsResponse)
async def get_category_products(
    identifier: str,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """A category (by id or slug) with a page of its active products."""
    category = await get_category_or_404(db, identifier)
    filters = [Product.category_id == category.id, Product.is_active.is_(True)]

    total = await db.scalar(select(func.count(Product.id)).where(*filters)) or 0
    result = await db.execute(
        select(Product)
        .where(*filters)
        .options(selectinload(Product.category))
        .order_by(Product.created_at.desc(), Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    products = result.scalars().all()

    return CategoryProductsResponse(
        category=CategoryResponse.model_validate(category),
        products=CategoryProductsPage(
            count=len(products),
            total=total,
            page=page,
            total_pages=math.ceil(total / limit),
            data=[ProductResponse.model_validate(p) for p in products],
        ),
    )


@router.get("/categories/{identifier}", response_model=CategoryEnvelope)
async def get_category(
    identifier: str,
    db: AsyncSession = Depends(get_async_db),
):
    """A category by id or slug, with its active subcategories and full path."""
    category = await get_category_or_404(db, identifier)
    result = await db.execute(
        select(Category)
        .where(Category.parent_id == category.id, Category.is_active.is_(True))
        .order_by(*CATEGORY_ORDER)
    )
    subcategories = result.scalars().all()

    detail = CategoryDetail(
        **CategoryResponse.model_validate(category).model_dump(),
        subcategories=[CategorySummary.model_validate(s) for s in subcategories],
        path=await category_path(db, category),
    )
    return CategoryEnvelope(category=detail)
