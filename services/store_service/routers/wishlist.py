"""Store wishlist router: the user's saved-for-later products."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Product, Wishlist, WishlistItem
from services.store_service.schemas import (
    WishlistCheckResponse,
    WishlistItemResponse,
    WishlistProductRequest,
    WishlistResponse,
    WishlistToggleResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["wishlist"])


# ============================================================================
# WISHLIST HELPERS
# ============================================================================


async def load_wishlist(db: AsyncSession, user_id: str) -> Optional[Wishlist]:
    result = await db.execute(
        select(Wishlist)
        .where(Wishlist.user_id == user_id)
        .options(selectinload(Wishlist.items).selectinload(WishlistItem.product))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_wishlist(db: AsyncSession, user_id: str) -> Wishlist:
    wishlist = await load_wishlist(db, user_id)
    if wishlist is None:
        wishlist = Wishlist(user_id=user_id, items=[])
        db.add(wishlist)
    return wishlist


async def get_wishlist_or_404(db: AsyncSession, user_id: str) -> Wishlist:
    wishlist = await load_wishlist(db, user_id)
    if wishlist is None:
        raise HTTPException(status_code=404, detail="Wishlist not found")
    return wishlist


async def get_requested_product(
    db: AsyncSession, product_id: Optional[uuid.UUID]
) -> Product:
    if product_id is None:
        raise HTTPException(status_code=400, detail="Product ID is required")
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def wishlist_items(wishlist: Optional[Wishlist]) -> list[WishlistItemResponse]:
    if wishlist is None:
        return []
    return [
        WishlistItemResponse(
            id=item.product.id,
            slug=item.product.slug,
            name=item.product.name,
            price=item.product.price,
            discount_price=item.product.discount_price,
            final_price=item.product.final_price,
            images=item.product.images or [],
            stock=item.product.stock,
            is_active=item.product.is_active,
            average_rating=item.product.average_rating,
            num_reviews=item.product.num_reviews,
            added_at=item.added_at,
        )
        for item in wishlist.items
        if item.product is not None
    ]


async def save_wishlist(db: AsyncSession, user_id: str) -> Wishlist:
    await db.commit()
    return await load_wishlist(db, user_id)


# ============================================================================
# WISHLIST ENDPOINTS
# ============================================================================


@router.get("/wishlist", response_model=WishlistResponse)
async def get_wishlist(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the wishlist, dropping products that are no longer sold."""
    wishlist = await get_or_create_wishlist(db, current_user.user_id)
    wishlist.items = [
        item for item in wishlist.items if item.product and item.product.is_active
    ]
    wishlist = await save_wishlist(db, current_user.user_id)

    items = wishlist_items(wishlist)
    return WishlistResponse(total_items=len(items), wishlist_items=items)


@router.post("/wishlist/add", response_model=WishlistResponse)
async def add_to_wishlist(
    payload: WishlistProductRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_requested_product(db, payload.product_id)
    if not product.is_active:
        raise HTTPException(status_code=400, detail="Product is not available")

    wishlist = await get_or_create_wishlist(db, current_user.user_id)
    if wishlist.find(product.id):
        raise HTTPException(status_code=400, detail="Product already in wishlist")

    wishlist.items.append(WishlistItem(product_id=product.id, product=product))
    wishlist = await save_wishlist(db, current_user.user_id)

    items = wishlist_items(wishlist)
    return WishlistResponse(
        message="Product added to wishlist", total_items=len(items), wishlist_items=items
    )


@router.post("/wishlist/toggle", response_model=WishlistToggleResponse)
async def toggle_wishlist(
    payload: WishlistProductRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add the product when missing, remove it when present."""
    product = await get_requested_product(db, payload.product_id)

    wishlist = await get_or_create_wishlist(db, current_user.user_id)
    existing = wishlist.find(product.id)
    if existing:
        wishlist.items.remove(existing)
        message = "Product removed from wishlist"
    else:
        wishlist.items.append(WishlistItem(product_id=product.id, product=product))
        message = "Product added to wishlist"
    wishlist = await save_wishlist(db, current_user.user_id)

    items = wishlist_items(wishlist)
    return WishlistToggleResponse(
        message=message,
        is_added=existing is None,
        total_items=len(items),
        wishlist_items=items,
    )


@router.delete("/wishlist/remove/{product_id}", response_model=WishlistResponse)
async def remove_from_wishlist(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    wishlist = await get_wishlist_or_404(db, current_user.user_id)
    existing = wishlist.find(product_id)
    if existing:
        wishlist.items.remove(existing)
    wishlist = await save_wishlist(db, current_user.user_id)

    items = wishlist_items(wishlist)
    return WishlistResponse(
        message="Product removed from wishlist",
        total_items=len(items),
        wishlist_items=items,
    )


@router.delete("/wishlist/clear", response_model=WishlistResponse)
async def clear_wishlist(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    wishlist = await get_wishlist_or_404(db, current_user.user_id)
    wishlist.items.clear()
    await db.commit()
    return WishlistResponse(message="Wishlist cleared", total_items=0, wishlist_items=[])


@router.get("/wishlist/check/{product_id}", response_model=WishlistCheckResponse)
async def check_wishlist(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    in_wishlist = await db.scalar(
        select(WishlistItem.id)
        .join(Wishlist, Wishlist.id == WishlistItem.wishlist_id)
        .where(
            Wishlist.user_id == current_user.user_id,
            WishlistItem.product_id == product_id,
        )
    )
    return WishlistCheckResponse(in_wishlist=in_wishlist is not None)
