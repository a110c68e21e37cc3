"""Store cart router: the buyer's single cart and its items."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import require_buyer
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Cart, CartItem, Product
from services.store_service.schemas import (
    CartEnvelope,
    CartItemCreate,
    CartItemUpdate,
    CartResponse,
)
from services.store_service.services.checkout import load_cart
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["cart"])


# ============================================================================
# CART HELPERS
# ============================================================================


def cart_response(cart: Optional[Cart]) -> CartResponse:
    if cart is None:
        return CartResponse()
    return CartResponse.model_validate(cart)


async def get_active_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.scalar(
        select(Product).where(Product.id == product_id, Product.is_active.is_(True))
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def check_quantity(product: Product, quantity: int) -> None:
    if quantity > product.stock:
        raise HTTPException(
            status_code=400,
            detail=f"Only {product.stock} items available in stock",
        )


def find_item(cart: Optional[Cart], product_id: uuid.UUID) -> CartItem:
    if cart is not None:
        for item in cart.items:
            if item.product_id == product_id:
                return item
    raise HTTPException(status_code=404, detail="Item not found in cart")


async def save_cart(db: AsyncSession, cart: Cart, user_id: str) -> Cart:
    cart.recalculate_totals()
    await db.commit()
    return await load_cart(db, user_id)


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("/cart", response_model=CartEnvelope)
async def get_cart(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the current user's cart (empty when none exists yet)."""
    cart = await load_cart(db, current_user.user_id)
    return CartEnvelope(cart=cart_response(cart))


@router.post("/cart/items", response_model=CartEnvelope)
async def add_to_cart(
    item_in: CartItemCreate,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product to the cart, merging with an existing line."""
    product = await get_active_product(db, item_in.product_id)

    cart = await load_cart(db, current_user.user_id)
    if cart is None:
        cart = Cart(user_id=current_user.user_id, items=[])
        db.add(cart)

    existing = next(
        (item for item in cart.items if item.product_id == product.id), None
    )
    if existing:
        quantity = existing.quantity + item_in.quantity
        check_quantity(product, quantity)
        existing.quantity = quantity
        existing.price = product.price
        existing.final_price = product.final_price
    else:
        check_quantity(product, item_in.quantity)
        cart.items.append(
            CartItem(
                product_id=product.id,
                product=product,
                quantity=item_in.quantity,
                price=product.price,
                final_price=product.final_price,
            )
        )

    cart = await save_cart(db, cart, current_user.user_id)
    return CartEnvelope(message="Item added to cart", cart=cart_response(cart))


@router.put("/cart/items/{product_id}", response_model=CartEnvelope)
async def update_cart_item(
    product_id: uuid.UUID,
    update_in: CartItemUpdate,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Set the quantity of a cart line."""
    cart = await load_cart(db, current_user.user_id)
    item = find_item(cart, product_id)
    if item.product is None or not item.product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    check_quantity(item.product, update_in.quantity)
    item.quantity = update_in.quantity

    cart = await save_cart(db, cart, current_user.user_id)
    return CartEnvelope(message="Cart updated", cart=cart_response(cart))


@router.delete("/cart/items/{product_id}", response_model=CartEnvelope)
async def remove_cart_item(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove a product from the cart."""
    cart = await load_cart(db, current_user.user_id)
    item = find_item(cart, product_id)
    cart.items.remove(item)

    cart = await save_cart(db, cart, current_user.user_id)
    return CartEnvelope(message="Item removed from cart", cart=cart_response(cart))


@router.delete("/cart", response_model=CartEnvelope)
async def clear_cart(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove every item from the cart."""
    cart = await load_cart(db, current_user.user_id)
    if cart is None:
        return CartEnvelope(message="Cart cleared", cart=CartResponse())

    cart.items.clear()
    cart = await save_cart(db, cart, current_user.user_id)
    return CartEnvelope(message="Cart cleared", cart=cart_response(cart))
