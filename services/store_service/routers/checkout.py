"""Store checkout router: checkout summary and coupon pricing."""

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import require_buyer
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.pricing import (
    compute_pricing,
    coupon_discount,
    coupon_rejection,
    round_money,
)
from services.store_service.routers.addresses import list_user_addresses
from services.store_service.schemas import (
    AddressResponse,
    CalculateRequest,
    CalculateResponse,
    CheckoutDetails,
    CheckoutDetailsResponse,
    CheckoutLine,
    CouponSummary,
    CouponValidationResponse,
    OrderSummary,
    PricingSummary,
    ValidateCouponRequest,
)
from services.store_service.services.checkout import (
    checkout_lines,
    find_active_coupon,
    items_total,
    load_cart,
    price_with_coupon,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["checkout"])


async def _cart_lines(db: AsyncSession, user_id: str):
    cart = await load_cart(db, user_id)
    lines = checkout_lines(cart) if cart else []
    if not lines:
        raise HTTPException(status_code=400, detail="Cart is empty")
    return lines


@router.get("/checkout", response_model=CheckoutDetailsResponse)
async def get_checkout_details(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Cart lines, saved addresses and pricing before any coupon."""
    lines = await _cart_lines(db, current_user.user_id)
    addresses = await list_user_addresses(db, current_user.user_id)
    pricing = compute_pricing(items_total(lines), tax_on_discounted=False)

    return CheckoutDetailsResponse(
        checkout=CheckoutDetails(
            items=[
                CheckoutLine(
                    product_id=line.product_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    image=(line.images[0].get("url") if line.images else None) or "",
                )
                for line in lines
            ],
            addresses=[AddressResponse.model_validate(a) for a in addresses],
            pricing=PricingSummary(**pricing.as_dict()),
        )
    )


@router.post("/checkout/validate-coupon", response_model=CouponValidationResponse)
async def validate_coupon(
    payload: ValidateCouponRequest,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Check a coupon against an items total and preview its discount."""
    coupon = await find_active_coupon(db, payload.code)
    if not coupon:
        raise HTTPException(status_code=404, detail="Invalid or expired coupon code")

    rejection = coupon_rejection(coupon, payload.items_price)
    if rejection:
        raise HTTPException(status_code=400, detail=rejection)

    return CouponValidationResponse(
        message="Coupon applied successfully",
        coupon=CouponSummary(
            code=coupon.code,
            discount_amount=round_money(coupon_discount(coupon, payload.items_price)),
            description=coupon.description,
        ),
    )


@router.post("/checkout/calculate", response_model=CalculateResponse)
async def calculate_order_summary(
    payload: CalculateRequest,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Full order pricing for the current cart, with an optional coupon."""
    lines = await _cart_lines(db, current_user.user_id)
    pricing, coupon = await price_with_coupon(
        db, items_total(lines), payload.coupon_code
    )
    return CalculateResponse(
        summary=OrderSummary(
            **pricing.as_dict(),
            applied_coupon=coupon.code if coupon else None,
        )
    )
