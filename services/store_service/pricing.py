"""Order pricing: coupon discount, tax, shipping and totals.

Every monetary term is rounded to 2 decimals on its own before the total is
summed, so the total can differ by a few hundredths from rounding once at the
end. Tax is computed from the unrounded ``items - discount``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.config import get_settings
from services.store_service.models import Coupon, DiscountType

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(value) -> Decimal:
    """Round half-up to 2 decimals."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingBreakdown:
    items_price: Decimal
    discount_amount: Decimal
    tax_price: Decimal
    shipping_price: Decimal
    total_price: Decimal

    def as_dict(self) -> dict:
        return {
            "items_price": self.items_price,
            "discount_amount": self.discount_amount,
            "tax_price": self.tax_price,
            "shipping_price": self.shipping_price,
            "total_price": self.total_price,
        }


def coupon_discount(coupon: Coupon, items_price: Decimal) -> Decimal:
    """Raw (unrounded) discount a coupon gives on ``items_price``."""
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = items_price * Decimal(coupon.discount_value) / Decimal("100")
        if coupon.max_discount_amount:
            discount = min(discount, Decimal(coupon.max_discount_amount))
        return discount
    return Decimal(coupon.discount_value)


def coupon_rejection(coupon: Coupon, items_price: Decimal) -> Optional[str]:
    """Reason the coupon cannot be used for ``items_price``, or None."""
    if items_price < coupon.min_purchase_amount:
        return (
            f"Minimum purchase amount of {round_money(coupon.min_purchase_amount)} required"
        )
    if coupon.usage_exhausted:
        return "Coupon usage limit reached"
    return None


def shipping_for(items_price: Decimal) -> Decimal:
    settings = get_settings()
    if items_price > settings.FREE_SHIPPING_THRESHOLD:
        return ZERO
    return Decimal(settings.SHIPPING_FEE)


def compute_pricing(
    items_price: Decimal,
    discount: Decimal = ZERO,
    *,
    tax_on_discounted: bool = True,
) -> PricingBreakdown:
    """Price an order from its items total and raw discount.

    ``tax_on_discounted=False`` taxes the full items total, which the checkout
    preview uses before a coupon is chosen.
    """
    settings = get_settings()
    items_price = Decimal(items_price)
    discount = Decimal(discount)

    taxable = items_price - discount if tax_on_discounted else items_price
    tax = round_money(taxable * settings.TAX_RATE)
    shipping = round_money(shipping_for(items_price))

    items_rounded = round_money(items_price)
    discount_rounded = round_money(discount)
    total = items_rounded - discount_rounded + tax + shipping

    return PricingBreakdown(
        items_price=items_rounded,
        discount_amount=discount_rounded,
        tax_price=tax,
        shipping_price=shipping,
        total_price=total,
    )


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to the gateway's minor unit (paise)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
