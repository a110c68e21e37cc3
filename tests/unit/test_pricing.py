"""Unit tests for order pricing: tax, shipping, coupons, rounding."""

from decimal import Decimal

import pytest
from services.store_service.models import DiscountType
from services.store_service.pricing import (
    compute_pricing,
    coupon_discount,
    coupon_rejection,
    round_money,
    shipping_for,
    to_minor_units,
)
from tests.factories import CouponFactory


@pytest.mark.unit
def test_single_item_without_coupon_totals_708():
    pricing = compute_pricing(Decimal("600"))

    assert pricing.items_price == Decimal("600.00")
    assert pricing.discount_amount == Decimal("0.00")
    assert pricing.tax_price == Decimal("108.00")
    assert pricing.shipping_price == Decimal("0.00")
    assert pricing.total_price == Decimal("708.00")


@pytest.mark.unit
def test_ten_percent_coupon_totals_637_20():
    coupon = CouponFactory.create(discount_value=Decimal("10"))
    discount = coupon_discount(coupon, Decimal("600"))

    pricing = compute_pricing(Decimal("600"), discount)

    assert pricing.discount_amount == Decimal("60.00")
    assert pricing.tax_price == Decimal("97.20")
    assert pricing.shipping_price == Decimal("0.00")
    assert pricing.total_price == Decimal("637.20")


@pytest.mark.unit
def test_total_is_sum_of_individually_rounded_terms():
    items = Decimal("333.335")
    discount = Decimal("10.005")

    pricing = compute_pricing(items, discount)

    # Tax uses the unrounded difference
    assert pricing.tax_price == round_money((items - discount) * Decimal("0.18"))
    assert pricing.total_price == (
        pricing.items_price
        - pricing.discount_amount
        + pricing.tax_price
        + pricing.shipping_price
    )
    assert pricing.items_price == Decimal("333.34")
    assert pricing.discount_amount == Decimal("10.01")


@pytest.mark.unit
@pytest.mark.parametrize(
    "items_price, expected",
    [
        (Decimal("500"), Decimal("40")),
        (Decimal("499.99"), Decimal("40")),
        (Decimal("500.01"), Decimal("0")),
    ],
)
def test_shipping_is_free_only_above_threshold(items_price, expected):
    assert shipping_for(items_price) == expected


@pytest.mark.unit
def test_small_order_pays_shipping_and_tax():
    pricing = compute_pricing(Decimal("200"))

    assert pricing.tax_price == Decimal("36.00")
    assert pricing.shipping_price == Decimal("40.00")
    assert pricing.total_price == Decimal("276.00")


@pytest.mark.unit
def test_shipping_threshold_uses_pre_discount_items_price():
    pricing = compute_pricing(Decimal("600"), Decimal("150"))

    assert pricing.shipping_price == Decimal("0.00")
    assert pricing.tax_price == Decimal("81.00")


@pytest.mark.unit
def test_checkout_preview_taxes_full_items_price():
    pricing = compute_pricing(Decimal("600"), tax_on_discounted=False)

    assert pricing.tax_price == Decimal("108.00")


@pytest.mark.unit
def test_percentage_coupon_is_capped():
    coupon = CouponFactory.create(
        discount_value=Decimal("50"), max_discount_amount=Decimal("100")
    )

    assert coupon_discount(coupon, Decimal("600")) == Decimal("100")


@pytest.mark.unit
def test_fixed_coupon_uses_its_value():
    coupon = CouponFactory.create(
        discount_type=DiscountType.FIXED, discount_value=Decimal("75")
    )

    assert coupon_discount(coupon, Decimal("600")) == Decimal("75")


@pytest.mark.unit
def test_coupon_rejection_reasons():
    coupon = CouponFactory.create(min_purchase_amount=Decimal("500"))
    assert "Minimum purchase amount of 500.00 required" == coupon_rejection(
        coupon, Decimal("499")
    )
    assert coupon_rejection(coupon, Decimal("500")) is None

    exhausted = CouponFactory.create(usage_limit=5, used_count=5)
    assert coupon_rejection(exhausted, Decimal("600")) == "Coupon usage limit reached"


@pytest.mark.unit
def test_round_money_is_half_up():
    assert round_money(Decimal("0.005")) == Decimal("0.01")
    assert round_money(Decimal("2.675")) == Decimal("2.68")


@pytest.mark.unit
def test_minor_units():
    assert to_minor_units(Decimal("637.20")) == 63720
    assert to_minor_units(Decimal("708")) == 70800
