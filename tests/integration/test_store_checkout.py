"""Integration tests for checkout summary and coupon pricing."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from tests.conftest import seed_checkout
from tests.factories import CouponFactory


async def _coupon(db_session, **overrides):
    coupon = CouponFactory.create(**overrides)
    db_session.add(coupon)
    await db_session.commit()
    return coupon


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_details(client, db_session, buyer):
    product, address = await seed_checkout(db_session, buyer.user_id, quantity=1)

    response = await client.get("/api/checkout")

    assert response.status_code == 200, response.text
    checkout = response.json()["checkout"]
    assert checkout["items"] == [
        {
            "productId": str(product.id),
            "name": product.name,
            "price": 600.0,
            "quantity": 1,
            "image": product.images[0]["url"],
        }
    ]
    assert [a["id"] for a in checkout["addresses"]] == [str(address.id)]
    assert checkout["pricing"] == {
        "itemsPrice": 600.0,
        "discountAmount": 0.0,
        "taxPrice": 108.0,
        "shippingPrice": 0.0,
        "totalPrice": 708.0,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_with_empty_cart(client):
    for response in (
        await client.get("/api/checkout"),
        await client.post("/api/checkout/calculate", json={}),
    ):
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Cart is empty"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_small_order_pays_shipping(client, db_session, buyer):
    await seed_checkout(db_session, buyer.user_id, price=Decimal("200"))

    response = await client.post("/api/checkout/calculate", json={})

    summary = response.json()["summary"]
    assert summary["shippingPrice"] == 40.0
    assert summary["taxPrice"] == 36.0
    assert summary["totalPrice"] == 276.0
    assert summary["appliedCoupon"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_coupon(client, db_session):
    coupon = await _coupon(db_session, code="SAVE10")

    response = await client.post(
        "/api/checkout/validate-coupon", json={"code": "save10", "itemsPrice": 600}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["message"] == "Coupon applied successfully"
    assert data["coupon"]["code"] == coupon.code
    assert data["coupon"]["discountAmount"] == 60.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_coupon_below_minimum(client, db_session):
    await _coupon(db_session, code="BIGSPEND", min_purchase_amount=Decimal("1000"))

    response = await client.post(
        "/api/checkout/validate-coupon", json={"code": "BIGSPEND", "itemsPrice": 600}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Minimum purchase amount of 1000.00 required"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_validate_exhausted_coupon(client, db_session):
    await _coupon(db_session, code="ONCE", usage_limit=1, used_count=1)

    response = await client.post(
        "/api/checkout/validate-coupon", json={"code": "ONCE", "itemsPrice": 600}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Coupon usage limit reached"


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "overrides",
    [
        {"is_active": False},
        {"valid_until": datetime.now(timezone.utc) - timedelta(days=1)},
    ],
)
async def test_validate_unusable_coupon(client, db_session, overrides):
    await _coupon(db_session, code="GONE", **overrides)

    response = await client.post(
        "/api/checkout/validate-coupon", json={"code": "GONE", "itemsPrice": 600}
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Invalid or expired coupon code"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_with_coupon(client, db_session, buyer):
    await seed_checkout(db_session, buyer.user_id)
    await _coupon(db_session, code="SAVE10")

    response = await client.post(
        "/api/checkout/calculate", json={"couponCode": "SAVE10"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["summary"] == {
        "itemsPrice": 600.0,
        "discountAmount": 60.0,
        "taxPrice": 97.2,
        "shippingPrice": 0.0,
        "totalPrice": 637.2,
        "appliedCoupon": "SAVE10",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_ignores_ineligible_coupon(client, db_session, buyer):
    await seed_checkout(db_session, buyer.user_id)
    await _coupon(db_session, code="BIGSPEND", min_purchase_amount=Decimal("1000"))

    response = await client.post(
        "/api/checkout/calculate", json={"couponCode": "BIGSPEND"}
    )

    summary = response.json()["summary"]
    assert summary["discountAmount"] == 0.0
    assert summary["totalPrice"] == 708.0
    assert summary["appliedCoupon"] is None
