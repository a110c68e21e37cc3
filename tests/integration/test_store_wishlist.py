"""Integration tests for the buyer wishlist endpoints."""

import uuid

import pytest
from tests.factories import ProductFactory, WishlistFactory


async def _product(db_session, **overrides):
    product = ProductFactory.create(**overrides)
    db_session.add(product)
    await db_session.commit()
    return product


async def _wishlist(db_session, user_id, *products):
    wishlist = WishlistFactory.create(user_id, products)
    db_session.add(wishlist)
    await db_session.commit()
    return wishlist


def _ids(data) -> list[str]:
    return [item["id"] for item in data["wishlistItems"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_wishlist_when_none_exists(client):
    response = await client.get("/api/wishlist")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["success"] is True
    assert data["totalItems"] == 0
    assert data["wishlistItems"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_product(client, db_session):
    product = await _product(db_session, name="Desk Lamp")

    response = await client.post(
        "/api/wishlist/add", json={"productId": str(product.id)}
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["message"] == "Product added to wishlist"
    assert data["totalItems"] == 1
    item = data["wishlistItems"][0]
    assert item["id"] == str(product.id)
    assert item["name"] == "Desk Lamp"
    assert item["finalPrice"] == 600.0
    assert item["addedAt"] is not None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_twice_rejected(client, db_session):
    product = await _product(db_session)
    await client.post("/api/wishlist/add", json={"productId": str(product.id)})

    response = await client.post(
        "/api/wishlist/add", json={"productId": str(product.id)}
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Product already in wishlist",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_validates_product(client, db_session):
    inactive = await _product(db_session, is_active=False)

    missing_id = await client.post("/api/wishlist/add", json={})
    unknown = await client.post(
        "/api/wishlist/add", json={"productId": str(uuid.uuid4())}
    )
    unavailable = await client.post(
        "/api/wishlist/add", json={"productId": str(inactive.id)}
    )

    assert missing_id.status_code == 400
    assert missing_id.json()["message"] == "Product ID is required"
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Product not found"
    assert unavailable.status_code == 400
    assert unavailable.json()["message"] == "Product is not available"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_toggle_adds_then_removes(client, db_session):
    product = await _product(db_session)
    payload = {"productId": str(product.id)}

    added = await client.post("/api/wishlist/toggle", json=payload)
    removed = await client.post("/api/wishlist/toggle", json=payload)

    assert added.status_code == 200, added.text
    assert added.json()["isAdded"] is True
    assert added.json()["message"] == "Product added to wishlist"
    assert added.json()["totalItems"] == 1
    assert removed.json()["isAdded"] is False
    assert removed.json()["message"] == "Product removed from wishlist"
    assert removed.json()["totalItems"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_drops_products_no_longer_sold(client, db_session):
    kept = await _product(db_session, name="Kept")
    retired = await _product(db_session, name="Retired")
    await _wishlist(db_session, "buyer-1", kept, retired)
    retired.is_active = False
    await db_session.commit()

    response = await client.get("/api/wishlist")

    assert _ids(response.json()) == [str(kept.id)]
    check = await client.get(f"/api/wishlist/check/{retired.id}")
    assert check.json()["inWishlist"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_remove_product(client, db_session):
    first = await _product(db_session)
    second = await _product(db_session)
    await _wishlist(db_session, "buyer-1", first, second)

    response = await client.delete(f"/api/wishlist/remove/{first.id}")

    assert response.status_code == 200, response.text
    assert response.json()["message"] == "Product removed from wishlist"
    assert _ids(response.json()) == [str(second.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_remove_and_clear_without_wishlist(client):
    removed = await client.delete(f"/api/wishlist/remove/{uuid.uuid4()}")
    cleared = await client.delete("/api/wishlist/clear")

    for response in (removed, cleared):
        assert response.status_code == 404
        assert response.json()["message"] == "Wishlist not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_clear_wishlist(client, db_session):
    first = await _product(db_session)
    second = await _product(db_session)
    await _wishlist(db_session, "buyer-1", first, second)

    response = await client.delete("/api/wishlist/clear")

    assert response.status_code == 200, response.text
    assert response.json() == {
        "success": True,
        "message": "Wishlist cleared",
        "totalItems": 0,
        "wishlistItems": [],
    }
    assert (await client.get("/api/wishlist")).json()["totalItems"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_check_is_scoped_to_current_user(client, db_session):
    product = await _product(db_session)
    other = await _product(db_session)
    await _wishlist(db_session, "buyer-1", product)
    await _wishlist(db_session, "buyer-2", other)

    mine = await client.get(f"/api/wishlist/check/{product.id}")
    theirs = await client.get(f"/api/wishlist/check/{other.id}")

    assert mine.json() == {"success": True, "inWishlist": True}
    assert theirs.json() == {"success": True, "inWishlist": False}
