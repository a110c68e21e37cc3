"""Integration tests for token authentication on buyer endpoints."""

import pytest
from jose import jwt
from libs.auth.dependencies import get_current_user
from services.store_service.app.main import app
from tests.conftest import make_token, settings


@pytest.fixture
def real_auth(client):
    """Drop the auth override so requests go through token decoding."""
    override = app.dependency_overrides.pop(get_current_user)
    yield client
    app.dependency_overrides[get_current_user] = override


@pytest.mark.asyncio
@pytest.mark.integration
async def test_no_token(real_auth):
    response = await real_auth.get("/api/cart")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authorized, no token"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_token(real_auth):
    response = await real_auth.get(
        "/api/cart", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, invalid token"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_token_signed_with_other_secret(real_auth):
    token = jwt.encode({"sub": "buyer-1"}, "another-secret", algorithm="HS256")

    response = await real_auth.get(
        "/api/cart", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bearer_token(real_auth):
    response = await real_auth.get(
        "/api/orders", headers={"Authorization": f"Bearer {make_token()}"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["count"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cookie_token(real_auth):
    cookie = f"{settings.AUTH_COOKIE_NAME}={make_token()}"

    response = await real_auth.get(
        "/api/notifications/unread-count", headers={"Cookie": cookie}
    )

    assert response.status_code == 200, response.text
    assert response.json()["unreadCount"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_seller_cannot_shop(real_auth):
    token = make_token(user_id="seller-1", role="seller")

    response = await real_auth.get(
        "/api/cart", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Role 'seller' is not allowed to access this resource"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_catalog_is_public(real_auth):
    response = await real_auth.get("/api/products")

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(real_auth):
    response = await real_auth.get("/health")

    assert response.json() == {"status": "ok", "service": "store"}
