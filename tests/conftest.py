import hmac
import os
import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Optional overrides for running against a real database
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env.test"))

# Must be set before the engine in libs.db.config is created
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_SERVICE_URL"] = ""
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.common.emails.client import get_email_client  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.store_service import models as _store_models  # noqa: E402,F401
from services.store_service.app.main import app  # noqa: E402
from services.store_service.connections import ConnectionRegistry  # noqa: E402
from services.store_service.gateway import (  # noqa: E402
    GatewayOrder,
    RazorpayError,
    compute_signature,
    get_payment_gateway,
)
from services.store_service.pricing import to_minor_units  # noqa: E402

get_settings.cache_clear()
settings = get_settings()


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeGateway:
    """In-memory payment gateway that signs like the real one."""

    key_id = "rzp_test_fake"
    currency = "INR"
    secret = "fake_gateway_secret"

    def __init__(self):
        self.orders: list[GatewayOrder] = []
        self.fail_with = None

    async def create_remote_order(self, amount: Decimal, receipt: str) -> GatewayOrder:
        if self.fail_with is not None:
            raise self.fail_with
        order = GatewayOrder(
            id=f"order_{uuid.uuid4().hex[:14]}",
            amount=to_minor_units(amount),
            currency=self.currency,
            receipt=receipt,
        )
        self.orders.append(order)
        return order

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self.secret, order_id, payment_id)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return hmac.compare_digest(self.sign(order_id, payment_id), signature)

    def outage(self, message: str = "Gateway unavailable"):
        self.fail_with = RazorpayError(message, status_code=502)


class FakeEmailClient:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send_template(self, template_type, to_email, template_data) -> bool:
        if self.fail:
            raise RuntimeError("Email service down")
        self.sent.append(
            {
                "template_type": template_type,
                "to_email": to_email,
                "template_data": template_data,
            }
        )
        return True


class FakeSocket:
    def __init__(self, broken: bool = False):
        self.messages: list = []
        self.closed_with = None
        self.broken = broken

    async def send_json(self, data) -> None:
        if self.broken:
            raise RuntimeError("socket is gone")
        self.messages.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_buyer_user(user_id: str = None, **overrides) -> AuthUser:
    defaults = {
        "user_id": user_id or f"buyer-{uuid.uuid4().hex[:8]}",
        "email": "buyer@example.com",
        "name": "Test Buyer",
        "role": "buyer",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


def make_token(user_id: str = "buyer-1", role: str = "buyer", **claims) -> str:
    """Sign an access token the way the auth service does."""
    payload = {"sub": user_id, "role": role, "email": "buyer@example.com", **claims}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@contextmanager
def override_auth(target_app, user: AuthUser):
    """Temporarily authenticate requests as ``user``."""
    previous = target_app.dependency_overrides.get(get_current_user)
    target_app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            target_app.dependency_overrides.pop(get_current_user, None)
        else:
            target_app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Fresh schema per test; in-memory SQLite unless TEST_DATABASE_URL is set."""
    options = {"future": True}
    if settings.DATABASE_URL.startswith("sqlite"):
        options.update(
            poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    engine = create_async_engine(settings.DATABASE_URL, **options)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


@pytest.fixture
def buyer() -> AuthUser:
    return make_buyer_user(user_id="buyer-1")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest_asyncio.fixture
async def client(
    db_session, buyer, gateway, email_client, registry
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the store app with DB, auth, gateway and email overridden."""
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: buyer
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_email_client] = lambda: email_client
    # ASGITransport does not run the lifespan
    app.state.connections = registry

    # Unhandled errors still render as 500 instead of raising into the test
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


async def seed_checkout(db, user_id: str, *, quantity: int = 1, **product_fields):
    """Persist a product, a cart holding it, and a default address for ``user_id``."""
    from tests.factories import AddressFactory, CartFactory, ProductFactory

    product = ProductFactory.create(**product_fields)
    address = AddressFactory.create(user_id)
    db.add(product)
    db.add(address)
    db.add(CartFactory.create(user_id, lines=[(product, quantity)]))
    await db.commit()
    return product, address
