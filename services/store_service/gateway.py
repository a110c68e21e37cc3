"""
Payment gateway capability and its Razorpay implementation.

The checkout flow only talks to ``PaymentGateway``:
- create_remote_order: open a gateway-side order the client pays against
- verify_signature: check the signature the client returns after paying

``RazorpayClient`` implements it over the Razorpay Orders REST API.
"""

import hashlib
import hmac
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.store_service.pricing import to_minor_units

logger = get_logger(__name__)


@dataclass
class GatewayOrder:
    """Gateway-side order created to authorize a client payment."""

    id: str
    amount: int  # in paise
    currency: str
    receipt: Optional[str] = None
    status: str = "created"


class RazorpayError(Exception):
    """Base exception for Razorpay API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class PaymentGateway(Protocol):
    key_id: str
    currency: str

    async def create_remote_order(self, amount: Decimal, receipt: str) -> GatewayOrder:
        ...

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        ...


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 hex digest of ``"<order_id>|<payment_id>"``."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayClient:
    """Async client for the Razorpay Orders API."""

    def __init__(
        self,
        key_id: str = None,
        key_secret: str = None,
        base_url: str = None,
        currency: str = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        if not self.key_id or not self.key_secret:
            raise ValueError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required")
        self.base_url = (base_url or settings.RAZORPAY_BASE_URL).rstrip("/")
        self.currency = currency or settings.CURRENCY
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, endpoint: str, json_data: dict = None) -> dict:
        """Make an authenticated request to the Razorpay API."""
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.request(method, endpoint, json=json_data)

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            logger.error(f"Razorpay API error: {response.status_code} - {data}")
            raise RazorpayError(
                message=error.get("description", "Failed to create payment order"),
                status_code=response.status_code,
                response_data=data,
            )
        return data

    async def create_remote_order(self, amount: Decimal, receipt: str) -> GatewayOrder:
        """
        Create a Razorpay order for ``amount`` (major units) with auto-capture.
        """
        data = await self._request(
            "POST",
            "/orders",
            json_data={
                "amount": to_minor_units(amount),
                "currency": self.currency,
                "receipt": receipt,
                "payment_capture": 1,
            },
        )
        return GatewayOrder(
            id=data["id"],
            amount=data.get("amount", to_minor_units(amount)),
            currency=data.get("currency", self.currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time check of the checkout signature."""
        if not order_id or not payment_id or not signature:
            return False
        expected = compute_signature(self.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected, signature)


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway."""
    return RazorpayClient()
