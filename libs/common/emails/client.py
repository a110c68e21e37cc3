"""
Email client for the external email service.

Usage:
    from libs.common.emails.client import get_email_client

    email_client = get_email_client()

    await email_client.send_template(
        template_type="order_confirmation",
        to_email="user@example.com",
        template_data={"customer_name": "Asha", "order_number": "ORD-..."},
    )
"""

from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """
    HTTP client for sending templated emails through the email service.

    Without ``EMAIL_SERVICE_URL`` configured, sends are skipped and logged.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.EMAIL_SERVICE_URL or "").rstrip("/")
        self.token = token or settings.EMAIL_SERVICE_TOKEN
        self.timeout = timeout

    def _get_auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def send_template(
        self,
        template_type: str,
        to_email: str,
        template_data: dict[str, Any],
    ) -> bool:
        """
        Send a templated email.

        Available template types:
        - order_confirmation: Order placed (cash on delivery) or paid online

        Returns:
            True if the email service accepted the email, False otherwise
        """
        if not self.base_url:
            logger.info(
                "Email service not configured, skipping '%s' email to %s",
                template_type,
                to_email,
            )
            return False

        payload = {
            "template_type": template_type,
            "to_email": to_email,
            "template_data": template_data,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/email/template",
                    json=payload,
                    headers=self._get_auth_headers(),
                )
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to email service: {e}")
            return False

        if response.status_code == 200:
            return bool(response.json().get("success", False))

        logger.error(
            f"Template email API returned {response.status_code}: {response.text}"
        )
        return False


# Singleton instance for convenience
_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Get or create the singleton EmailClient instance."""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
