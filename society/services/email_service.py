"""
Email Service - transactional email through the Brevo SMTP relay API.
"""

import logging
from typing import Optional

import httpx

from society.config import settings
from society.errors import SideEffectError
from society.fsm.states import PaymentCategory
from society.rendering import format_day, render

logger = logging.getLogger(__name__)


class EmailService:
    """Sends HTML email. Delivery is best-effort; callers get no receipt."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        from_address: str,
        from_name: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "EmailService":
        return cls(
            api_url=settings.email_api_url,
            api_key=settings.email_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        if not self.api_key:
            raise SideEffectError("EMAIL_API_KEY is not set")

        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "sender": {"name": self.from_name, "email": self.from_address},
            "to": [{"email": recipient}],
            "subject": subject,
            "htmlContent": html_body,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException:
            logger.error("Email request timeout")
            raise SideEffectError("Email could not be sent")
        except httpx.HTTPError as e:
            logger.error(f"Email send error: {e}")
            raise SideEffectError("Email could not be sent")

        if response.status_code not in (200, 201, 202):
            logger.error(f"Email HTTP error: {response.status_code} {response.text}")
            raise SideEffectError("Email could not be sent")

        logger.info(f"Email sent to {recipient}: {subject}")

    async def send_payment_confirmation(self, payment, owner) -> None:
        """Confirmation email for a completed payment."""
        html_body = render(
            "payment_confirmation.html",
            society_name=settings.society_name,
            payment=payment,
            owner=owner,
            category=PaymentCategory(payment.category).display_name,
            paid_on=format_day(payment.paid_date),
        )
        await self.send(
            recipient=owner.email,
            subject=f"Payment Confirmation - {settings.society_name}",
            html_body=html_body,
        )
