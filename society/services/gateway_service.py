"""
Razorpay Gateway - order creation and signature verification.

The SDK client is created once per process and injected; every call to the
remote API runs in a worker thread bounded by ``timeout``.
"""

import asyncio
import hmac
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import razorpay

from society.config import settings
from society.errors import GatewayConfigurationError, GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayOrder:
    id: str
    amount: int
    currency: str


def compute_signature(secret: str, message: Union[str, bytes]) -> str:
    """Hex HMAC-SHA256 of ``message`` keyed with ``secret``."""
    if isinstance(message, str):
        message = message.encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayGateway:
    """Adapter around the Razorpay orders API and its checkout signatures."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str = "",
        currency: str = "INR",
        timeout: float = 10.0,
        client: Optional[Any] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.timeout = timeout
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    @classmethod
    def from_settings(cls) -> "RazorpayGateway":
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            webhook_secret=settings.razorpay_webhook_secret,
            currency=settings.payment_currency,
            timeout=settings.gateway_timeout_seconds,
        )

    async def open_order(self, amount_minor_units: int, idempotency_reference: str) -> GatewayOrder:
        """
        Create a Razorpay order.

        A GatewayError does not prove the order was not created remotely;
        ``receipt`` carries our reference so duplicates can be matched up.
        """
        data = {
            "amount": amount_minor_units,
            "currency": self.currency,
            "receipt": idempotency_reference,
            "payment_capture": 1,
        }

        try:
            order: Dict[str, Any] = await asyncio.wait_for(
                asyncio.to_thread(self.client.order.create, data),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Razorpay order creation timed out for {idempotency_reference}")
            raise GatewayError("Payment gateway timed out")
        except Exception as e:
            logger.error(f"Razorpay order creation failed: {e}")
            raise GatewayError("Failed to create payment order")

        logger.info(f"Created Razorpay order {order['id']} for {idempotency_reference}")
        return GatewayOrder(
            id=order["id"],
            amount=int(order.get("amount", amount_minor_units)),
            currency=order.get("currency", self.currency),
        )

    def verify_signature(self, order_id: str, payment_id: str, provided_signature: str) -> bool:
        """
        Check the checkout signature: HMAC-SHA256 of ``"{order_id}|{payment_id}"``.

        Returns False on any mismatch. Raises GatewayConfigurationError only
        when the key secret is missing.
        """
        if not self.key_secret:
            raise GatewayConfigurationError("Payment verification is not configured")

        expected = compute_signature(self.key_secret, f"{order_id}|{payment_id}")
        return hmac.compare_digest(expected.encode(), (provided_signature or "").encode())

    def verify_webhook_signature(self, body: Union[str, bytes], provided_signature: str) -> bool:
        """Check ``X-Razorpay-Signature`` over the raw webhook body."""
        if not self.webhook_secret:
            raise GatewayConfigurationError("Razorpay webhook secret not configured")

        expected = compute_signature(self.webhook_secret, body)
        return hmac.compare_digest(expected.encode(), (provided_signature or "").encode())
