"""
Tests for EmailService over a mocked HTTP transport.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from society.errors import SideEffectError
from society.services.email_service import EmailService

API_URL = "https://mail.example.com/v3/smtp/email"


def make_service(handler, api_key="brevo-key"):
    return EmailService(
        api_url=API_URL,
        api_key=api_key,
        from_address="noreply@society.app",
        from_name="Society App",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_send_posts_brevo_payload():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"messageId": "abc"})

    await make_service(handler).send("asha@example.com", "Hello", "<p>Hi</p>")

    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == API_URL
    assert request.headers["api-key"] == "brevo-key"
    body = json.loads(request.content)
    assert body["to"] == [{"email": "asha@example.com"}]
    assert body["sender"]["email"] == "noreply@society.app"
    assert body["htmlContent"] == "<p>Hi</p>"


@pytest.mark.asyncio
async def test_send_rejected_by_provider():
    service = make_service(lambda request: httpx.Response(401, json={"message": "Key not found"}))

    with pytest.raises(SideEffectError):
        await service.send("asha@example.com", "Hello", "<p>Hi</p>")


@pytest.mark.asyncio
async def test_send_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SideEffectError):
        await make_service(handler).send("asha@example.com", "Hello", "<p>Hi</p>")


@pytest.mark.asyncio
async def test_send_without_api_key():
    service = make_service(lambda request: httpx.Response(201), api_key="")
    with pytest.raises(SideEffectError):
        await service.send("asha@example.com", "Hello", "<p>Hi</p>")


@pytest.mark.asyncio
async def test_payment_confirmation_renders_details():
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(201, json={})

    payment = SimpleNamespace(
        amount=Decimal("2500.00"),
        category="maintenance",
        transaction_id="pay_123",
        paid_date=datetime(2026, 3, 5, tzinfo=timezone.utc),
        description="March maintenance",
    )
    owner = SimpleNamespace(name="Asha Rao", email="asha@example.com")

    await make_service(handler).send_payment_confirmation(payment, owner)

    body = sent[0]
    assert body["subject"].startswith("Payment Confirmation - ")
    assert "Asha Rao" in body["htmlContent"]
    assert "pay_123" in body["htmlContent"]
    assert "March 05, 2026" in body["htmlContent"]
    assert "Maintenance" in body["htmlContent"]
