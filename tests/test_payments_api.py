"""
Tests for the payment routes.
"""

import uuid
from decimal import Decimal

import pytest

from society.fsm.states import UserRole
from tests.conftest import sign


async def create_order(client, headers, **overrides):
    body = {"amount": 500, "category": "maintenance", "billing_period": "2026-03", "billing_year": 2026}
    body.update(overrides)
    return await client.post("/api/payments/create-order", json=body, headers=headers)


@pytest.mark.asyncio
async def test_create_order(client, make_user, auth_headers):
    user = await make_user()

    response = await create_order(client, auth_headers(user), description="  March  ")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["payment"]["status"] == "pending"
    assert body["payment"]["user_id"] == str(user.id)
    assert body["payment"]["description"] == "March"
    assert Decimal(body["payment"]["amount"]) == Decimal("500")
    assert body["gateway_order"] == {"id": "order_1", "amount": 50000, "currency": "INR"}
    assert body["payment"]["gateway_order_id"] == "order_1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": 0},
        {"amount": -5},
        {"category": "parking"},
        {"billing_period": "2026-13"},
        {"description": "x" * 201},
    ],
)
async def test_create_order_validation(client, make_user, auth_headers, overrides):
    user = await make_user()

    response = await create_order(client, auth_headers(user), **overrides)

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_create_order_requires_auth(client):
    response = await create_order(client, {})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_order_gateway_failure(client, make_user, auth_headers, razorpay_client):
    user = await make_user()
    razorpay_client.order.error = RuntimeError("Authentication failed")

    response = await create_order(client, auth_headers(user))

    assert response.status_code == 502
    assert response.json()["message"] == "Failed to create payment order"


@pytest.mark.asyncio
async def test_verify_success(client, make_user, auth_headers, dispatcher, storage, notifier):
    user = await make_user()
    headers = auth_headers(user)
    await create_order(client, headers)

    response = await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": sign("order_1", "pay_1"),
        },
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Payment verified successfully"
    assert body["payment"]["status"] == "completed"
    assert body["payment"]["transaction_id"] == "pay_1"
    assert body["payment"]["payment_method"] == "upi"

    await dispatcher.drain()
    assert len(storage.uploads) == 1
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_verify_bad_signature(client, make_user, auth_headers):
    user = await make_user()
    headers = auth_headers(user)
    created = await create_order(client, headers)
    payment_id = created.json()["payment"]["id"]

    response = await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "forged",
        },
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Payment verification failed"}

    stored = await client.get(f"/api/payments/{payment_id}", headers=headers)
    assert stored.json()["payment"]["status"] == "failed"

    retry = await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": sign("order_1", "pay_1"),
        },
        headers=headers,
    )
    assert retry.status_code == 409


@pytest.mark.asyncio
async def test_verify_unknown_order(client, make_user, auth_headers):
    user = await make_user()

    response = await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_missing",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "sig",
        },
        headers=auth_headers(user),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Payment not found"


@pytest.mark.asyncio
async def test_list_is_scoped_for_residents(client, make_user, auth_headers):
    owner = await make_user()
    neighbour = await make_user()
    committee = await make_user(role=UserRole.COMMITTEE)
    await create_order(client, auth_headers(owner))
    await create_order(client, auth_headers(owner), category="water")
    await create_order(client, auth_headers(neighbour))

    own = await client.get(
        "/api/payments",
        params={"user_id": str(neighbour.id)},
        headers=auth_headers(owner),
    )
    assert own.status_code == 200
    body = own.json()
    assert body["pagination"] == {"current": 1, "pages": 1, "total": 2}
    assert {p["user_id"] for p in body["payments"]} == {str(owner.id)}

    everyone = await client.get("/api/payments", headers=auth_headers(committee))
    assert everyone.json()["pagination"]["total"] == 3

    water = await client.get(
        "/api/payments",
        params={"category": "water", "limit": 1},
        headers=auth_headers(committee),
    )
    assert water.json()["pagination"] == {"current": 1, "pages": 1, "total": 1}


@pytest.mark.asyncio
async def test_list_pages(client, make_user, auth_headers):
    user = await make_user()
    headers = auth_headers(user)
    for _ in range(3):
        await create_order(client, headers)

    response = await client.get("/api/payments", params={"page": 2, "limit": 2}, headers=headers)

    body = response.json()
    assert body["pagination"] == {"current": 2, "pages": 2, "total": 3}
    assert len(body["payments"]) == 1


@pytest.mark.asyncio
async def test_get_payment_of_other_resident_forbidden(client, make_user, auth_headers):
    owner = await make_user()
    neighbour = await make_user()
    created = await create_order(client, auth_headers(owner))
    payment_id = created.json()["payment"]["id"]

    response = await client.get(f"/api/payments/{payment_id}", headers=auth_headers(neighbour))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_unknown_payment(client, make_user, auth_headers):
    user = await make_user()

    response = await client.get(f"/api/payments/{uuid.uuid4()}", headers=auth_headers(user))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_receipt_flow(client, make_user, auth_headers, dispatcher, storage):
    user = await make_user()
    headers = auth_headers(user)
    created = await create_order(client, headers)
    payment_id = created.json()["payment"]["id"]

    pending = await client.get(f"/api/payments/{payment_id}/receipt", headers=headers)
    assert pending.status_code == 400

    storage.fail = True
    await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": sign("order_1", "pay_1"),
        },
        headers=headers,
    )
    await dispatcher.drain()
    storage.fail = False

    response = await client.get(f"/api/payments/{payment_id}/receipt", headers=headers)

    assert response.status_code == 200
    assert response.json()["receipt_url"].endswith(f"receipt-{payment_id}.html")


@pytest.mark.asyncio
async def test_report_requires_committee(client, make_user, auth_headers):
    resident = await make_user()

    response = await client.get("/api/payments/report", headers=auth_headers(resident))

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Committee access required."


@pytest.mark.asyncio
async def test_report_for_committee(client, make_user, auth_headers, dispatcher, storage):
    resident = await make_user()
    committee = await make_user(role=UserRole.ADMIN)
    await create_order(client, auth_headers(resident), amount=1200)
    await client.post(
        "/api/payments/verify",
        json={
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": sign("order_1", "pay_1"),
        },
        headers=auth_headers(resident),
    )
    await dispatcher.drain()

    response = await client.get(
        "/api/payments/report",
        params={"billing_period": "2026-03"},
        headers=auth_headers(committee),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert Decimal(body["total_collected"]) == Decimal("1200")
    assert body["report_url"].startswith("https://files.example.com/reports/payment-report-")
