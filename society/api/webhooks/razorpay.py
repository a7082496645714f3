"""
Razorpay Webhook Handler.
Verifies the body signature and settles payments the checkout flow missed.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request

from society.api.deps import get_gateway, get_payment_service
from society.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from society.services.gateway_service import RazorpayGateway
from society.services.payment_service import PaymentService

router = APIRouter()
logger = logging.getLogger(__name__)

CAPTURE_EVENTS = ("payment.captured", "order.paid")


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    gateway: RazorpayGateway = Depends(get_gateway),
    payment_service: PaymentService = Depends(get_payment_service),
):
    """
    Handle Razorpay webhook events.

    Key events:
    - payment.captured / order.paid: complete the matching pending payment
    - payment.failed: logged only; Razorpay lets the customer retry the order
    """
    # Get raw body for signature verification
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature", "")

    if not gateway.verify_webhook_signature(body, signature):
        logger.error("Invalid Razorpay webhook signature")
        raise AuthenticationError("Invalid signature")

    try:
        payload = json.loads(body.decode("utf-8"))
    except ValueError:
        # UnicodeDecodeError included
        raise ValidationError("Invalid webhook payload")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid webhook payload")

    event_type = payload.get("event")
    logger.info(f"Razorpay webhook received: {event_type}")

    if event_type in CAPTURE_EVENTS:
        await handle_payment_captured(payload, payment_service)
    elif event_type == "payment.failed":
        entity = payment_entity(payload)
        logger.warning(
            f"Razorpay reported failed attempt {entity.get('id')} for order {entity.get('order_id')}",
            extra={"order_id": entity.get("order_id")},
        )
    else:
        logger.info(f"Unhandled Razorpay event: {event_type}")

    return {"status": "ok"}


def payment_entity(payload: dict) -> dict:
    return payload.get("payload", {}).get("payment", {}).get("entity", {})


async def handle_payment_captured(payload: dict, payment_service: PaymentService) -> None:
    """Complete the payment for a captured Razorpay payment."""
    entity = payment_entity(payload)
    order_id = entity.get("order_id")
    payment_id = entity.get("id")

    if not order_id or not payment_id:
        logger.info("Captured event without order or payment id ignored")
        return

    try:
        transition = await payment_service.confirm_from_gateway(
            order_id,
            payment_id,
            entity.get("method", ""),
        )
    except NotFoundError:
        # Orders not created by this service
        logger.info(f"No payment for Razorpay order {order_id}", extra={"order_id": order_id})
        return
    except ConflictError as e:
        logger.error(
            f"Webhook for order {order_id} conflicts with ledger: {e.message}",
            extra={"order_id": order_id},
        )
        return

    if transition.applied:
        logger.info(
            f"Payment {transition.payment.id} completed from webhook",
            extra={"payment_id": transition.payment.id, "order_id": order_id},
        )
