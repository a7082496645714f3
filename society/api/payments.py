"""
Payments API - order creation, checkout verification, listing and receipts.
"""

import math
import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from society.api.deps import (
    CurrentUser,
    get_current_user,
    get_payment_service,
    require_committee,
    require_database,
)
from society.config import settings
from society.database import get_db
from society.fsm.states import PaymentCategory, PaymentStatus
from society.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    GatewayOrderOut,
    Pagination,
    PaymentListResponse,
    PaymentOut,
    PaymentResponse,
    ReceiptResponse,
    ReportResponse,
    VerifyPaymentRequest,
)
from society.services.ledger_service import PaymentFilters, PaymentLedger
from society.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])
logger = logging.getLogger(__name__)


def payment_filters(
    status: Optional[PaymentStatus] = Query(None),
    category: Optional[PaymentCategory] = Query(None),
    billing_period: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    billing_year: Optional[int] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
) -> PaymentFilters:
    return PaymentFilters(
        status=status,
        category=category,
        billing_period=billing_period,
        billing_year=billing_year,
        user_id=user_id,
    )


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_database)],
)
async def create_order(
    body: CreateOrderRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a pending payment and its Razorpay order."""
    payment, order = await service.create_order(
        owner_id=current_user.id,
        amount=body.amount,
        category=body.category,
        description=body.description,
        due_date=body.due_date,
        billing_period=body.billing_period,
        billing_year=body.billing_year,
    )
    return CreateOrderResponse(
        payment=PaymentOut.model_validate(payment),
        gateway_order=GatewayOrderOut(id=order.id, amount=order.amount, currency=order.currency),
    )


@router.post(
    "/verify",
    response_model=PaymentResponse,
    dependencies=[Depends(require_database)],
)
async def verify_payment(
    body: VerifyPaymentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Verify the Razorpay checkout signature and settle the payment."""
    result = await service.verify(
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
        method=body.payment_method,
        requester_id=current_user.id,
        requester_role=current_user.role,
    )

    if not result.verified:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Payment verification failed"},
        )

    return PaymentResponse(
        message="Payment verified successfully",
        payment=PaymentOut.model_validate(result.payment),
    )


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    filters: PaymentFilters = Depends(payment_filters),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Residents see their own payments; committee and admins see everyone's."""
    payments, total = await PaymentLedger(db).list(
        filters,
        current_user.id,
        current_user.role,
        page=page,
        page_size=limit,
    )
    return PaymentListResponse(
        payments=[PaymentOut.model_validate(p) for p in payments],
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


@router.get("/report", response_model=ReportResponse)
async def payment_report(
    filters: PaymentFilters = Depends(payment_filters),
    current_user: CurrentUser = Depends(require_committee),
    service: PaymentService = Depends(get_payment_service),
):
    """Generate a payment report for the committee."""
    result = await service.report(filters, current_user.id, current_user.role)
    return ReportResponse(
        report_url=result.report.url,
        total_collected=result.total_collected,
        count=result.count,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentLedger(db).find(payment_id, current_user.id, current_user.role)
    return PaymentResponse(payment=PaymentOut.model_validate(payment))


@router.get("/{payment_id}/receipt", response_model=ReceiptResponse)
async def download_receipt(
    payment_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Return the receipt URL, generating the receipt if it was never stored."""
    receipt_url = await service.receipt_for(payment_id, current_user.id, current_user.role)
    return ReceiptResponse(receipt_url=receipt_url)
