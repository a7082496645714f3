"""
Pydantic schemas for payment requests and responses.
"""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from society.fsm.states import PaymentCategory, PaymentMethod, PaymentStatus

BILLING_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class CreateOrderRequest(BaseModel):
    """Request body for POST /payments/create-order."""

    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    category: PaymentCategory
    description: Optional[str] = Field(None, max_length=200)
    due_date: Optional[date] = None
    billing_period: Optional[str] = Field(None, description="YYYY-MM")
    billing_year: Optional[int] = Field(None, ge=2000, le=2100)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @field_validator("billing_period")
    @classmethod
    def check_billing_period(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not BILLING_PERIOD_RE.match(v):
            raise ValueError("billing_period must be in YYYY-MM format")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": 2500,
                "category": "maintenance",
                "description": "Maintenance for March",
                "billing_period": "2026-03",
                "billing_year": 2026,
            }
        }
    )


class VerifyPaymentRequest(BaseModel):
    """Request body for POST /payments/verify (Razorpay checkout handler fields)."""

    razorpay_order_id: str = Field(..., min_length=1, max_length=255)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=255)
    razorpay_signature: str = Field(..., min_length=1, max_length=255)
    payment_method: Optional[PaymentMethod] = None


class PaymentOut(BaseModel):
    """Payment as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    category: PaymentCategory
    description: Optional[str] = None
    status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    due_date: Optional[date] = None
    paid_date: Optional[datetime] = None
    late_fee: Decimal = Decimal("0")
    receipt_url: Optional[str] = None
    billing_period: Optional[str] = None
    billing_year: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class GatewayOrderOut(BaseModel):
    id: str
    amount: int
    currency: str


class CreateOrderResponse(BaseModel):
    success: bool = True
    message: str = "Payment order created successfully"
    payment: PaymentOut
    gateway_order: GatewayOrderOut


class PaymentResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    payment: PaymentOut


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class PaymentListResponse(BaseModel):
    success: bool = True
    payments: List[PaymentOut]
    pagination: Pagination


class ReceiptResponse(BaseModel):
    success: bool = True
    receipt_url: str


class ReportResponse(BaseModel):
    success: bool = True
    report_url: str
    total_collected: Decimal
    count: int
