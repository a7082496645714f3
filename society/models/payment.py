"""Payment model - one record per requested payment, from order to receipt."""

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Numeric, Integer, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column

from society.database import Base
from society.fsm.states import PaymentStatus
from society.models.user import utcnow


class Payment(Base):
    """
    Payment record.

    Created ``pending`` with no gateway identifiers, moves once to
    ``completed`` or ``failed``. ``amount`` and ``gateway_order_id`` are
    write-once; ``transaction_id`` is unique among non-null values.
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_user_created", "user_id", "created_at"),
        Index("ix_payments_period", "billing_period", "billing_year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Major currency units (rupees); the gateway receives minor units
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Unique when present (NULLs never collide)
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    gateway_order_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    gateway_payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    gateway_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    paid_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    late_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        default=Decimal("0"),
        nullable=False,
    )

    receipt_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    receipt_object_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # "YYYY-MM"
    billing_period: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    billing_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    @property
    def has_receipt(self) -> bool:
        return bool(self.receipt_url)

    @property
    def amount_minor_units(self) -> int:
        """Amount in paise for the gateway."""
        return int((self.amount * 100).to_integral_value())

    def __repr__(self) -> str:
        return f"<Payment {self.id} {self.status} {self.amount}>"
