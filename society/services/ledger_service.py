"""
Payment Ledger Service - owns payment records and their state machine.

Rules enforced here:
1. Records are created ``pending`` with no gateway identifiers
2. ``pending`` moves exactly once to ``completed`` or ``failed``
3. Terminal moves are conditional UPDATEs guarded on ``status = 'pending'``,
   so concurrent callbacks for the same order cannot both win
4. ``transaction_id`` and ``gateway_order_id`` are write-once
5. Residents only ever see their own records
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from society.config import settings
from society.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from society.fsm.machine import ensure_transition
from society.fsm.states import PaymentCategory, PaymentMethod, PaymentStatus, UserRole
from society.models.payment import Payment

logger = logging.getLogger(__name__)

# Payment.amount is Numeric(10, 2)
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


@dataclass
class Transition:
    """Outcome of a terminal move. ``applied`` is False for idempotent replays."""

    payment: Payment
    applied: bool


@dataclass
class PaymentFilters:
    status: Optional[PaymentStatus] = None
    category: Optional[PaymentCategory] = None
    billing_period: Optional[str] = None
    billing_year: Optional[int] = None
    # Honoured for committee/admin only
    user_id: Optional[uuid.UUID] = None


def check_invariants(payment: Payment) -> None:
    """Raise ConflictError if a record's fields disagree with its status."""
    status = PaymentStatus(payment.status)
    if status is PaymentStatus.COMPLETED:
        if not (payment.paid_date and payment.transaction_id and payment.payment_method):
            raise ConflictError(
                f"Completed payment {payment.id} is missing paid date, transaction id or method"
            )
    elif status is PaymentStatus.FAILED and payment.paid_date is not None:
        raise ConflictError(f"Failed payment {payment.id} has a paid date")


class PaymentLedger:
    """Persistence and transition rules for payment records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        owner_id: uuid.UUID,
        amount: Union[Decimal, int, str],
        category: Union[PaymentCategory, str],
        description: Optional[str] = None,
        due_date: Optional[date] = None,
        billing_period: Optional[str] = None,
        billing_year: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Create a ``pending`` record."""
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError("Amount must be a number")
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Amount must be greater than 0")
        if amount > MAX_AMOUNT:
            raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}")
        if amount != amount.quantize(AMOUNT_QUANTUM):
            raise ValidationError("Amount cannot have more than 2 decimal places")

        try:
            category = PaymentCategory(category)
        except ValueError:
            raise ValidationError(f"Invalid payment type: {category}")

        if description is not None and len(description) > 200:
            raise ValidationError("Description cannot exceed 200 characters")
        if notes is not None and len(notes) > 500:
            raise ValidationError("Notes cannot exceed 500 characters")

        payment = Payment(
            user_id=owner_id,
            amount=amount,
            category=category.value,
            description=description,
            status=PaymentStatus.PENDING.value,
            due_date=due_date,
            billing_period=billing_period,
            billing_year=billing_year,
            notes=notes,
            late_fee=Decimal("0"),
        )
        self.db.add(payment)
        await self.db.flush()

        logger.info(f"Created payment {payment.id} ({category.value}, {amount}) for user {owner_id}")
        return payment

    async def get(self, payment_id: uuid.UUID) -> Payment:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    async def get_by_gateway_order(self, gateway_order_id: str) -> Payment:
        result = await self.db.execute(
            select(Payment).where(Payment.gateway_order_id == gateway_order_id)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    async def attach_gateway_order(self, payment_id: uuid.UUID, gateway_order_id: str) -> Payment:
        """Attach the gateway order id. Allowed once per record."""
        payment = await self.get(payment_id)
        if payment.gateway_order_id is not None:
            raise ConflictError("Payment already has a gateway order")

        result = await self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.gateway_order_id.is_(None))
            .values(gateway_order_id=gateway_order_id, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Payment already has a gateway order")

        await self.db.refresh(payment)
        return payment

    async def mark_completed(
        self,
        payment_id: uuid.UUID,
        gateway_payment_id: str,
        signature: Optional[str],
        method: Union[PaymentMethod, str],
        transaction_id: str,
        paid_at: datetime,
    ) -> Transition:
        """
        Move ``pending -> completed``.

        Replaying with the transaction id already on the record returns it
        unchanged with ``applied=False``.
        """
        payment = await self.get(payment_id)
        method = PaymentMethod(method)

        if payment.status == PaymentStatus.COMPLETED.value:
            return self._completed_replay(payment, transaction_id)
        ensure_transition(payment.status, PaymentStatus.COMPLETED)

        result = await self.db.execute(
            select(Payment.id).where(
                Payment.transaction_id == transaction_id,
                Payment.id != payment_id,
            )
        )
        if result.first() is not None:
            raise ConflictError("Transaction id is already recorded for another payment")

        try:
            result = await self.db.execute(
                update(Payment)
                .where(
                    Payment.id == payment_id,
                    Payment.status == PaymentStatus.PENDING.value,
                )
                .values(
                    status=PaymentStatus.COMPLETED.value,
                    gateway_payment_id=gateway_payment_id,
                    gateway_signature=signature,
                    payment_method=method.value,
                    transaction_id=transaction_id,
                    paid_date=paid_at,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Transaction id is already recorded for another payment")

        await self.db.refresh(payment)
        if result.rowcount == 0:
            # Another request moved the record first
            if payment.status == PaymentStatus.COMPLETED.value:
                return self._completed_replay(payment, transaction_id)
            ensure_transition(payment.status, PaymentStatus.COMPLETED)

        check_invariants(payment)
        logger.info(
            f"Payment {payment.id} completed with transaction {transaction_id}",
            extra={"payment_id": payment.id},
        )
        return Transition(payment, applied=True)

    async def mark_failed(self, payment_id: uuid.UUID) -> Transition:
        """Move ``pending -> failed``. No-op if already failed."""
        payment = await self.get(payment_id)

        if payment.status == PaymentStatus.FAILED.value:
            return Transition(payment, applied=False)
        ensure_transition(payment.status, PaymentStatus.FAILED)

        result = await self.db.execute(
            update(Payment)
            .where(
                Payment.id == payment_id,
                Payment.status == PaymentStatus.PENDING.value,
            )
            .values(
                status=PaymentStatus.FAILED.value,
                paid_date=None,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

        await self.db.refresh(payment)
        if result.rowcount == 0:
            if payment.status == PaymentStatus.FAILED.value:
                return Transition(payment, applied=False)
            ensure_transition(payment.status, PaymentStatus.FAILED)

        check_invariants(payment)
        logger.info(f"Payment {payment.id} marked failed", extra={"payment_id": payment.id})
        return Transition(payment, applied=True)

    async def attach_receipt(self, payment_id: uuid.UUID, url: str, object_id: str) -> Payment:
        """Set or replace the receipt reference of a completed record."""
        payment = await self.get(payment_id)
        if payment.status != PaymentStatus.COMPLETED.value:
            raise ConflictError("Receipt is only available for completed payments")

        result = await self.db.execute(
            update(Payment)
            .where(
                Payment.id == payment_id,
                Payment.status == PaymentStatus.COMPLETED.value,
            )
            .values(
                receipt_url=url,
                receipt_object_id=object_id,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("Receipt is only available for completed payments")

        await self.db.refresh(payment)
        return payment

    async def find(
        self,
        payment_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: Union[UserRole, str],
    ) -> Payment:
        """Fetch one record, scoped to its owner for residents."""
        payment = await self.get(payment_id)
        if not UserRole(requester_role).is_privileged and payment.user_id != requester_id:
            raise AuthorizationError("Not authorized to view this payment")
        return payment

    async def list(
        self,
        filters: PaymentFilters,
        requester_id: uuid.UUID,
        requester_role: Union[UserRole, str],
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Payment], int]:
        """
        Newest-first page of records matching ``filters``.

        Returns (records, total matching count).
        """
        page_size = page_size or settings.default_page_size
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        if page_size < 1 or page_size > settings.max_page_size:
            raise ValidationError(f"Limit must be between 1 and {settings.max_page_size}")

        query = self._scoped_query(filters, requester_id, requester_role)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            query.order_by(desc(Payment.created_at))
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return list(result.scalars().all()), total

    async def list_all(
        self,
        filters: PaymentFilters,
        requester_id: uuid.UUID,
        requester_role: Union[UserRole, str],
    ) -> List[Payment]:
        """Every matching record, unpaginated (reports)."""
        query = self._scoped_query(filters, requester_id, requester_role)
        result = await self.db.execute(query.order_by(desc(Payment.created_at)))
        return list(result.scalars().all())

    def _scoped_query(self, filters, requester_id, requester_role):
        query = select(Payment)

        if UserRole(requester_role).is_privileged:
            if filters.user_id:
                query = query.where(Payment.user_id == filters.user_id)
        else:
            query = query.where(Payment.user_id == requester_id)

        if filters.status:
            query = query.where(Payment.status == PaymentStatus(filters.status).value)
        if filters.category:
            query = query.where(Payment.category == PaymentCategory(filters.category).value)
        if filters.billing_period:
            query = query.where(Payment.billing_period == filters.billing_period)
        if filters.billing_year:
            query = query.where(Payment.billing_year == filters.billing_year)
        return query

    def _completed_replay(self, payment: Payment, transaction_id: str) -> Transition:
        if payment.transaction_id == transaction_id:
            logger.info(f"Payment {payment.id} already completed, replay ignored")
            return Transition(payment, applied=False)
        raise ConflictError("Payment is already completed with a different transaction")
