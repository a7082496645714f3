"""
Payment Service - end-to-end payment flow.

create_order: ledger record (pending) -> Razorpay order -> attach order id
verify:       signature check -> completed/failed -> post-commit side effects

The status transition is committed before any side effect is dispatched;
receipt and email failures are logged by the dispatcher and never undo or
fail a committed payment.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from society.errors import (
    AuthorizationError,
    GatewayConfigurationError,
    SideEffectError,
    ValidationError,
)
from society.fsm.states import PaymentCategory, PaymentMethod, PaymentStatus, UserRole
from society.models.payment import Payment
from society.services.email_service import EmailService
from society.services.gateway_service import GatewayOrder, RazorpayGateway
from society.services.ledger_service import PaymentFilters, PaymentLedger, Transition
from society.services.post_commit import PostCommitDispatcher
from society.services.receipt_service import ReceiptService
from society.services.storage_service import StoredObject
from society.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    payment: Payment
    verified: bool


@dataclass
class ReportResult:
    report: StoredObject
    total_collected: Decimal
    count: int


class PaymentService:
    """Orchestrates the ledger, the gateway and post-payment side effects."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: RazorpayGateway,
        receipts: ReceiptService,
        notifier: EmailService,
        dispatcher: PostCommitDispatcher,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.db = db
        self.ledger = PaymentLedger(db)
        self.gateway = gateway
        self.receipts = receipts
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.session_factory = session_factory or receipts.session_factory

    async def create_order(
        self,
        owner_id: uuid.UUID,
        amount: Union[Decimal, int, str],
        category: Union[PaymentCategory, str],
        description: Optional[str] = None,
        due_date: Optional[date] = None,
        billing_period: Optional[str] = None,
        billing_year: Optional[int] = None,
    ) -> Tuple[Payment, GatewayOrder]:
        """
        Create a pending payment and open the matching Razorpay order.

        The record is committed before the gateway call so a gateway failure
        leaves a pending record without an order id rather than nothing.
        """
        payment = await self.ledger.create(
            owner_id=owner_id,
            amount=amount,
            category=category,
            description=description,
            due_date=due_date,
            billing_period=billing_period,
            billing_year=billing_year,
        )
        await self.db.commit()

        order = await self.gateway.open_order(payment.amount_minor_units, str(payment.id))

        payment = await self.ledger.attach_gateway_order(payment.id, order.id)
        await self.db.commit()
        return payment, order

    async def verify(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        provided_signature: str,
        method: Optional[Union[PaymentMethod, str]] = None,
        requester_id: Optional[uuid.UUID] = None,
        requester_role: Optional[Union[UserRole, str]] = None,
    ) -> VerificationResult:
        """Verify a checkout completion and move the payment to a terminal state."""
        payment = await self.ledger.get_by_gateway_order(gateway_order_id)

        if requester_role is not None and not UserRole(requester_role).is_privileged:
            if payment.user_id != requester_id:
                raise AuthorizationError("Not authorized to verify this payment")

        try:
            valid = self.gateway.verify_signature(
                gateway_order_id, gateway_payment_id, provided_signature
            )
        except GatewayConfigurationError:
            logger.error(
                "Razorpay key secret missing; payment marked failed",
                extra={"payment_id": payment.id, "order_id": gateway_order_id},
            )
            if payment.status == PaymentStatus.PENDING.value:
                await self.ledger.mark_failed(payment.id)
                await self.db.commit()
            raise

        if not valid:
            logger.warning(
                f"Invalid signature for order {gateway_order_id}",
                extra={"payment_id": payment.id, "order_id": gateway_order_id},
            )
            transition = await self.ledger.mark_failed(payment.id)
            await self.db.commit()
            return VerificationResult(transition.payment, verified=False)

        transition = await self._complete(
            payment,
            gateway_payment_id,
            provided_signature,
            PaymentMethod(method) if method else PaymentMethod.UPI,
        )
        return VerificationResult(transition.payment, verified=True)

    async def confirm_from_gateway(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        method: str,
    ) -> Transition:
        """Complete a payment from a webhook whose body signature was already checked."""
        payment = await self.ledger.get_by_gateway_order(gateway_order_id)
        return await self._complete(
            payment,
            gateway_payment_id,
            None,
            PaymentMethod.from_gateway(method),
        )

    async def receipt_for(
        self,
        payment_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: Union[UserRole, str],
    ) -> str:
        """Return the receipt URL, generating it now if it is missing."""
        payment = await self.ledger.find(payment_id, requester_id, requester_role)
        if payment.status != PaymentStatus.COMPLETED.value:
            raise ValidationError("Receipt not available for incomplete payments")

        if payment.receipt_url:
            return payment.receipt_url

        payment = await self.receipts.issue_in_session(self.db, payment.id)
        await self.db.commit()
        return payment.receipt_url

    async def report(
        self,
        filters: PaymentFilters,
        requester_id: uuid.UUID,
        requester_role: Union[UserRole, str],
    ) -> ReportResult:
        """Render and upload a report of all matching payments."""
        payments = await self.ledger.list_all(filters, requester_id, requester_role)
        owners = await UserService(self.db).get_users_by_ids(p.user_id for p in payments)
        stored, total = await self.receipts.generate_report(payments, owners)
        return ReportResult(report=stored, total_collected=total, count=len(payments))

    async def _complete(
        self,
        payment: Payment,
        gateway_payment_id: str,
        signature: Optional[str],
        method: PaymentMethod,
    ) -> Transition:
        transition = await self.ledger.mark_completed(
            payment.id,
            gateway_payment_id=gateway_payment_id,
            signature=signature,
            method=method,
            transaction_id=gateway_payment_id,
            paid_at=datetime.now(timezone.utc),
        )
        await self.db.commit()

        if transition.applied:
            self._dispatch_side_effects(transition.payment)
        return transition

    def _dispatch_side_effects(self, payment: Payment) -> None:
        payment_id = payment.id
        self.dispatcher.dispatch(
            f"receipt:{payment_id}",
            lambda: self.receipts.issue(payment_id),
        )
        self.dispatcher.dispatch(
            f"email:{payment_id}",
            lambda: self._send_confirmation(payment),
        )

    async def _send_confirmation(self, payment: Payment) -> None:
        if self.session_factory is None:
            raise SideEffectError("No session available to look up the payment owner")

        async with self.session_factory() as session:
            owner = await UserService(session).get_user_by_id(payment.user_id)
        if owner is None:
            raise SideEffectError(f"Owner of payment {payment.id} not found")

        await self.notifier.send_payment_confirmation(payment, owner)
