"""
Receipt Service - renders receipts and payment reports and stores them.
"""

import uuid
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from jinja2 import TemplateError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from society.config import settings
from society.errors import SideEffectError
from society.fsm.states import PaymentCategory, PaymentStatus
from society.models.payment import Payment
from society.models.user import User
from society.rendering import format_day, render
from society.services.ledger_service import PaymentLedger
from society.services.storage_service import CloudinaryStorage, StoredObject
from society.services.user_service import UserService

logger = logging.getLogger(__name__)


class ReceiptService:
    """Builds receipt/report HTML and uploads it to storage."""

    def __init__(
        self,
        storage: CloudinaryStorage,
        session_factory: Optional[async_sessionmaker] = None,
        society_name: Optional[str] = None,
    ):
        self.storage = storage
        self.session_factory = session_factory
        self.society_name = society_name or settings.society_name

    async def issue(self, payment_id: uuid.UUID) -> Payment:
        """
        Generate, upload and attach the receipt for a completed payment.

        Runs in its own session so it can be dispatched after the request
        that completed the payment has committed. Raises SideEffectError.
        """
        if self.session_factory is None:
            raise SideEffectError("Receipt storage session is not configured")

        async with self.session_factory() as session:
            payment = await self.issue_in_session(session, payment_id)
            await session.commit()
        return payment

    async def issue_in_session(self, session: AsyncSession, payment_id: uuid.UUID) -> Payment:
        ledger = PaymentLedger(session)
        payment = await ledger.get(payment_id)
        if payment.status != PaymentStatus.COMPLETED.value:
            raise SideEffectError("Receipt not available for incomplete payments")

        owner = await UserService(session).get_user_by_id(payment.user_id)
        html = self.render_receipt(payment, owner)
        stored = await self.storage.upload(
            html.encode("utf-8"),
            settings.receipts_folder,
            filename=f"receipt-{payment.id}",
        )
        payment = await ledger.attach_receipt(payment.id, stored.url, stored.object_id)
        logger.info(f"Receipt attached to payment {payment.id}", extra={"payment_id": payment.id})
        return payment

    def render_receipt(self, payment: Payment, owner: Optional[User]) -> str:
        try:
            return render(
                "receipt.html",
                society_name=self.society_name,
                payment=payment,
                owner=owner,
                paid_on=format_day(payment.paid_date),
                category=PaymentCategory(payment.category).display_name,
                method=(payment.payment_method or "Online").upper(),
            )
        except TemplateError as e:
            logger.error(f"Receipt template failed: {e}")
            raise SideEffectError("Failed to generate receipt")

    async def generate_report(
        self,
        payments: List[Payment],
        owners: Dict[uuid.UUID, User],
    ) -> Tuple[StoredObject, Decimal]:
        """Render and upload a report. Returns (stored report, total collected)."""
        html, total = self.render_report(payments, owners)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        stored = await self.storage.upload(
            html.encode("utf-8"),
            settings.reports_folder,
            filename=f"payment-report-{stamp}",
        )
        return stored, total

    def render_report(
        self,
        payments: List[Payment],
        owners: Dict[uuid.UUID, User],
    ) -> Tuple[str, Decimal]:
        total = Decimal("0")
        rows = []
        for payment in payments:
            if payment.status == PaymentStatus.COMPLETED.value:
                total += payment.amount
            owner = owners.get(payment.user_id)
            rows.append({
                "date": format_day(payment.paid_date or payment.created_at),
                "name": owner.name if owner else "-",
                "flat": owner.flat_label if owner else "-",
                "category": payment.category,
                "amount": payment.amount,
                "status": payment.status,
                "method": payment.payment_method or "Online",
            })

        try:
            html = render(
                "report.html",
                society_name=self.society_name,
                generated_on=format_day(datetime.now(timezone.utc)),
                rows=rows,
                total_collected=total,
            )
        except TemplateError as e:
            logger.error(f"Report template failed: {e}")
            raise SideEffectError("Failed to generate report")
        return html, total
