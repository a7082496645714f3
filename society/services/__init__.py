"""Services package."""

from society.services.user_service import UserService
from society.services.token_service import TokenService
from society.services.ledger_service import PaymentLedger, PaymentFilters, Transition
from society.services.gateway_service import RazorpayGateway, GatewayOrder
from society.services.storage_service import CloudinaryStorage, StoredObject
from society.services.email_service import EmailService
from society.services.receipt_service import ReceiptService
from society.services.post_commit import PostCommitDispatcher
from society.services.payment_service import PaymentService, VerificationResult

__all__ = [
    "UserService",
    "TokenService",
    "PaymentLedger",
    "PaymentFilters",
    "Transition",
    "RazorpayGateway",
    "GatewayOrder",
    "CloudinaryStorage",
    "StoredObject",
    "EmailService",
    "ReceiptService",
    "PostCommitDispatcher",
    "PaymentService",
    "VerificationResult",
]
