"""
Shared FastAPI dependencies: process-wide clients, authentication, roles.
"""

import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from society.database import DatabaseSupervisor, async_session_maker, get_db, supervisor
from society.errors import AuthenticationError, AuthorizationError, ServiceUnavailableError
from society.fsm.states import UserRole
from society.services.email_service import EmailService
from society.services.gateway_service import RazorpayGateway
from society.services.payment_service import PaymentService
from society.services.post_commit import PostCommitDispatcher
from society.services.receipt_service import ReceiptService
from society.services.storage_service import CloudinaryStorage
from society.services.token_service import TokenService
from society.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """The authenticated subject injected into protected routes."""

    id: uuid.UUID
    role: UserRole
    is_active: bool
    name: str
    email: str


# Built once per process and reused across requests


@lru_cache
def get_token_service() -> TokenService:
    return TokenService()


@lru_cache
def get_gateway() -> RazorpayGateway:
    return RazorpayGateway.from_settings()


@lru_cache
def get_storage() -> CloudinaryStorage:
    return CloudinaryStorage.from_settings()


@lru_cache
def get_email_service() -> EmailService:
    return EmailService.from_settings()


@lru_cache
def get_dispatcher() -> PostCommitDispatcher:
    return PostCommitDispatcher.from_settings()


def get_session_factory() -> Optional[async_sessionmaker]:
    return async_session_maker


def get_supervisor() -> DatabaseSupervisor:
    return supervisor


async def require_database(
    db_supervisor: DatabaseSupervisor = Depends(get_supervisor),
) -> None:
    """Block writes while the database supervisor reports it unreachable."""
    if not db_supervisor.healthy:
        raise ServiceUnavailableError("Database is unavailable, please retry shortly")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentUser:
    """Resolve ``Authorization: Bearer <token>`` to an active account."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized, no token")

    user_id = tokens.decode(credentials.credentials)
    user = await UserService(db).get_user_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated. Please contact admin.")

    return CurrentUser(
        id=user.id,
        role=UserRole(user.role),
        is_active=user.is_active,
        name=user.name,
        email=user.email,
    )


async def require_committee(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Committee members and admins only."""
    if not current_user.role.is_privileged:
        raise AuthorizationError("Access denied. Committee access required.")
    return current_user


def get_receipt_service(
    storage: CloudinaryStorage = Depends(get_storage),
    session_factory: Optional[async_sessionmaker] = Depends(get_session_factory),
) -> ReceiptService:
    return ReceiptService(storage, session_factory)


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    receipts: ReceiptService = Depends(get_receipt_service),
    notifier: EmailService = Depends(get_email_service),
    dispatcher: PostCommitDispatcher = Depends(get_dispatcher),
) -> PaymentService:
    return PaymentService(db, gateway, receipts, notifier, dispatcher)
