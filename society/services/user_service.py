"""
User Service - registration, credential checks and account lookups.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from society.errors import AuthenticationError, ConflictError
from society.fsm.states import UserRole
from society.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class UserService:
    """Service for resident accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str,
        flat_number: str,
        wing: Optional[str] = None,
        floor: Optional[int] = None,
        role: UserRole = UserRole.RESIDENT,
    ) -> User:
        """Create a new account. Email and flat must both be unused."""
        email = self._normalize_email(email)

        if await self.get_user_by_email(email):
            raise ConflictError("User already exists with this email")

        result = await self.db.execute(
            select(User).where(User.flat_number == flat_number, User.wing == wing)
        )
        if result.scalar_one_or_none():
            raise ConflictError("This flat is already registered")

        user = User(
            name=name,
            email=email,
            password_hash=pwd_context.hash(password),
            phone=phone,
            flat_number=flat_number,
            wing=wing,
            floor=floor,
            role=role.value,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info(f"Registered user {user.id} for flat {user.flat_label}")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials and stamp ``last_login``."""
        user = await self.get_user_by_email(self._normalize_email(email))
        if not user:
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated. Please contact admin.")

        if not pwd_context.verify(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")

        user.last_login = datetime.now(timezone.utc)
        await self.db.flush()
        return user

    async def record_logout(self, user_id: uuid.UUID) -> None:
        user = await self.get_user_by_id(user_id)
        if user:
            user.last_login = datetime.now(timezone.utc)
            await self.db.flush()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_users_by_ids(self, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, User]:
        """Batch lookup used when rendering reports."""
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    def _normalize_email(self, email: str) -> str:
        return email.strip().lower()
