"""User model - resident identity, role and credential hash."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Boolean, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from society.database import Base
from society.fsm.states import UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    One account per resident email.
    A flat (number + wing) may be registered only once.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("flat_number", "wing", name="uq_users_flat_wing"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    # Stored lower-cased
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    flat_number: Mapped[str] = mapped_column(String(10), nullable=False)

    wing: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    floor: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.RESIDENT.value,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

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
    def flat_label(self) -> str:
        """Flat number with wing, e.g. "101, Wing A"."""
        if self.wing:
            return f"{self.flat_number}, Wing {self.wing}"
        return self.flat_number

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
