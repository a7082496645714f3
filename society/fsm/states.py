"""
State and enum definitions for payments and accounts.
"""

from enum import Enum


class PaymentStatus(str, Enum):
    """
    Lifecycle of a payment record.
    ``pending`` is the only non-terminal state.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentCategory(str, Enum):
    """What a payment is for."""

    MAINTENANCE = "maintenance"
    WATER = "water"
    ELECTRICITY = "electricity"
    AMENITY = "amenity"
    PENALTY = "penalty"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class PaymentMethod(str, Enum):
    """How the resident paid. Unknown until completion."""

    UPI = "upi"
    CARD = "card"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    CASH = "cash"

    @classmethod
    def from_gateway(cls, value: str) -> "PaymentMethod":
        """Map a Razorpay ``method`` field ("upi", "card", "emi", ...) to our enum."""
        aliases = {
            "emi": cls.CARD,
            "cardless_emi": cls.CARD,
            "paylater": cls.WALLET,
        }
        value = (value or "").lower()
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return cls.UPI


class UserRole(str, Enum):
    """Account roles. Committee members and admins see every resident's records."""

    RESIDENT = "resident"
    COMMITTEE = "committee"
    ADMIN = "admin"

    @property
    def is_privileged(self) -> bool:
        return self in (UserRole.COMMITTEE, UserRole.ADMIN)
