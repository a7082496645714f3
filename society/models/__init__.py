"""Models package for database models."""

from society.models.user import User
from society.models.payment import Payment

__all__ = [
    "User",
    "Payment",
]
