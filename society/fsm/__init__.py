"""FSM package for payment state management."""

from society.fsm.states import PaymentStatus, PaymentCategory, PaymentMethod, UserRole
from society.fsm.machine import can_transition, ensure_transition

__all__ = [
    "PaymentStatus",
    "PaymentCategory",
    "PaymentMethod",
    "UserRole",
    "can_transition",
    "ensure_transition",
]
