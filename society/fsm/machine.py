"""
Payment state machine - strict transitions out of ``pending`` only.
"""

from typing import Dict, FrozenSet

from society.errors import ConflictError
from society.fsm.states import PaymentStatus

ALLOWED_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Return True if ``current -> target`` is a legal move."""
    return target in ALLOWED_TRANSITIONS[PaymentStatus(current)]


def ensure_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    """Raise ConflictError unless ``current -> target`` is a legal move."""
    current = PaymentStatus(current)
    target = PaymentStatus(target)
    if not can_transition(current, target):
        raise ConflictError(
            f"Payment is already {current.value} and cannot become {target.value}"
        )
