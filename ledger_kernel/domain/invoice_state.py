"""
Invoice lifecycle state machine.

Responsibility:
    The explicit, exhaustive transition table for invoice status, and the
    single validation function every status change goes through.  Call sites
    never compare status strings to decide whether a transition is legal.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

State machine:
    DRAFT -> CONFIRMED   (ConfirmationEngine.confirm)
    DRAFT -> VOID        (ConfirmationEngine.void)
    CONFIRMED, VOID      terminal
"""

from enum import Enum
from typing import Any

from ledger_kernel.exceptions import InvalidStateError


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    VOID = "void"


VALID_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.CONFIRMED, InvoiceStatus.VOID}),
    # Terminal states
    InvoiceStatus.CONFIRMED: frozenset(),
    InvoiceStatus.VOID: frozenset(),
}

TERMINAL_STATES: frozenset[InvoiceStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)


def can_transition(current: InvoiceStatus | str, target: InvoiceStatus | str) -> bool:
    """True if current -> target is in VALID_TRANSITIONS."""
    return InvoiceStatus(target) in VALID_TRANSITIONS[InvoiceStatus(current)]


def validate_transition(
    invoice_id: Any,
    current: InvoiceStatus | str,
    target: InvoiceStatus | str,
) -> None:
    """
    Raise InvalidStateError unless current -> target is allowed.

    Postconditions: Returns None if the transition is valid.
    """
    current_status = InvoiceStatus(current)
    target_status = InvoiceStatus(target)
    if target_status not in VALID_TRANSITIONS[current_status]:
        raise InvalidStateError(
            invoice_id,
            current=current_status.value,
            target=target_status.value,
        )
