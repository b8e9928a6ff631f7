"""
Stock movement classification and sign rules.

Responsibility:
    Declares the movement types and which delta signs each may carry.
    Pure validation; the StockLedger applies it before touching the database.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from enum import Enum

from ledger_kernel.exceptions import ValidationError


class MovementType(str, Enum):
    """Why a product's stock changed."""

    PURCHASE = "purchase"
    RETURN = "return"
    LOSS = "loss"
    ADJUSTMENT = "adjustment"
    SALE = "sale"


# +1: delta must be positive, -1: must be negative, 0: either sign
_REQUIRED_SIGN: dict[MovementType, int] = {
    MovementType.PURCHASE: 1,
    MovementType.RETURN: 1,
    MovementType.LOSS: -1,
    MovementType.SALE: -1,
    MovementType.ADJUSTMENT: 0,
}


def parse_movement_type(value: MovementType | str) -> MovementType:
    """Coerce a string to MovementType, raising ValidationError on unknown values."""
    try:
        return MovementType(value)
    except ValueError:
        allowed = ", ".join(m.value for m in MovementType)
        raise ValidationError(
            "movement_type", f"{value!r} is not one of: {allowed}"
        ) from None


def validate_delta(movement_type: MovementType, delta: int) -> None:
    """
    Check a delta against the sign rule of its movement type.

    Raises:
        ValidationError: delta is not an int, is zero, or has the wrong sign.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta", "must be a whole number of units")
    if delta == 0:
        raise ValidationError("delta", "must not be zero")

    required = _REQUIRED_SIGN[movement_type]
    if required > 0 and delta < 0:
        raise ValidationError(
            "delta", f"{movement_type.value} movements must be positive"
        )
    if required < 0 and delta > 0:
        raise ValidationError(
            "delta", f"{movement_type.value} movements must be negative"
        )
