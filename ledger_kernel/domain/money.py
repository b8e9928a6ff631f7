"""
Money helpers.

Responsibility:
    The conversion and rounding rules for every monetary value in the
    ledger.  Prices, line totals, tax and invoice totals are Decimal end to
    end; floats are refused at the boundary.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - round_money() is the only sanctioned rounding function for money.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Convert an int, str or Decimal to a Decimal amount.

    Raises:
        TypeError: If value is a float, a bool or another unsupported type.
        ValueError: If a string cannot be parsed as a number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary values must not be {type(value).__name__}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        try:
            return Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    raise TypeError(f"Unsupported monetary type: {type(value).__name__}")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the given number of decimal places."""
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
