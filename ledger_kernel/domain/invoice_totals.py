"""
Invoice arithmetic.

Responsibility:
    Line totals, subtotal and total for a draft.  Pure functions over
    Decimal; the builder persists whatever these return, so the stored
    invoice satisfies total == subtotal + tax and
    subtotal == sum(line_total) by construction.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ledger_kernel.domain.money import round_money


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    """quantity x unit_price, at money precision."""
    return round_money(unit_price * quantity)


def subtotal_of(line_totals: Iterable[Decimal]) -> Decimal:
    return round_money(sum(line_totals, Decimal("0")))


def compute_totals(line_totals: Iterable[Decimal], tax: Decimal) -> InvoiceTotals:
    subtotal = subtotal_of(line_totals)
    tax = round_money(tax)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def totals_consistent(
    line_totals: Iterable[Decimal],
    subtotal: Decimal,
    tax: Decimal,
    total: Decimal,
) -> bool:
    """True if a stored invoice still satisfies the totals invariant."""
    return subtotal_of(line_totals) == subtotal and subtotal + tax == total
