"""
Tax policies -- pluggable ``compute_tax(subtotal, customer)``.

Responsibility:
    Turns an invoice subtotal into a tax amount.  The builder calls exactly
    one policy per draft; which one is a configuration choice
    (``invoicing.tax.policy``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Receives CustomerInfo DTOs, never
    ORM rows.

Invariants enforced:
    - Tax is a Decimal rounded with round_money(); never negative.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Callable

from ledger_kernel.domain.money import round_money, to_money

if TYPE_CHECKING:
    from ledger_kernel.domain.dtos import CustomerInfo


class TaxPolicy(ABC):
    """Strategy interface for invoice tax."""

    name: str = "abstract"

    @abstractmethod
    def compute_tax(self, subtotal: Decimal, customer: CustomerInfo) -> Decimal:
        ...


class ZeroTaxPolicy(TaxPolicy):
    """Default policy: no tax."""

    name = "zero"

    def compute_tax(self, subtotal: Decimal, customer: CustomerInfo) -> Decimal:
        return round_money(Decimal("0"))


class FlatRateTaxPolicy(TaxPolicy):
    """A single percentage applied to the subtotal, e.g. rate=Decimal("0.20")."""

    name = "flat_rate"

    def __init__(self, rate: Decimal | int | str):
        rate = to_money(rate)
        if rate < 0:
            raise ValueError(f"Tax rate must be non-negative, got {rate}")
        self.rate = rate

    def compute_tax(self, subtotal: Decimal, customer: CustomerInfo) -> Decimal:
        return round_money(subtotal * self.rate)

    def __repr__(self) -> str:
        return f"FlatRateTaxPolicy(rate={self.rate})"


class CallableTaxPolicy(TaxPolicy):
    """Adapts a plain function to the TaxPolicy interface."""

    name = "callable"

    def __init__(self, fn: Callable[[Decimal, CustomerInfo], Decimal]):
        self._fn = fn

    def compute_tax(self, subtotal: Decimal, customer: CustomerInfo) -> Decimal:
        tax = round_money(to_money(self._fn(subtotal, customer)))
        if tax < 0:
            raise ValueError(f"Tax policy returned a negative amount: {tax}")
        return tax
