"""
Pure domain layer.

Value objects, state tables and arithmetic with NO dependencies on the
ORM session, the database or the wall clock (SystemClock aside).
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    CustomerInfo,
    DashboardCounters,
    InvoiceInfo,
    InvoiceLineInfo,
    LineRequest,
    ProductInfo,
    StockDiscrepancy,
    StockMovementInfo,
)
from ledger_kernel.domain.invoice_state import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    InvoiceStatus,
    can_transition,
    validate_transition,
)
from ledger_kernel.domain.invoice_totals import InvoiceTotals, compute_totals, line_total
from ledger_kernel.domain.movement_rules import (
    MovementType,
    parse_movement_type,
    validate_delta,
)
from ledger_kernel.domain.tax import (
    CallableTaxPolicy,
    FlatRateTaxPolicy,
    TaxPolicy,
    ZeroTaxPolicy,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CustomerInfo",
    "DashboardCounters",
    "InvoiceInfo",
    "InvoiceLineInfo",
    "LineRequest",
    "ProductInfo",
    "StockDiscrepancy",
    "StockMovementInfo",
    "InvoiceStatus",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "can_transition",
    "validate_transition",
    "InvoiceTotals",
    "compute_totals",
    "line_total",
    "MovementType",
    "parse_movement_type",
    "validate_delta",
    "TaxPolicy",
    "ZeroTaxPolicy",
    "FlatRateTaxPolicy",
    "CallableTaxPolicy",
]
