"""
Ledger Invariants Contract.

These invariants are structural law.  No configuration value may switch
them off.  This module only declares them; enforcement is distributed
across StockLedger, ConfirmationEngine, InvoiceBuilder, the ORM
immutability listeners and database constraints.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    STOCK_REPLAY = "stock_replay"
    """A product's stock_quantity equals the sum of its movement deltas.
    Enforced by StockLedger applying the movement and the counter update
    in the same flush, verified by StockLedger.verify()."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """stock_quantity is never persisted negative.  Enforced by
    StockLedger and by the ck_product_stock_non_negative constraint."""

    SINGLE_STOCK_WRITER = "single_stock_writer"
    """Only StockLedger may write Product.stock_quantity.  Enforced by
    the before_update listener in ledger_kernel.db.immutability."""

    APPEND_ONLY_MOVEMENTS = "append_only_movements"
    """Stock movements are never updated or deleted.  Enforced by ORM
    listeners."""

    INVOICE_TOTALS = "invoice_totals"
    """subtotal == sum(line totals) and total == subtotal + tax.
    Enforced by InvoiceBuilder at creation; lines are immutable after."""

    SINGLE_CONFIRMATION = "single_confirmation"
    """An invoice is confirmed at most once and produces exactly one sale
    movement per line.  Enforced by the status compare-and-swap and the
    uq_movement_invoice_line constraint."""

    ALL_OR_NOTHING_CONFIRMATION = "all_or_nothing_confirmation"
    """Confirmation decrements every line or none.  Enforced by the
    ConfirmationEngine pre-check under product locks and the facade's
    single transaction."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "ledger_services",
    "ledger_config",
)
