"""
ORM-level write discipline for the ledger.

Responsibility:
    SQLAlchemy mapper listeners that refuse writes the business rules forbid,
    before the SQL reaches the database.

Architecture position:
    Kernel > DB.  Imports models lazily inside functions (models import db,
    so a module-level import would be circular).

Protected entities:

    Entity          | Rule
    ----------------|---------------------------------------------------------
    StockMovement   | Append-only: never updated, never deleted
    InvoiceLine     | Immutable after insert: never updated, never deleted
    Invoice         | Header fields never change; once confirmed or void,
                    | nothing changes; invoices are never deleted
    Product         | stock_quantity changes only inside a StockLedger write

How the single-writer rule works:
    StockLedger sets STOCK_WRITER_FLAG in ``session.info`` around the flush
    that carries its counter update (see ``stock_writer``).  A Product flush
    that changes stock_quantity without the flag raises
    ImmutabilityViolationError and the transaction is aborted.

Usage:
    register_immutability_listeners()    # once at startup, idempotent

    unregister_immutability_listeners()  # tests only
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

STOCK_WRITER_FLAG = "stock_ledger_write"

# Invoice columns fixed at creation time
_INVOICE_HEADER_FIELDS = (
    "invoice_number",
    "customer_id",
    "issue_date",
    "due_date",
    "subtotal",
    "tax",
    "total",
)

# Row bookkeeping columns that may always change
_BOOKKEEPING_FIELDS = ("updated_at",)


@contextmanager
def stock_writer(session: Session) -> Generator[Session, None, None]:
    """Mark the session as performing a sanctioned stock counter write."""
    previous = session.info.get(STOCK_WRITER_FLAG, False)
    session.info[STOCK_WRITER_FLAG] = True
    try:
        yield session
    finally:
        session.info[STOCK_WRITER_FLAG] = previous


def _blocked(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_stock_movement_update(mapper, connection, target):
    _blocked("StockMovement", target, "UPDATE", "Stock movements are append-only")


def _check_stock_movement_delete(mapper, connection, target):
    _blocked("StockMovement", target, "DELETE", "Stock movements are append-only")


def _check_invoice_line_update(mapper, connection, target):
    _blocked("InvoiceLine", target, "UPDATE", "Invoice lines are immutable after insert")


def _check_invoice_line_delete(mapper, connection, target):
    _blocked("InvoiceLine", target, "DELETE", "Invoice lines are immutable after insert")


def _check_invoice_update(mapper, connection, target):
    """
    Block header changes always, and any change once the invoice is terminal.

    "Terminal" is judged on the value before this flush, so the transition
    draft -> confirmed (or void) itself goes through.
    """
    from ledger_kernel.domain.invoice_state import TERMINAL_STATES, InvoiceStatus

    status_history = get_history(target, "status")
    if status_history.deleted:
        previous_status = status_history.deleted[0]
    else:
        previous_status = target.status

    was_terminal = InvoiceStatus(previous_status) in TERMINAL_STATES

    for attr in inspect(target).attrs:
        if attr.key in _BOOKKEEPING_FIELDS or not attr.history.has_changes():
            continue
        if attr.key in _INVOICE_HEADER_FIELDS:
            _blocked(
                "Invoice",
                target,
                "UPDATE",
                f"Cannot modify field '{attr.key}' after the invoice is created",
            )
        if was_terminal:
            _blocked(
                "Invoice",
                target,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a {previous_status} invoice",
            )


def _check_invoice_delete(mapper, connection, target):
    _blocked("Invoice", target, "DELETE", "Invoices are voided, never deleted")


def _check_product_stock_writer(mapper, connection, target):
    history = get_history(target, "stock_quantity")
    if not history.has_changes():
        return
    session = object_session(target)
    if session is not None and session.info.get(STOCK_WRITER_FLAG):
        return
    _blocked(
        "Product",
        target,
        "UPDATE",
        "stock_quantity may only be changed by the stock ledger",
    )


def _listeners():
    from ledger_kernel.models import Invoice, InvoiceLine, Product, StockMovement

    return (
        (StockMovement, "before_update", _check_stock_movement_update),
        (StockMovement, "before_delete", _check_stock_movement_delete),
        (InvoiceLine, "before_update", _check_invoice_line_update),
        (InvoiceLine, "before_delete", _check_invoice_line_delete),
        (Invoice, "before_update", _check_invoice_update),
        (Invoice, "before_delete", _check_invoice_delete),
        (Product, "before_update", _check_product_stock_writer),
    )


def register_immutability_listeners() -> None:
    """
    Register all write-discipline listeners.

    Safe to call more than once; a listener already present is skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the write-discipline listeners.

    WARNING: Only use this in tests that must bypass the rules on purpose.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)


def listeners_registered() -> bool:
    """True if every write-discipline listener is installed."""
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _listeners()
    )
