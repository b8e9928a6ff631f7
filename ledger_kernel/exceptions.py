"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an API layer, a CLI, a retry loop) must be able to tell a missing
product from an empty shelf from a lost lock race without parsing message
strings.  Every error in this module therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        service.confirm(invoice_id)
    except InsufficientStockError as e:
        api_response(code=e.code, product=e.product_id,
                     requested=e.requested, available=e.available)
    except ConflictError:
        retry_later()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- NotFoundError
    +-- ValidationError
    +-- InvalidStateError
    +-- InsufficientStockError
    +-- ConflictError              (retryable)
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                    | When Raised
------------------------|------------------------------------------------------
NOT_FOUND               | Product, customer or invoice id does not exist
VALIDATION_ERROR        | Malformed input (quantity, due date, price, email...)
INVALID_STATE           | Invoice transition not allowed from current status
INSUFFICIENT_STOCK      | Requested quantity exceeds the available counter
CONFLICT                | Lock timeout, deadlock or serialization failure
IMMUTABILITY_VIOLATION  | Attempt to modify an append-only or terminal record

===============================================================================
PROPAGATION
===============================================================================

Validation errors are raised before any write.  Everything else aborts the
surrounding transaction, which the InvoicingService facade rolls back before
re-raising.  Only ConflictError is worth retrying unchanged.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"
    retryable: bool = False


class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class ValidationError(LedgerError):
    """Input rejected before any write was attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidStateError(LedgerError):
    """Invoice status transition is not allowed from the current status."""

    code: str = "INVALID_STATE"

    def __init__(self, invoice_id: Any, current: str, target: str):
        self.invoice_id = str(invoice_id)
        self.current = current
        self.target = target
        super().__init__(
            f"Invoice {invoice_id} cannot transition {current} -> {target}"
        )


class InsufficientStockError(LedgerError):
    """Requested quantity exceeds the product's available stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: Any, requested: int, available: int):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


class ConflictError(LedgerError):
    """
    Transaction lost a race with a concurrent writer.

    Raised for lock timeouts, deadlocks and serialization failures.  The
    transaction was rolled back in full; repeating the call is safe.
    """

    code: str = "CONFLICT"
    retryable: bool = True

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Conflict during {operation}: {detail}")


class ImmutabilityViolationError(LedgerError):
    """Attempt to modify an append-only or terminal record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
