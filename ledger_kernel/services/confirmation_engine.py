"""
ConfirmationEngine -- draft -> confirmed with atomic stock decrement.

Responsibility:
    Confirms a draft invoice: checks stock for every line, appends one
    ``sale`` movement per line through StockLedger and flips the status,
    all inside the caller's transaction.  Also voids drafts.

Architecture position:
    Kernel > Services.  The only component that creates sale movements.
    InvoicingService commits (or rolls back) whatever this flushes.

Lock order:
    1. The invoice row (SELECT ... FOR UPDATE).
    2. Every product on the invoice, ascending by str(id).
    A concurrent confirm of the same invoice queues on step 1 and then sees
    a confirmed invoice; confirms of different invoices sharing a product
    queue on step 2 and then see the decremented counter.

Invariants enforced:
    - Status changes go through validate_transition(); the UPDATE itself is
      a compare-and-swap on status = 'draft', so an invoice is confirmed at
      most once even if a lock were bypassed.
    - All-or-nothing: every line's availability is checked before the
      first movement is written; any failure leaves no partial state once
      the caller rolls back.

Failure modes:
    - NotFoundError: unknown invoice.
    - InvalidStateError: invoice is not a draft (or lost the status CAS).
    - InsufficientStockError: at least one product lacks stock for the
      aggregated quantity of its lines.
"""

from collections import defaultdict
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.invoice_state import InvoiceStatus, validate_transition
from ledger_kernel.domain.movement_rules import MovementType
from ledger_kernel.exceptions import InsufficientStockError, InvalidStateError, NotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.confirmation")


class ConfirmationEngine(BaseService[Invoice]):
    """Invoice status transitions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        stock_ledger: StockLedger | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._stock = stock_ledger or StockLedger(session, self._clock)

    def _lock_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.session.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def _compare_and_swap(
        self,
        invoice: Invoice,
        target: InvoiceStatus,
        stamp_field: str,
        stamp: datetime,
    ) -> None:
        """UPDATE ... WHERE status = 'draft'; zero rows means someone got there first."""
        result = self.session.execute(
            update(Invoice)
            .where(
                Invoice.id == invoice.id,
                Invoice.status == InvoiceStatus.DRAFT.value,
            )
            .values({"status": target.value, stamp_field: stamp})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.refresh(invoice)
            raise InvalidStateError(
                invoice.id,
                current=invoice.status,
                target=target.value,
            )
        self.session.refresh(invoice)

    def confirm(self, invoice_id: UUID) -> Invoice:
        """
        Confirm a draft invoice and decrement stock for every line.

        Postconditions:
            - invoice.status == CONFIRMED and confirmed_at is the clock's now.
            - One sale movement per line, delta = -quantity.
            - Each product's counter reduced by the sum of its lines.
        """
        invoice = self._lock_invoice(invoice_id)

        with LogContext.bind(invoice_id=invoice.id):
            validate_transition(invoice.id, invoice.state, InvoiceStatus.CONFIRMED)

            required: dict[UUID, int] = defaultdict(int)
            for line in invoice.lines:
                required[line.product_id] += line.quantity

            products = self._stock.lock_products(required)

            for product_id in sorted(required, key=str):
                available = products[product_id].stock_quantity
                if available < required[product_id]:
                    logger.debug(
                        "confirmation_rejected_insufficient_stock",
                        extra={
                            "invoice_number": invoice.invoice_number,
                            "product_id": product_id,
                            "requested": required[product_id],
                            "available": available,
                        },
                    )
                    raise InsufficientStockError(
                        product_id=product_id,
                        requested=required[product_id],
                        available=available,
                    )

            for line in invoice.lines:
                self._stock.record_movement(
                    line.product_id,
                    -line.quantity,
                    MovementType.SALE,
                    note=f"{invoice.invoice_number} line {line.line_number}",
                    related_invoice_id=invoice.id,
                    invoice_line_id=line.id,
                )

            self._compare_and_swap(
                invoice, InvoiceStatus.CONFIRMED, "confirmed_at", self._clock.now()
            )

            logger.info(
                "invoice_confirmed",
                extra={
                    "invoice_number": invoice.invoice_number,
                    "line_count": len(invoice.lines),
                    "total": invoice.total,
                    "stock_decrements": {
                        str(product_id): quantity
                        for product_id, quantity in sorted(
                            required.items(), key=lambda item: str(item[0])
                        )
                    },
                },
            )
        return invoice

    def void(self, invoice_id: UUID) -> Invoice:
        """
        Void a draft invoice.  No stock movements are written.

        Raises:
            NotFoundError, InvalidStateError.
        """
        invoice = self._lock_invoice(invoice_id)

        with LogContext.bind(invoice_id=invoice.id):
            validate_transition(invoice.id, invoice.state, InvoiceStatus.VOID)
            self._compare_and_swap(
                invoice, InvoiceStatus.VOID, "voided_at", self._clock.now()
            )
            logger.info(
                "invoice_voided",
                extra={"invoice_number": invoice.invoice_number},
            )
        return invoice
