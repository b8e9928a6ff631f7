"""
InvoiceBuilder -- assembles draft invoices.

Responsibility:
    Validates a draft request, snapshots current product prices onto the
    lines, computes line totals, subtotal, tax and total, allocates the
    invoice number and persists the invoice with its lines in one flush.

Architecture position:
    Kernel > Services.  Uses SequenceService for numbering and a TaxPolicy
    (domain/tax.py) for tax.  Never touches stock.

Invariants enforced:
    - subtotal == sum(line_total), total == subtotal + tax, computed once
      here (domain/invoice_totals.py) and frozen afterwards.
    - Every validation runs before the first write, so a rejected request
      consumes no invoice number.

Failure modes:
    - ValidationError: missing or malformed customer or product id, no
      lines, non-positive or non-integer quantity, due date before the
      issue date.
    - NotFoundError: unknown customer or product.
"""

from datetime import date, datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import CustomerInfo, LineRequest
from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.domain.invoice_totals import compute_totals, line_total, subtotal_of
from ledger_kernel.domain.tax import TaxPolicy, ZeroTaxPolicy
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import Invoice, InvoiceLine
from ledger_kernel.models.product import Product
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.invoice_builder")


def _as_uuid(field: str, value: UUID | str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(field, f"{value!r} is not a valid identifier") from None


class InvoiceBuilder(BaseService[Invoice]):
    """
    Draft invoice construction.

    Non-goals:
        - Does NOT check stock; availability is decided at confirmation.
        - Does NOT merge lines for the same product; each request becomes
          its own line.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        tax_policy: TaxPolicy | None = None,
        sequence_service: SequenceService | None = None,
        number_prefix: str = "INV",
        number_width: int = 6,
        allow_past_due_dates: bool = False,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._tax_policy = tax_policy or ZeroTaxPolicy()
        self._sequence = sequence_service or SequenceService(session)
        self._number_prefix = number_prefix
        self._number_width = number_width
        self._allow_past_due_dates = allow_past_due_dates

    def _validate_lines(
        self, line_requests: Sequence[LineRequest]
    ) -> list[tuple[UUID, int]]:
        """Check every requested line; returns (product UUID, quantity) pairs."""
        if not line_requests:
            raise ValidationError("lines", "an invoice needs at least one line")
        checked = []
        for index, request in enumerate(line_requests, start=1):
            if request.product_id is None:
                raise ValidationError(f"lines[{index}].product_id", "is required")
            product_id = _as_uuid(f"lines[{index}].product_id", request.product_id)
            quantity = request.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise ValidationError(
                    f"lines[{index}].quantity", "must be a whole number"
                )
            if quantity <= 0:
                raise ValidationError(f"lines[{index}].quantity", "must be positive")
            checked.append((product_id, quantity))
        return checked

    def _load_products(self, product_ids: set[UUID]) -> dict[UUID, Product]:
        products = {
            product.id: product
            for product in self.session.execute(
                select(Product).where(Product.id.in_(product_ids))
            ).scalars()
        }
        for product_id in sorted(product_ids, key=str):
            if product_id not in products:
                raise NotFoundError("Product", product_id)
        return products

    def create_draft(
        self,
        customer_id: UUID,
        due_date: date,
        line_requests: Sequence[LineRequest],
        notes: str | None = None,
    ) -> Invoice:
        """
        Build, number and persist a draft invoice.

        Preconditions:
            - customer_id references an existing customer.
            - due_date >= today (unless past due dates are allowed).
            - At least one line; every quantity is a positive integer.

        Postconditions:
            - One Invoice in DRAFT and len(line_requests) InvoiceLines,
              numbered 1..n in request order, flushed together.
        """
        if customer_id is None:
            raise ValidationError("customer_id", "is required")
        if isinstance(due_date, datetime) or not isinstance(due_date, date):
            raise ValidationError("due_date", "must be a calendar date")
        customer_id = _as_uuid("customer_id", customer_id)
        checked_lines = self._validate_lines(line_requests)

        issue_date = self._clock.today()
        if due_date < issue_date and not self._allow_past_due_dates:
            raise ValidationError(
                "due_date",
                f"{due_date.isoformat()} is before the issue date {issue_date.isoformat()}",
            )

        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)

        products = self._load_products({product_id for product_id, _ in checked_lines})

        lines = []
        for line_number, (product_id, quantity) in enumerate(checked_lines, start=1):
            product = products[product_id]
            unit_price = product.unit_price
            lines.append(
                InvoiceLine(
                    line_number=line_number,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    line_total=line_total(quantity, unit_price),
                )
            )

        line_totals = [line.line_total for line in lines]
        subtotal = subtotal_of(line_totals)
        tax = self._tax_policy.compute_tax(subtotal, CustomerInfo.from_model(customer))
        totals = compute_totals(line_totals, tax)

        invoice_number = self._sequence.next_invoice_number(
            self._number_prefix, self._number_width
        )
        cleaned_notes = notes.strip() if notes and notes.strip() else None

        invoice = Invoice(
            invoice_number=invoice_number,
            customer_id=customer.id,
            issue_date=issue_date,
            due_date=due_date,
            status=InvoiceStatus.DRAFT.value,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            notes=cleaned_notes,
            lines=lines,
        )
        self.session.add(invoice)
        self.session.flush()

        with LogContext.bind(invoice_id=invoice.id):
            logger.info(
                "invoice_draft_created",
                extra={
                    "invoice_number": invoice_number,
                    "customer_id": customer.id,
                    "line_count": len(lines),
                    "subtotal": totals.subtotal,
                    "tax": totals.tax,
                    "total": totals.total,
                    "tax_policy": self._tax_policy.name,
                },
            )
        return invoice
