"""
Module: ledger_kernel.selectors.invoice_selector
Responsibility: Read access to invoices with their lines.
Architecture position: Kernel > Selectors.

Failure modes:
    - NotFoundError from get_invoice for an unknown id.
    - ValidationError for an unknown status filter.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import InvoiceInfo
from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.selectors.base import BaseSelector


class InvoiceSelector(BaseSelector[Invoice]):
    """
    Invoice queries.

    Guarantees:
        - Listings are newest first: issue_date descending, then invoice
          number descending (numbers are allocated in creation order).
        - Lines arrive with the invoice (selectin load), ordered by
          line_number.
    """

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        invoice = self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return InvoiceInfo.from_model(invoice)

    def get_by_number(self, invoice_number: str) -> InvoiceInfo | None:
        invoice = self.session.execute(
            select(Invoice).where(Invoice.invoice_number == invoice_number)
        ).scalar_one_or_none()
        return InvoiceInfo.from_model(invoice) if invoice is not None else None

    def list_invoices(
        self,
        status: InvoiceStatus | str | None = None,
        customer_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[InvoiceInfo]:
        stmt = select(Invoice)
        if status is not None:
            try:
                status_value = InvoiceStatus(status).value
            except ValueError:
                raise ValidationError("status", f"unknown invoice status {status!r}") from None
            stmt = stmt.where(Invoice.status == status_value)
        if customer_id is not None:
            stmt = stmt.where(Invoice.customer_id == customer_id)
        stmt = stmt.order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return [InvoiceInfo.from_model(invoice) for invoice in self.session.execute(stmt).scalars()]
