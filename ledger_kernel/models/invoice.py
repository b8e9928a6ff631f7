"""
Module: ledger_kernel.models.invoice
Responsibility: ORM persistence for invoices and their line items.
Architecture position: Kernel > Models.  May import from db/ and from the
    pure state table in domain/invoice_state.py.

Invariants enforced:
    - invoice_number is unique (uq_invoice_number).
    - (invoice_id, line_number) is unique; quantity > 0 on every line.
    - total == subtotal + tax and subtotal == sum(line_total); computed once
      by InvoiceBuilder, lines are immutable afterwards (db/immutability.py).
    - Status transitions follow VALID_TRANSITIONS (domain/invoice_state.py);
      confirmed and void are terminal.

Failure modes:
    - IntegrityError on duplicate invoice_number or line_number.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TrackedBase, UUIDString
from ledger_kernel.domain.invoice_state import InvoiceStatus


class Invoice(TrackedBase):
    """
    A customer invoice.

    Guarantees:
        - Created in DRAFT with its lines in the same flush.
        - Monetary fields never change after creation.
        - status moves DRAFT -> CONFIRMED or DRAFT -> VOID, exactly once.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        CheckConstraint(
            "status IN ('draft', 'confirmed', 'void')",
            name="ck_invoice_status",
        ),
        Index("idx_invoice_status", "status"),
        Index("idx_invoice_customer", "customer_id"),
        Index("idx_invoice_issue_date", "issue_date"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    issue_date: Mapped[date] = mapped_column(nullable=False)

    due_date: Mapped[date] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.DRAFT.value,
    )

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    tax: Mapped[Decimal] = mapped_column(nullable=False)

    total: Mapped[Decimal] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list[InvoiceLine]] = relationship(
        back_populates="invoice",
        order_by="InvoiceLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def state(self) -> InvoiceStatus:
        """Status as the enum (the column stores the plain value)."""
        return InvoiceStatus(self.status)

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} ({self.status}) total={self.total}>"


class InvoiceLine(Base):
    """
    One product line on an invoice.

    unit_price is a snapshot of Product.unit_price taken when the draft was
    built; later price changes do not reach existing lines.
    """

    __tablename__ = "invoice_lines"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_line_number"),
        CheckConstraint("quantity > 0", name="ck_invoice_line_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_line_price_non_negative"),
        Index("idx_invoice_line_product", "product_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("invoices.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return (
            f"<InvoiceLine #{self.line_number} {self.quantity} x "
            f"{self.unit_price} = {self.line_total}>"
        )
