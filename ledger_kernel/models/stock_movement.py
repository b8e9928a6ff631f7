"""
Module: ledger_kernel.models.stock_movement
Responsibility: ORM persistence for the append-only stock movement log.
Architecture position: Kernel > Models.  May import from db/ and domain/
    movement_rules.py.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (db/immutability.py).
    - delta != 0 (ck_movement_delta_non_zero).
    - A sale carries an invoice and invoice line reference; no other type
      does (ck_movement_sale_reference).
    - At most one movement per invoice line (uq_movement_invoice_line), so a
      confirmed invoice can never decrement stock twice.

Audit relevance:
    Replaying deltas per product reproduces Product.stock_quantity; this log
    is the source of truth and the counter is its cache.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString
from ledger_kernel.domain.movement_rules import MovementType


class StockMovement(Base):
    """One signed stock change with its provenance."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_movement_delta_non_zero"),
        CheckConstraint(
            "movement_type IN ('purchase', 'return', 'loss', 'adjustment', 'sale')",
            name="ck_movement_type",
        ),
        CheckConstraint(
            "(movement_type = 'sale' AND related_invoice_id IS NOT NULL"
            " AND invoice_line_id IS NOT NULL)"
            " OR (movement_type <> 'sale' AND related_invoice_id IS NULL"
            " AND invoice_line_id IS NULL)",
            name="ck_movement_sale_reference",
        ),
        UniqueConstraint("invoice_line_id", name="uq_movement_invoice_line"),
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_invoice", "related_invoice_id"),
        Index("idx_movement_created", "created_at"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    delta: Mapped[int] = mapped_column(nullable=False)

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set from the injected Clock, not the database
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    related_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("invoices.id"),
        nullable=True,
    )

    invoice_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("invoice_lines.id"),
        nullable=True,
    )

    @property
    def kind(self) -> MovementType:
        return MovementType(self.movement_type)

    def __repr__(self) -> str:
        return f"<StockMovement {self.movement_type} {self.delta:+d} product={self.product_id}>"
