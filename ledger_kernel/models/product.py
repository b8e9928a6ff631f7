"""
Module: ledger_kernel.models.product
Responsibility: ORM persistence for sellable products and their materialized
    stock counter.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - sku is unique (uq_product_sku).
    - unit_price >= 0 and reorder_threshold >= 0 (check constraints).
    - stock_quantity >= 0 (ck_product_stock_non_negative).  The counter is a
      cache of the stock_movements log; only StockLedger writes it (the
      single-writer rule is enforced in db/immutability.py).

Failure modes:
    - IntegrityError on duplicate sku or on a negative counter reaching the
      database (StockLedger rejects both earlier with typed errors).
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """
    A catalog product.

    Guarantees:
        - stock_quantity starts at 0 and only moves through StockLedger.
        - unit_price is the current list price; invoice lines snapshot it.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        CheckConstraint("unit_price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("reorder_threshold >= 0", name="ck_product_threshold_non_negative"),
        Index("idx_product_name", "name"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    # Materialized counter; equals the sum of this product's movement deltas
    stock_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    reorder_threshold: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.name} (stock={self.stock_quantity})>"
