"""
Module: ledger_kernel.selectors.movement_selector
Responsibility: Read access to the stock movement log, joined to the product
    for display (SKU and name).
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import StockMovementInfo
from ledger_kernel.models.product import Product
from ledger_kernel.models.stock_movement import StockMovement
from ledger_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[StockMovement]):
    """Movement history, newest first."""

    def list_movements(
        self,
        product_id: UUID | None = None,
        invoice_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[StockMovementInfo]:
        stmt = select(StockMovement, Product).join(
            Product, StockMovement.product_id == Product.id
        )
        if product_id is not None:
            stmt = stmt.where(StockMovement.product_id == product_id)
        if invoice_id is not None:
            stmt = stmt.where(StockMovement.related_invoice_id == invoice_id)
        stmt = stmt.order_by(StockMovement.created_at.desc(), Product.sku.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            StockMovementInfo.from_model(movement, product)
            for movement, product in self.session.execute(stmt).all()
        ]
