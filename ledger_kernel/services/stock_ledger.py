"""
StockLedger -- the single writer of product stock.

Responsibility:
    Appends stock movements and applies each one to the product's
    materialized counter, under a row lock, in the same flush.  Also answers
    "what does the log say the stock should be" (replay) and "which
    products disagree" (verify).

Architecture position:
    Kernel > Services.  Called by CatalogService (opening stock),
    ConfirmationEngine (sales) and InvoicingService (manual movements).

Invariants enforced:
    - Product.stock_quantity == sum(StockMovement.delta) per product.  Every
      counter change is accompanied by exactly one movement row; the
      counter flush runs inside ``stock_writer`` and any other write of the
      counter is rejected by db/immutability.py.
    - stock_quantity never goes negative.
    - Product rows are locked in ascending str(id) order whenever more than
      one is needed, so two confirmations can never deadlock each other on
      products.

Failure modes:
    - NotFoundError: unknown product.
    - ValidationError: bad type, wrong sign, zero delta, sale without an
      invoice reference (or a reference on a non-sale), an adjustment that
      would leave a negative counter.
    - InsufficientStockError: a non-adjustment movement would leave a
      negative counter.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.immutability import stock_writer
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import StockDiscrepancy
from ledger_kernel.domain.movement_rules import (
    MovementType,
    parse_movement_type,
    validate_delta,
)
from ledger_kernel.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.product import Product
from ledger_kernel.models.stock_movement import StockMovement
from ledger_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


class StockLedger(BaseService[StockMovement]):
    """
    Append-only stock movement log plus the counter it maintains.

    Non-goals:
        - Does NOT decide whether a sale is allowed; ConfirmationEngine
          checks every line first so a failed confirmation writes nothing.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def lock_product(self, product_id: UUID) -> Product:
        """SELECT ... FOR UPDATE one product, re-reading its current row."""
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def lock_products(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """Lock several products, one at a time, in ascending str(id) order."""
        locked: dict[UUID, Product] = {}
        for product_id in sorted(set(product_ids), key=str):
            locked[product_id] = self.lock_product(product_id)
        return locked

    def record_movement(
        self,
        product_id: UUID,
        delta: int,
        movement_type: MovementType | str,
        note: str | None = None,
        related_invoice_id: UUID | None = None,
        invoice_line_id: UUID | None = None,
    ) -> StockMovement:
        """
        Append a movement and apply it to the product's counter.

        Preconditions:
            - delta obeys the sign rule of movement_type.
            - Sales carry related_invoice_id and invoice_line_id; nothing
              else does.

        Postconditions:
            - One new StockMovement row, flushed.
            - Product.stock_quantity changed by exactly delta.

        Raises:
            NotFoundError, ValidationError, InsufficientStockError.
        """
        kind = parse_movement_type(movement_type)
        validate_delta(kind, delta)

        if kind is MovementType.SALE:
            if related_invoice_id is None or invoice_line_id is None:
                raise ValidationError(
                    "related_invoice_id", "sale movements must reference an invoice line"
                )
        elif related_invoice_id is not None or invoice_line_id is not None:
            raise ValidationError(
                "related_invoice_id",
                f"{kind.value} movements cannot reference an invoice",
            )

        product = self.lock_product(product_id)
        available = product.stock_quantity
        new_quantity = available + delta

        if new_quantity < 0:
            if kind is MovementType.ADJUSTMENT:
                raise ValidationError(
                    "delta",
                    f"adjustment of {delta} would leave stock at {new_quantity}",
                )
            raise InsufficientStockError(
                product_id=product.id,
                requested=-delta,
                available=available,
            )

        movement = StockMovement(
            product_id=product.id,
            delta=delta,
            movement_type=kind.value,
            note=note,
            created_at=self._clock.now(),
            related_invoice_id=related_invoice_id,
            invoice_line_id=invoice_line_id,
        )
        self.session.add(movement)
        product.stock_quantity = new_quantity

        with stock_writer(self.session):
            self.session.flush()

        with LogContext.bind(product_id=product.id):
            logger.info(
                "stock_movement_recorded",
                extra={
                    "movement_id": str(movement.id),
                    "movement_type": kind.value,
                    "delta": delta,
                    "stock_before": available,
                    "stock_after": new_quantity,
                    "related_invoice_id": related_invoice_id,
                },
            )
        return movement

    def current_stock(self, product_id: UUID) -> int:
        """The materialized counter."""
        quantity = self.session.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one_or_none()
        if quantity is None:
            raise NotFoundError("Product", product_id)
        return int(quantity)

    def replayed_stock(self, product_id: UUID) -> int:
        """Sum of every movement delta for the product."""
        if self.session.get(Product, product_id) is None:
            raise NotFoundError("Product", product_id)
        total = self.session.execute(
            select(func.coalesce(func.sum(StockMovement.delta), 0)).where(
                StockMovement.product_id == product_id
            )
        ).scalar_one()
        return int(total)

    def verify(self) -> list[StockDiscrepancy]:
        """
        Compare every product's counter with its replayed movement sum.

        Returns:
            One StockDiscrepancy per disagreeing product, ordered by SKU.
            Empty when the ledger is consistent.
        """
        replay = (
            select(
                StockMovement.product_id.label("product_id"),
                func.sum(StockMovement.delta).label("replayed"),
            )
            .group_by(StockMovement.product_id)
            .subquery()
        )
        rows = self.session.execute(
            select(
                Product.id,
                Product.stock_quantity,
                func.coalesce(replay.c.replayed, 0),
            )
            .outerjoin(replay, replay.c.product_id == Product.id)
            .order_by(Product.sku)
        ).all()

        discrepancies = [
            StockDiscrepancy(
                product_id=product_id,
                materialized=int(materialized),
                replayed=int(replayed),
            )
            for product_id, materialized, replayed in rows
            if int(materialized) != int(replayed)
        ]

        if discrepancies:
            logger.warning(
                "stock_replay_mismatch",
                extra={
                    "products_checked": len(rows),
                    "discrepancies": [
                        {
                            "product_id": d.product_id,
                            "materialized": d.materialized,
                            "replayed": d.replayed,
                        }
                        for d in discrepancies
                    ],
                },
            )
        else:
            logger.info("stock_replay_verified", extra={"products_checked": len(rows)})
        return discrepancies
