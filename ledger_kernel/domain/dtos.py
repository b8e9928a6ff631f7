"""
DTOs -- immutable data handed across the facade boundary.

Responsibility:
    Frozen dataclasses for everything the InvoicingService returns, plus the
    LineRequest input.  Callers never hold ORM rows, so nothing they do can
    bypass the services' locking and write rules.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are
    boundary converters invoked only from services and selectors.

Normalization:
    - Money fields are rounded to two places (SQLite hands back Numeric
      values at storage scale).
    - Datetimes are made timezone-aware UTC (SQLite drops the offset).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.domain.money import round_money
from ledger_kernel.domain.movement_rules import MovementType

if TYPE_CHECKING:
    from ledger_kernel.models.customer import Customer as CustomerModel
    from ledger_kernel.models.invoice import Invoice as InvoiceModel
    from ledger_kernel.models.invoice import InvoiceLine as InvoiceLineModel
    from ledger_kernel.models.product import Product as ProductModel
    from ledger_kernel.models.stock_movement import StockMovement as StockMovementModel


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LineRequest:
    """One requested invoice line: which product, how many units."""

    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    sku: str
    name: str
    unit_price: Decimal
    stock_quantity: int
    reorder_threshold: int

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity < self.reorder_threshold

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductInfo:
        return cls(
            id=model.id,
            sku=model.sku,
            name=model.name,
            unit_price=round_money(model.unit_price),
            stock_quantity=model.stock_quantity,
            reorder_threshold=model.reorder_threshold,
        )


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    name: str
    email: str

    @classmethod
    def from_model(cls, model: CustomerModel) -> CustomerInfo:
        return cls(id=model.id, name=model.name, email=model.email)


@dataclass(frozen=True)
class InvoiceLineInfo:
    id: UUID
    line_number: int
    product_id: UUID
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_model(cls, model: InvoiceLineModel) -> InvoiceLineInfo:
        return cls(
            id=model.id,
            line_number=model.line_number,
            product_id=model.product_id,
            quantity=model.quantity,
            unit_price=round_money(model.unit_price),
            line_total=round_money(model.line_total),
        )


@dataclass(frozen=True)
class InvoiceInfo:
    """
    A persisted invoice with its lines.

    Guarantees:
        - lines are ordered by line_number.
        - total == subtotal + tax.
    """

    id: UUID
    invoice_number: str
    customer_id: UUID
    issue_date: date
    due_date: date
    status: InvoiceStatus
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    notes: str | None
    confirmed_at: datetime | None
    voided_at: datetime | None
    lines: tuple[InvoiceLineInfo, ...]

    @property
    def is_draft(self) -> bool:
        return self.status is InvoiceStatus.DRAFT

    @classmethod
    def from_model(cls, model: InvoiceModel) -> InvoiceInfo:
        lines = tuple(
            InvoiceLineInfo.from_model(line)
            for line in sorted(model.lines, key=lambda line: line.line_number)
        )
        return cls(
            id=model.id,
            invoice_number=model.invoice_number,
            customer_id=model.customer_id,
            issue_date=model.issue_date,
            due_date=model.due_date,
            status=model.state,
            subtotal=round_money(model.subtotal),
            tax=round_money(model.tax),
            total=round_money(model.total),
            notes=model.notes,
            confirmed_at=_aware(model.confirmed_at),
            voided_at=_aware(model.voided_at),
            lines=lines,
        )


@dataclass(frozen=True)
class StockMovementInfo:
    id: UUID
    product_id: UUID
    delta: int
    movement_type: MovementType
    note: str | None
    created_at: datetime
    related_invoice_id: UUID | None = None
    invoice_line_id: UUID | None = None
    product_sku: str | None = None
    product_name: str | None = None

    @classmethod
    def from_model(
        cls,
        model: StockMovementModel,
        product: ProductModel | None = None,
    ) -> StockMovementInfo:
        return cls(
            id=model.id,
            product_id=model.product_id,
            delta=model.delta,
            movement_type=model.kind,
            note=model.note,
            created_at=_aware(model.created_at),
            related_invoice_id=model.related_invoice_id,
            invoice_line_id=model.invoice_line_id,
            product_sku=product.sku if product is not None else None,
            product_name=product.name if product is not None else None,
        )


@dataclass(frozen=True)
class StockDiscrepancy:
    """A product whose counter disagrees with the sum of its movements."""

    product_id: UUID
    materialized: int
    replayed: int

    @property
    def difference(self) -> int:
        return self.materialized - self.replayed


@dataclass(frozen=True)
class DashboardCounters:
    total_products: int
    low_stock: int
    monthly_revenue: Decimal
    pending_invoices: int
