"""
InvoicingService -- the public transactional API.

Responsibility:
    Every operation a presentation layer may call.  Each call opens its own
    session, runs kernel services and selectors inside one transaction,
    commits on success and rolls back on any failure.  Callers receive
    frozen DTOs, never ORM rows.

Architecture position:
    Services -- sits above ``ledger_kernel`` and owns the transaction
    boundary that kernel services (flush-only) rely on.

Error policy:
    - LedgerError subclasses propagate unchanged after rollback.
    - Lock timeouts, deadlocks, serialization failures and pool timeouts
      are rolled back and re-raised as ConflictError (retryable).
    - Anything else is rolled back, logged with its traceback and
      re-raised.
    Each failure is logged exactly once, here, with its error code.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Generator, Sequence, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.errors import is_transient_conflict, sqlstate_of
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    CustomerInfo,
    DashboardCounters,
    InvoiceInfo,
    LineRequest,
    ProductInfo,
    StockDiscrepancy,
    StockMovementInfo,
)
from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.domain.movement_rules import MovementType, parse_movement_type
from ledger_kernel.domain.tax import TaxPolicy, ZeroTaxPolicy
from ledger_kernel.exceptions import ConflictError, LedgerError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.product import Product
from ledger_kernel.selectors.catalog_selector import CatalogSelector
from ledger_kernel.selectors.dashboard_selector import DashboardSelector
from ledger_kernel.selectors.invoice_selector import InvoiceSelector
from ledger_kernel.selectors.movement_selector import MovementSelector
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.confirmation_engine import ConfirmationEngine
from ledger_kernel.services.invoice_builder import InvoiceBuilder
from ledger_kernel.services.stock_ledger import StockLedger
from ledger_services.retry import call_with_conflict_retry

logger = get_logger("services.invoicing")

T = TypeVar("T")


class InvoicingService:
    """
    Facade over catalog, invoicing and stock.

    Contract:
        One public call == one transaction.  Nothing a failed call did is
        visible afterwards.

    Usage:
        service = build_invoicing_service()
        draft = service.create_draft(customer.id, due, [LineRequest(p.id, 3)])
        confirmed = service.confirm(draft.id)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        tax_policy: TaxPolicy | None = None,
        number_prefix: str = "INV",
        number_width: int = 6,
        allow_past_due_dates: bool = False,
        conflict_attempts: int = 3,
        conflict_backoff_seconds: float = 0.05,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._tax_policy = tax_policy or ZeroTaxPolicy()
        self._number_prefix = number_prefix
        self._number_width = number_width
        self._allow_past_due_dates = allow_past_due_dates
        self._conflict_attempts = conflict_attempts
        self._conflict_backoff_seconds = conflict_backoff_seconds

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(
        self, operation: str, **context: Any
    ) -> Generator[Session, None, None]:
        """Session scope that commits on success and maps failures."""
        session = self._session_factory()
        t0 = time.monotonic()
        with LogContext.bind(
            correlation_id=uuid4(),
            operation=operation,
            invoice_id=context.get("invoice_id"),
            product_id=context.get("product_id"),
        ):
            try:
                yield session
                session.commit()
                logger.debug(
                    "operation_committed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                )
            except LedgerError as exc:
                session.rollback()
                logger.warning(
                    "operation_rejected",
                    extra={
                        "error_code": exc.code,
                        "error": str(exc),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except (DBAPIError, PoolTimeoutError) as exc:
                session.rollback()
                if not is_transient_conflict(exc):
                    logger.error(
                        "operation_failed",
                        extra={"sqlstate": sqlstate_of(exc)},
                        exc_info=True,
                    )
                    raise
                conflict = ConflictError(operation, str(getattr(exc, "orig", exc)))
                logger.warning(
                    "operation_conflict",
                    extra={
                        "error_code": conflict.code,
                        "sqlstate": sqlstate_of(exc),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise conflict from exc
            except Exception:
                session.rollback()
                logger.error("operation_failed", exc_info=True)
                raise
            finally:
                session.close()

    def _stock(self, session: Session) -> StockLedger:
        return StockLedger(session, self._clock)

    def with_conflict_retry(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """
        Call ``fn`` under call_with_conflict_retry using this facade's
        configured attempts and backoff.

        Usage:
            service.with_conflict_retry(service.confirm, invoice_id)
        """
        return call_with_conflict_retry(
            fn,
            *args,
            attempts=self._conflict_attempts,
            backoff_seconds=self._conflict_backoff_seconds,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_product(
        self,
        sku: str,
        name: str,
        unit_price: Decimal | int | str,
        reorder_threshold: int = 0,
        opening_stock: int = 0,
    ) -> ProductInfo:
        with self._unit_of_work("create_product") as session:
            catalog = CatalogService(session, self._clock, self._stock(session))
            product = catalog.create_product(
                sku, name, unit_price, reorder_threshold, opening_stock
            )
            return ProductInfo.from_model(product)

    def update_price(self, product_id: UUID, unit_price: Decimal | int | str) -> ProductInfo:
        with self._unit_of_work("update_price", product_id=product_id) as session:
            product = CatalogService(session, self._clock).update_price(
                product_id, unit_price
            )
            return ProductInfo.from_model(product)

    def get_product(self, product_id: UUID) -> ProductInfo:
        with self._unit_of_work("get_product", product_id=product_id) as session:
            return CatalogSelector(session).get_product(product_id)

    def find_product_by_sku(self, sku: str) -> ProductInfo | None:
        with self._unit_of_work("find_product_by_sku") as session:
            return CatalogSelector(session).get_product_by_sku(sku)

    def list_products(self, ordering: str = "name") -> list[ProductInfo]:
        with self._unit_of_work("list_products") as session:
            return CatalogSelector(session).list_products(ordering)

    def low_stock_products(self) -> list[ProductInfo]:
        """Products below their reorder threshold, scarcest first."""
        with self._unit_of_work("low_stock_products") as session:
            return CatalogSelector(session).low_stock_products()

    def create_customer(self, name: str, email: str) -> CustomerInfo:
        with self._unit_of_work("create_customer") as session:
            customer = CatalogService(session, self._clock).create_customer(name, email)
            return CustomerInfo.from_model(customer)

    def get_customer(self, customer_id: UUID) -> CustomerInfo:
        with self._unit_of_work("get_customer") as session:
            return CatalogSelector(session).get_customer(customer_id)

    def list_customers(self) -> list[CustomerInfo]:
        with self._unit_of_work("list_customers") as session:
            return CatalogSelector(session).list_customers()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def create_draft(
        self,
        customer_id: UUID,
        due_date: date,
        line_requests: Sequence[LineRequest],
        notes: str | None = None,
    ) -> InvoiceInfo:
        with self._unit_of_work("create_draft") as session:
            builder = InvoiceBuilder(
                session,
                clock=self._clock,
                tax_policy=self._tax_policy,
                number_prefix=self._number_prefix,
                number_width=self._number_width,
                allow_past_due_dates=self._allow_past_due_dates,
            )
            invoice = builder.create_draft(customer_id, due_date, line_requests, notes)
            return InvoiceInfo.from_model(invoice)

    def confirm(self, invoice_id: UUID) -> InvoiceInfo:
        """
        Confirm a draft and decrement stock for every line, atomically.

        Raises:
            NotFoundError, InvalidStateError, InsufficientStockError,
            ConflictError (retryable).
        """
        with self._unit_of_work("confirm", invoice_id=invoice_id) as session:
            engine = ConfirmationEngine(session, self._clock, self._stock(session))
            return InvoiceInfo.from_model(engine.confirm(invoice_id))

    def void(self, invoice_id: UUID) -> InvoiceInfo:
        with self._unit_of_work("void", invoice_id=invoice_id) as session:
            engine = ConfirmationEngine(session, self._clock, self._stock(session))
            return InvoiceInfo.from_model(engine.void(invoice_id))

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        with self._unit_of_work("get_invoice", invoice_id=invoice_id) as session:
            return InvoiceSelector(session).get_invoice(invoice_id)

    def find_invoice_by_number(self, invoice_number: str) -> InvoiceInfo | None:
        with self._unit_of_work("find_invoice_by_number") as session:
            return InvoiceSelector(session).get_by_number(invoice_number)

    def list_invoices(
        self,
        status: InvoiceStatus | str | None = None,
        customer_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[InvoiceInfo]:
        with self._unit_of_work("list_invoices") as session:
            return InvoiceSelector(session).list_invoices(status, customer_id, limit)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def record_movement(
        self,
        product_id: UUID,
        delta: int,
        movement_type: MovementType | str,
        note: str | None = None,
    ) -> StockMovementInfo:
        """
        Record a purchase, return, loss or adjustment.

        Sales are refused: only invoice confirmation creates them.
        """
        with self._unit_of_work("record_movement", product_id=product_id) as session:
            kind = parse_movement_type(movement_type)
            if kind is MovementType.SALE:
                raise ValidationError(
                    "movement_type", "sale movements are created by invoice confirmation"
                )
            ledger = self._stock(session)
            movement = ledger.record_movement(product_id, delta, kind, note=note)
            return StockMovementInfo.from_model(
                movement, session.get(Product, movement.product_id)
            )

    def current_stock(self, product_id: UUID) -> int:
        with self._unit_of_work("current_stock", product_id=product_id) as session:
            return self._stock(session).current_stock(product_id)

    def replayed_stock(self, product_id: UUID) -> int:
        with self._unit_of_work("replayed_stock", product_id=product_id) as session:
            return self._stock(session).replayed_stock(product_id)

    def list_movements(
        self,
        product_id: UUID | None = None,
        invoice_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[StockMovementInfo]:
        with self._unit_of_work("list_movements", product_id=product_id) as session:
            return MovementSelector(session).list_movements(product_id, invoice_id, limit)

    def verify_stock(self) -> list[StockDiscrepancy]:
        with self._unit_of_work("verify_stock") as session:
            return self._stock(session).verify()

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard(self) -> DashboardCounters:
        with self._unit_of_work("dashboard") as session:
            return DashboardSelector(session).counters(self._clock.today())
