"""
CatalogService -- writes to the product catalog and the customer list.

Responsibility:
    Creates products and customers and changes product prices.  Stock is
    NOT a catalog concern: an opening stock becomes an ``adjustment``
    movement through StockLedger, so the replay invariant holds from the
    first row.

Architecture position:
    Kernel > Services.  Reads for listings live in
    selectors/catalog_selector.py.

Failure modes:
    - ValidationError: empty SKU/name, duplicate SKU, negative or
      over-precise price, negative threshold or opening stock, malformed
      email.
    - NotFoundError: update_price on an unknown product.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.errors import is_unique_violation
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.money import round_money, to_money
from ledger_kernel.domain.movement_rules import MovementType
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.product import Product
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.catalog")

OPENING_BALANCE_NOTE = "opening balance"


def _required_text(field: str, value: str | None, max_length: int) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "must not be empty")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(field, f"must be at most {max_length} characters")
    return text


def _non_negative_int(field: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be a whole number")
    if value < 0:
        raise ValidationError(field, "must not be negative")
    return value


def validate_price(value: Decimal | int | str) -> Decimal:
    """Parse a unit price: non-negative, at most two decimal places."""
    try:
        price = to_money(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("unit_price", str(exc)) from None
    if not price.is_finite():
        raise ValidationError("unit_price", "must be a finite amount")
    if price < 0:
        raise ValidationError("unit_price", "must not be negative")
    if round_money(price) != price:
        raise ValidationError("unit_price", "must have at most two decimal places")
    return round_money(price)


class CatalogService(BaseService[Product]):
    """Product and customer writes."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        stock_ledger: StockLedger | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._stock = stock_ledger or StockLedger(session, self._clock)

    def _sku_taken(self, sku: str) -> bool:
        return (
            self.session.execute(
                select(Product.id).where(Product.sku == sku)
            ).scalar_one_or_none()
            is not None
        )

    def create_product(
        self,
        sku: str,
        name: str,
        unit_price: Decimal | int | str,
        reorder_threshold: int = 0,
        opening_stock: int = 0,
    ) -> Product:
        """
        Insert a product; a non-zero opening_stock is recorded as an
        adjustment movement.

        Postconditions:
            - stock_quantity == opening_stock == replayed_stock(product).
        """
        sku = _required_text("sku", sku, 50)
        name = _required_text("name", name, 255)
        price = validate_price(unit_price)
        reorder_threshold = _non_negative_int("reorder_threshold", reorder_threshold)
        opening_stock = _non_negative_int("opening_stock", opening_stock)

        if self._sku_taken(sku):
            raise ValidationError("sku", f"{sku!r} is already in use")

        # A concurrent insert of the same SKU can land between the check and
        # the flush; the savepoint keeps the caller's transaction usable.
        savepoint = self.session.begin_nested()
        try:
            product = Product(
                sku=sku,
                name=name,
                unit_price=price,
                stock_quantity=0,
                reorder_threshold=reorder_threshold,
            )
            self.session.add(product)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if not is_unique_violation(exc, "uq_product_sku", "products.sku"):
                raise
            raise ValidationError("sku", f"{sku!r} is already in use") from exc

        if opening_stock:
            self._stock.record_movement(
                product.id,
                opening_stock,
                MovementType.ADJUSTMENT,
                note=OPENING_BALANCE_NOTE,
            )

        logger.info(
            "product_created",
            extra={
                "product_id": product.id,
                "sku": sku,
                "unit_price": price,
                "opening_stock": opening_stock,
            },
        )
        return product

    def update_price(self, product_id: UUID, unit_price: Decimal | int | str) -> Product:
        """
        Change a product's list price.

        Existing invoice lines keep the price snapshotted when their draft
        was built.
        """
        price = validate_price(unit_price)
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        old_price = product.unit_price
        product.unit_price = price
        self.session.flush()

        logger.info(
            "product_price_updated",
            extra={
                "product_id": product.id,
                "old_price": round_money(old_price),
                "new_price": price,
            },
        )
        return product

    def create_customer(self, name: str, email: str) -> Customer:
        name = _required_text("name", name, 255)
        email = _required_text("email", email, 255)
        local, _, domain = email.partition("@")
        if not local or not domain:
            raise ValidationError("email", f"{email!r} is not an email address")

        customer = Customer(name=name, email=email)
        self.session.add(customer)
        self.session.flush()

        logger.info("customer_created", extra={"customer_id": customer.id})
        return customer
