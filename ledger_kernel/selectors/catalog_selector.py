"""
Module: ledger_kernel.selectors.catalog_selector
Responsibility: Read access to products and customers.
Architecture position: Kernel > Selectors.

Orderings accepted by list_products:
    name, sku, unit_price, stock_quantity -- each optionally prefixed with
    "-" for descending.  SKU is the tiebreaker, so equal keys still list in
    a stable order.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import CustomerInfo, ProductInfo
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.product import Product
from ledger_kernel.selectors.base import BaseSelector

PRODUCT_ORDERINGS = {
    "name": Product.name,
    "sku": Product.sku,
    "unit_price": Product.unit_price,
    "stock_quantity": Product.stock_quantity,
}


def _product_order_by(ordering: str):
    descending = ordering.startswith("-")
    key = ordering[1:] if descending else ordering
    column = PRODUCT_ORDERINGS.get(key)
    if column is None:
        allowed = ", ".join(sorted(PRODUCT_ORDERINGS))
        raise ValidationError(
            "ordering", f"{ordering!r} is not one of: {allowed} (optionally '-' prefixed)"
        )
    return (column.desc() if descending else column.asc(), Product.sku.asc())


class CatalogSelector(BaseSelector[Product]):
    """Products and customers as DTOs."""

    def get_product(self, product_id: UUID) -> ProductInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return ProductInfo.from_model(product)

    def get_product_by_sku(self, sku: str) -> ProductInfo | None:
        product = self.session.execute(
            select(Product).where(Product.sku == sku)
        ).scalar_one_or_none()
        return ProductInfo.from_model(product) if product is not None else None

    def list_products(self, ordering: str = "name") -> list[ProductInfo]:
        order_by = _product_order_by(ordering)
        products = self.session.execute(select(Product).order_by(*order_by)).scalars()
        return [ProductInfo.from_model(product) for product in products]

    def low_stock_products(self) -> list[ProductInfo]:
        """Products whose counter is below their reorder threshold."""
        products = self.session.execute(
            select(Product)
            .where(Product.stock_quantity < Product.reorder_threshold)
            .order_by(Product.stock_quantity.asc(), Product.sku.asc())
        ).scalars()
        return [ProductInfo.from_model(product) for product in products]

    def get_customer(self, customer_id: UUID) -> CustomerInfo:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return CustomerInfo.from_model(customer)

    def list_customers(self) -> list[CustomerInfo]:
        customers = self.session.execute(
            select(Customer).order_by(Customer.name.asc(), Customer.email.asc())
        ).scalars()
        return [CustomerInfo.from_model(customer) for customer in customers]
