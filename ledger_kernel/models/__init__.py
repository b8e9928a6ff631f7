"""ORM models for the inventory and invoicing ledger."""

from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import Invoice, InvoiceLine
from ledger_kernel.models.product import Product
from ledger_kernel.models.sequence_counter import SequenceCounter
from ledger_kernel.models.stock_movement import StockMovement

__all__ = [
    "Customer",
    "Invoice",
    "InvoiceLine",
    "Product",
    "SequenceCounter",
    "StockMovement",
]
