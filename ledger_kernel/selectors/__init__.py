"""Kernel selectors - read side.  Return DTOs, never mutate."""

from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.catalog_selector import PRODUCT_ORDERINGS, CatalogSelector
from ledger_kernel.selectors.dashboard_selector import DashboardSelector
from ledger_kernel.selectors.invoice_selector import InvoiceSelector
from ledger_kernel.selectors.movement_selector import MovementSelector

__all__ = [
    "BaseSelector",
    "CatalogSelector",
    "DashboardSelector",
    "InvoiceSelector",
    "MovementSelector",
    "PRODUCT_ORDERINGS",
]
