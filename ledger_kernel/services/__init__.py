"""Kernel services - write side.  Flush only; the caller commits."""

from ledger_kernel.services.base import BaseService
from ledger_kernel.services.catalog_service import CatalogService
from ledger_kernel.services.confirmation_engine import ConfirmationEngine
from ledger_kernel.services.invoice_builder import InvoiceBuilder
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.stock_ledger import StockLedger

__all__ = [
    "BaseService",
    "CatalogService",
    "ConfirmationEngine",
    "InvoiceBuilder",
    "SequenceService",
    "StockLedger",
]
