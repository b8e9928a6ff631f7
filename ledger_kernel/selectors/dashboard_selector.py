"""
Module: ledger_kernel.selectors.dashboard_selector
Responsibility: The four back-office dashboard counters.
Architecture position: Kernel > Selectors.

Definitions:
    total_products    every product row
    low_stock         stock_quantity < reorder_threshold (numeric compare)
    monthly_revenue   sum(total) of confirmed invoices issued in the month
                      containing ``today``
    pending_invoices  invoices still in draft
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import DashboardCounters
from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.domain.money import round_money
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.models.product import Product
from ledger_kernel.selectors.base import BaseSelector


def month_bounds(today: date) -> tuple[date, date]:
    """[first day of the month, first day of the next month)."""
    start = today.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class DashboardSelector(BaseSelector[Product]):
    def counters(self, today: date) -> DashboardCounters:
        total_products = self.session.execute(select(func.count(Product.id))).scalar_one()

        low_stock = self.session.execute(
            select(func.count(Product.id)).where(
                Product.stock_quantity < Product.reorder_threshold
            )
        ).scalar_one()

        start, end = month_bounds(today)
        revenue = self.session.execute(
            select(func.coalesce(func.sum(Invoice.total), 0)).where(
                Invoice.status == InvoiceStatus.CONFIRMED.value,
                Invoice.issue_date >= start,
                Invoice.issue_date < end,
            )
        ).scalar_one()

        pending = self.session.execute(
            select(func.count(Invoice.id)).where(
                Invoice.status == InvoiceStatus.DRAFT.value
            )
        ).scalar_one()

        return DashboardCounters(
            total_products=int(total_products),
            low_stock=int(low_stock),
            monthly_revenue=round_money(Decimal(str(revenue))),
            pending_invoices=int(pending),
        )
