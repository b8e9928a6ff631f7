"""
Module: ledger_kernel.models.customer
Responsibility: ORM persistence for customers invoices are issued to.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Customer(TrackedBase):
    """Customer reference data.  Read-only as far as invoicing is concerned."""

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customer_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Customer {self.name} <{self.email}>>"
