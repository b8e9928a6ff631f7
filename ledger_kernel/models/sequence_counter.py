"""
Module: ledger_kernel.models.sequence_counter
Responsibility: Named monotonic counters backing document numbering.
Architecture position: Kernel > Models.  Written only by SequenceService.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is one named sequence with its last allocated value.  Row-level
    locking in SequenceService keeps allocation monotonic under concurrency.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("name", name="uq_sequence_counter_name"),
    )

    # Sequence name (e.g. "invoice_number")
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    current_value: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
