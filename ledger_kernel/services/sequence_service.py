"""
SequenceService -- monotonic number allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing values for named sequences and formats
    invoice numbers from them (``INV-000001``).  A dedicated counter row per
    sequence is locked with ``SELECT ... FOR UPDATE`` for the duration of
    the caller's transaction.

Architecture position:
    Kernel > Services.  Called by InvoiceBuilder.

Invariants enforced:
    - The counter row is the sole source of the next value; MAX(...) + 1
      over the invoices table is never used.
    - The increment is transactional: a rolled-back draft returns its
      number.

Failure modes:
    - IntegrityError: two transactions creating the same counter at once
      (handled via savepoint rollback and re-read).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Transactional sequence numbers.

    Usage:
        seq = SequenceService(session)
        number = seq.next_invoice_number("INV", 6)   # "INV-000001"
        # If the transaction rolls back, the number is not consumed
    """

    INVOICE_NUMBER = "invoice_number"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the named counter (creating it on first use), increment it and
        return the new value.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously committed for this sequence.
            - The counter row stays locked until the transaction completes.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use.  Another transaction may create the row at the same
            # moment; the savepoint keeps the caller's work intact if it does.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def next_invoice_number(self, prefix: str = "INV", width: int = 6) -> str:
        value = self.next_value(self.INVOICE_NUMBER)
        return f"{prefix}-{value:0{width}d}"
