"""
BaseService -- abstract base for all kernel services.

Responsibility:
    The common constructor and session contract for every write-side
    service.  Services receive a SQLAlchemy ``Session`` and persist with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services.  Every service in ``ledger_kernel/services/`` extends
    this class.

Invariants enforced:
    - Services flush within the caller's transaction and never commit or
      roll back.  InvoicingService (ledger_services) owns the boundary, so a
      confirmation's movements, counters and status change commit together
      or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide listing queries -- those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
