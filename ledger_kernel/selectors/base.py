"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, the
    query side of the services/selectors split.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/dtos.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only: selectors never call session.add(), delete(), flush() or
      commit().
    - Selectors return frozen DTOs, never ORM rows.
    - The caller owns the session and its transaction scope.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Abstract base class for all selectors."""

    def __init__(self, session: Session):
        self.session = session
