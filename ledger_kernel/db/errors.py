"""
Module: ledger_kernel.db.errors
Responsibility: Classify low-level database failures.  Decides whether a
    DBAPI error means "a concurrent transaction got in the way" (retryable,
    surfaced as ConflictError) or a genuine fault that must propagate as-is.
Architecture position: Kernel > DB.  No imports from models/ or services/.
"""

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

# SQLSTATE codes that mean the transaction lost a race or ran out of time
#   40001 serialization_failure
#   40P01 deadlock_detected
#   55P03 lock_not_available (lock_timeout expired)
#   57014 query_canceled (statement_timeout expired)
TRANSIENT_SQLSTATES: frozenset[str] = frozenset({"40001", "40P01", "55P03", "57014"})

_SQLITE_LOCK_MESSAGES = (
    "database is locked",
    "database table is locked",
    "database schema is locked",
)


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE carried by a DBAPI error, if the driver exposes one."""
    orig = getattr(exc, "orig", exc)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient_conflict(exc: BaseException) -> bool:
    """
    True if exc is a lock timeout, deadlock, serialization failure or pool
    timeout.

    These all leave the database untouched once the transaction is rolled
    back, so the operation can be repeated safely.
    """
    if isinstance(exc, PoolTimeoutError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if sqlstate_of(exc) in TRANSIENT_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)


def is_unique_violation(exc: BaseException, constraint_name: str, column: str) -> bool:
    """
    True if exc is the unique constraint ``constraint_name`` rejecting a row.

    PostgreSQL reports the constraint name through psycopg2's ``diag``;
    SQLite only names the column ("UNIQUE constraint failed: table.column").
    """
    orig = getattr(exc, "orig", exc)
    diag = getattr(orig, "diag", None)
    if getattr(diag, "constraint_name", None) == constraint_name:
        return True
    message = str(orig)
    return constraint_name in message or f"UNIQUE constraint failed: {column}" in message
