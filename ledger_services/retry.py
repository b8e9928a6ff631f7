"""
Conflict retry helper.

A ConflictError means the whole transaction was rolled back and nothing it
did is visible, so calling the same operation again is safe.  This helper
does that a bounded number of times with exponential backoff.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from ledger_kernel.exceptions import ConflictError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


def call_with_conflict_retry(
    fn: Callable[..., T],
    *args,
    attempts: int = 3,
    backoff_seconds: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> T:
    """
    Call ``fn(*args, **kwargs)``, retrying on ConflictError.

    Waits ``backoff_seconds * 2 ** (n - 1)`` before retry n.  Any other
    exception propagates immediately; the last ConflictError propagates
    once ``attempts`` calls have failed.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except ConflictError as exc:
            if attempt == attempts:
                logger.error(
                    "conflict_retry_exhausted",
                    extra={"attempts": attempts, "operation": exc.operation},
                )
                raise
            delay = backoff_seconds * 2 ** (attempt - 1)
            logger.info(
                "conflict_retry_scheduled",
                extra={
                    "attempt": attempt,
                    "operation": exc.operation,
                    "delay_seconds": delay,
                },
            )
            sleep(delay)
    raise AssertionError("unreachable")
