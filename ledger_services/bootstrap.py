"""
Wiring: configuration -> engine -> InvoicingService.

The one place that reads LedgerConfig and turns it into live objects.
"""

from __future__ import annotations

from ledger_config import LedgerConfig, get_active_config
from ledger_config.bridges import build_tax_policy
from ledger_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import configure_logging
from ledger_services.invoicing_service import InvoicingService


def init_database(config: LedgerConfig, create_schema: bool = False) -> None:
    """Initialize the engine from config and install the write listeners."""
    configure_logging(level=config.log_level)
    db = config.database
    init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        lock_timeout_seconds=db.lock_timeout_seconds,
    )
    register_immutability_listeners()
    if create_schema:
        create_tables()


def build_invoicing_service(
    config: LedgerConfig | None = None,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> InvoicingService:
    """
    Build a ready-to-use InvoicingService.

    Args:
        config: Defaults to get_active_config().
        clock: Defaults to SystemClock().
        create_schema: Create missing tables first.
    """
    config = config or get_active_config()
    init_database(config, create_schema=create_schema)
    invoicing = config.invoicing
    return InvoicingService(
        get_session_factory(),
        clock=clock or SystemClock(),
        tax_policy=build_tax_policy(invoicing.tax),
        number_prefix=invoicing.number_prefix,
        number_width=invoicing.number_width,
        allow_past_due_dates=invoicing.allow_past_due_dates,
        conflict_attempts=config.retry.conflict_attempts,
        conflict_backoff_seconds=config.retry.backoff_seconds,
    )
