"""
ledger_services -- public API of the inventory and invoicing ledger.

Responsibility:
    The transactional facade (InvoicingService), its wiring from
    configuration, the conflict retry helper and the admin CLI.  This is
    the only layer that commits.

Architecture position:
    Services -- above ``ledger_kernel`` and ``ledger_config``.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        ledger_services/ -> ledger_kernel/    (allowed)
        ledger_services/ -> ledger_config/    (allowed)
        ledger_kernel/   -> ledger_services/  (FORBIDDEN)
        ledger_kernel/   -> ledger_config/    (FORBIDDEN)
"""

from ledger_services.bootstrap import build_invoicing_service, init_database
from ledger_services.invoicing_service import InvoicingService
from ledger_services.retry import call_with_conflict_retry

__all__ = [
    "InvoicingService",
    "build_invoicing_service",
    "call_with_conflict_retry",
    "init_database",
]
