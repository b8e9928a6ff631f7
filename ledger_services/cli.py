"""
ledger-admin -- maintenance commands for the ledger database.

Usage:
    ledger-admin [--config PATH] init-db
    ledger-admin [--config PATH] verify-stock
    ledger-admin [--config PATH] dashboard

Every command prints one JSON document on stdout.  verify-stock exits 1
when any product's counter disagrees with its movement log.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from ledger_config import get_active_config
from ledger_kernel.db.engine import create_tables, get_engine
from ledger_kernel.exceptions import LedgerError
from ledger_services.bootstrap import build_invoicing_service


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, default=_json_default, sort_keys=True))


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="ledger-admin",
        description="Inventory and invoicing ledger maintenance",
    )
    p.add_argument(
        "--config",
        default=None,
        help="YAML configuration file (default: $LEDGER_CONFIG or packaged defaults)",
    )
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create any missing tables")
    sub.add_parser("verify-stock", help="Replay movements and compare with stock counters")
    sub.add_parser("dashboard", help="Print the dashboard counters")
    return p.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    config = get_active_config(args.config)
    service = build_invoicing_service(config)

    try:
        if args.command == "init-db":
            create_tables()
            _emit({"status": "ok", "database": get_engine().url.render_as_string(hide_password=True)})
            return 0

        if args.command == "verify-stock":
            discrepancies = service.with_conflict_retry(service.verify_stock)
            _emit(
                {
                    "status": "ok" if not discrepancies else "mismatch",
                    "discrepancies": [asdict(d) for d in discrepancies],
                }
            )
            return 0 if not discrepancies else 1

        counters = service.with_conflict_retry(service.dashboard)
        _emit({"status": "ok", "dashboard": asdict(counters)})
        return 0
    except LedgerError as exc:
        _emit({"status": "error", "code": exc.code, "error": str(exc)})
        return 2


if __name__ == "__main__":
    sys.exit(main())
