"""
Configuration loader (``ledger_config.loader``).

Responsibility
--------------
Reads a YAML file and parses it into ``ledger_config.schema`` dataclasses.
Runtime code goes through ``ledger_config.get_active_config()`` instead of
calling these directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DatabaseConfig,
    InvoicingConfig,
    LedgerConfig,
    RetryConfig,
    TaxConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file is an empty mapping."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping")
    return section


def _reject_unknown(name: str, section: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {', '.join(unknown)}")


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, float):
        # YAML floats arrive as binary fractions; go through repr
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} is not a number: {value!r}") from None


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    _reject_unknown(
        "database",
        data,
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "lock_timeout_seconds"},
    )
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
        lock_timeout_seconds=float(
            data.get("lock_timeout_seconds", defaults.lock_timeout_seconds)
        ),
    )


def parse_tax(data: dict[str, Any]) -> TaxConfig:
    _reject_unknown("invoicing.tax", data, {"policy", "rate"})
    return TaxConfig(
        policy=str(data.get("policy", "zero")),
        rate=parse_decimal(data.get("rate", "0"), "invoicing.tax.rate"),
    )


def parse_invoicing(data: dict[str, Any]) -> InvoicingConfig:
    _reject_unknown(
        "invoicing",
        data,
        {"number_prefix", "number_width", "allow_past_due_dates", "tax"},
    )
    defaults = InvoicingConfig()
    return InvoicingConfig(
        number_prefix=str(data.get("number_prefix", defaults.number_prefix)),
        number_width=int(data.get("number_width", defaults.number_width)),
        allow_past_due_dates=bool(
            data.get("allow_past_due_dates", defaults.allow_past_due_dates)
        ),
        tax=parse_tax(_section(data, "tax")),
    )


def parse_retry(data: dict[str, Any]) -> RetryConfig:
    _reject_unknown("retry", data, {"conflict_attempts", "backoff_seconds"})
    defaults = RetryConfig()
    return RetryConfig(
        conflict_attempts=int(data.get("conflict_attempts", defaults.conflict_attempts)),
        backoff_seconds=float(data.get("backoff_seconds", defaults.backoff_seconds)),
    )


def parse_config(data: dict[str, Any], source: str = "<dict>") -> LedgerConfig:
    _reject_unknown("configuration", data, {"database", "invoicing", "retry", "log_level"})
    return LedgerConfig(
        database=parse_database(_section(data, "database")),
        invoicing=parse_invoicing(_section(data, "invoicing")),
        retry=parse_retry(_section(data, "retry")),
        log_level=str(data.get("log_level", "INFO")).upper(),
        source=source,
    )


def load_config(path: Path) -> LedgerConfig:
    """Load and parse one YAML configuration file."""
    return parse_config(load_yaml_file(path), source=str(path))
