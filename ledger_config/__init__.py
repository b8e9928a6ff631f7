"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the ONLY way runtime code obtains
    configuration.  No other component reads configuration files or
    environment variables.

Resolution order (later wins):
    1. Packaged ``defaults.yaml``.
    2. The file named by ``path``, else by ``$LEDGER_CONFIG``.  A file
       replaces the defaults section by section; keys it omits keep the
       schema defaults.
    3. ``$LEDGER_DATABASE_URL`` replaces ``database.url``.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below
    ``ledger_services``.  The kernel MUST NEVER import from ``ledger_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
    - ``yaml.YAMLError`` -- malformed YAML.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    DatabaseConfig,
    InvoicingConfig,
    LedgerConfig,
    RetryConfig,
    TaxConfig,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "LEDGER_CONFIG"
DATABASE_URL_ENV = "LEDGER_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """
    Resolve the active configuration.

    Args:
        path: Explicit YAML file.  When None, ``$LEDGER_CONFIG`` is used if
            set, otherwise the packaged defaults.
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or DEFAULTS_PATH
    config = load_config(Path(path))

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "ledger_config_loaded",
        extra={
            "source": config.source,
            "database_backend": config.database.url.split(":", 1)[0],
            "database_url_overridden": bool(database_url),
            "tax_policy": config.invoicing.tax.policy,
            "number_prefix": config.invoicing.number_prefix,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "LedgerConfig",
    "DatabaseConfig",
    "InvoicingConfig",
    "TaxConfig",
    "RetryConfig",
    "DEFAULTS_PATH",
]
