"""
Ledger configuration schema.

Frozen dataclasses the YAML is parsed into.  Each section validates its own
values in ``__post_init__`` so a bad file fails at load time, not on the
first invoice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

TAX_POLICIES = ("zero", "flat_rate")


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    lock_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")
        if self.max_overflow < 0:
            raise ValueError(
                f"database.max_overflow must be >= 0, got {self.max_overflow}"
            )
        if self.pool_timeout <= 0:
            raise ValueError(
                f"database.pool_timeout must be positive, got {self.pool_timeout}"
            )
        if self.lock_timeout_seconds <= 0:
            raise ValueError(
                "database.lock_timeout_seconds must be positive, "
                f"got {self.lock_timeout_seconds}"
            )


@dataclass(frozen=True)
class TaxConfig:
    policy: str = "zero"
    rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.policy not in TAX_POLICIES:
            raise ValueError(
                f"invoicing.tax.policy must be one of {TAX_POLICIES}, got {self.policy!r}"
            )
        if self.rate < 0:
            raise ValueError(f"invoicing.tax.rate must be >= 0, got {self.rate}")


@dataclass(frozen=True)
class InvoicingConfig:
    number_prefix: str = "INV"
    number_width: int = 6
    allow_past_due_dates: bool = False
    tax: TaxConfig = field(default_factory=TaxConfig)

    def __post_init__(self) -> None:
        if not self.number_prefix or len(self.number_prefix) > 20:
            raise ValueError("invoicing.number_prefix must be 1-20 characters")
        if not 1 <= self.number_width <= 20:
            raise ValueError(
                f"invoicing.number_width must be between 1 and 20, got {self.number_width}"
            )


@dataclass(frozen=True)
class RetryConfig:
    conflict_attempts: int = 3
    backoff_seconds: float = 0.05

    def __post_init__(self) -> None:
        if self.conflict_attempts < 1:
            raise ValueError(
                f"retry.conflict_attempts must be >= 1, got {self.conflict_attempts}"
            )
        if self.backoff_seconds < 0:
            raise ValueError(
                f"retry.backoff_seconds must be >= 0, got {self.backoff_seconds}"
            )


@dataclass(frozen=True)
class LedgerConfig:
    """The complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    invoicing: InvoicingConfig = field(default_factory=InvoicingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    log_level: str = "INFO"
    source: str = "<defaults>"

    def __post_init__(self) -> None:
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level is not a logging level: {self.log_level!r}")
