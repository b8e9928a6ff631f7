"""
Config -> Kernel bridges.

Turn configuration sections into kernel objects.  These live here because
the kernel must never import ledger_config.
"""

from __future__ import annotations

from ledger_config.schema import TaxConfig
from ledger_kernel.domain.tax import FlatRateTaxPolicy, TaxPolicy, ZeroTaxPolicy


def build_tax_policy(tax: TaxConfig) -> TaxPolicy:
    if tax.policy == "flat_rate":
        return FlatRateTaxPolicy(tax.rate)
    return ZeroTaxPolicy()
