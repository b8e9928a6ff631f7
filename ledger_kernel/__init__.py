"""
Ledger Kernel

The transactional core of the inventory & invoicing ledger:
- Catalog of products and customers
- Draft invoice assembly with price snapshots
- Append-only stock movement log with a materialized stock counter
- Atomic invoice confirmation (all lines decremented or none)
"""

__version__ = "0.1.0"
