"""
Balance Kernel - period-based stock reconciliation

Monthly snapshots per tracked entity with:
- Opening balance carried from the prior period's closing balance
- Inflow / outflow totals aggregated from transaction history
- Manual adjustments that recompute closing and status
- Stock-level classification against the entity's minimum threshold
- One snapshot per (ledger, entity, period, dimension)
"""

__version__ = "0.1.0"
