"""Pure domain core: periods, quantities, recurrence, classification, profiles."""

from balance_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from balance_kernel.domain.dtos import (
    EntityInfo,
    PeriodReport,
    ReconciliationRow,
    SnapshotDraft,
    SnapshotInfo,
    SnapshotKey,
    TransactionInfo,
)
from balance_kernel.domain.period import PeriodKey, period_bounds, period_key_for, previous_period
from balance_kernel.domain.profiles import (
    ComponentRole,
    ComponentSpec,
    LedgerProfile,
    TransactionQuery,
)
from balance_kernel.domain.quantities import parse_adjustment, to_quantity
from balance_kernel.domain.recurrence import BalanceComputation, compute_balances, compute_closing_balance
from balance_kernel.domain.status import StockLevel, classify_stock_level, summarize_levels

__all__ = [
    "BalanceComputation",
    "Clock",
    "ComponentRole",
    "ComponentSpec",
    "DeterministicClock",
    "EntityInfo",
    "LedgerProfile",
    "PeriodKey",
    "PeriodReport",
    "ReconciliationRow",
    "SnapshotDraft",
    "SnapshotInfo",
    "SnapshotKey",
    "StockLevel",
    "SystemClock",
    "TransactionInfo",
    "TransactionQuery",
    "classify_stock_level",
    "compute_balances",
    "compute_closing_balance",
    "parse_adjustment",
    "period_bounds",
    "period_key_for",
    "previous_period",
    "summarize_levels",
    "to_quantity",
]
