"""
Status Classifier -- three-tier stock level.

Responsibility:
    Maps (closing balance, minimum threshold) to NORMAL / LOW / OUT.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - OUT is checked before LOW: a zero or negative balance is OUT whatever
      the threshold.
    - A balance exactly equal to the threshold is NORMAL.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum


class StockLevel(str, Enum):
    """Derived status of a closing balance."""

    NORMAL = "normal"
    LOW = "low"
    OUT = "out"

    @property
    def label(self) -> str:
        """Badge text shown on the status pages."""
        return _LABELS[self]


_LABELS = {
    StockLevel.NORMAL: "In Stock",
    StockLevel.LOW: "Low Stock",
    StockLevel.OUT: "Out of Stock",
}


def classify_stock_level(closing_balance: Decimal, minimum_threshold: Decimal) -> StockLevel:
    """Classify a closing balance against the entity's minimum threshold."""
    if closing_balance <= 0:
        return StockLevel.OUT
    if closing_balance < minimum_threshold:
        return StockLevel.LOW
    return StockLevel.NORMAL


def summarize_levels(levels: Iterable[StockLevel]) -> dict[str, int]:
    """Count of rows per level, every level present (zero if unseen)."""
    counts = Counter(levels)
    return {level.value: counts.get(level, 0) for level in StockLevel}
