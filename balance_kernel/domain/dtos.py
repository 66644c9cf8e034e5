"""
DTOs -- immutable data passed between stores, services and callers.

Responsibility:
    Entity, transaction and snapshot records as seen by the engine, plus the
    per-row and per-period reconciliation results returned to callers.

Architecture position:
    Kernel > Domain -- free of ORM and store dependencies.  Stores convert
    their rows into these DTOs at the boundary; services never hand ORM
    objects to callers.

Data flow:
    EntityInfo + TransactionInfo -> SnapshotDraft -> SnapshotInfo
    -> ReconciliationRow -> PeriodReport
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from balance_kernel.domain.period import PeriodKey
from balance_kernel.domain.status import StockLevel, classify_stock_level, summarize_levels


def _freeze(components: Mapping[str, Decimal]) -> Mapping[str, Decimal]:
    if isinstance(components, MappingProxyType):
        return components
    return MappingProxyType(dict(components))


@dataclass(frozen=True, slots=True)
class EntityInfo:
    """A raw material or product as read from the master data store."""

    id: str
    source: str
    name: str
    category: str
    unit: str
    min_stock: Decimal
    current_stock: Decimal


@dataclass(frozen=True, slots=True)
class TransactionInfo:
    """One transaction row matched by a ``TransactionQuery``."""

    id: str
    source: str
    entity_id: str
    occurred_on: date
    quantity: Decimal


@dataclass(frozen=True, slots=True)
class SnapshotKey:
    """Composite identity of a period snapshot."""

    ledger: str
    entity_id: str
    period: PeriodKey
    dimension: str = ""

    def previous(self) -> SnapshotKey:
        """Same ledger/entity/dimension, one period back."""
        return replace(self, period=self.period.previous())

    def __str__(self) -> str:
        base = f"{self.ledger}/{self.entity_id}/{self.period}"
        return f"{base}/{self.dimension}" if self.dimension else base


@dataclass(frozen=True, slots=True)
class SnapshotDraft:
    """A fully computed snapshot not yet persisted."""

    key: SnapshotKey
    components: Mapping[str, Decimal]
    opening_balance: Decimal
    inflow: Decimal
    outflow: Decimal
    adjustment: Decimal
    closing_balance: Decimal
    min_level: Decimal
    status: StockLevel
    reconciled_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", _freeze(self.components))


@dataclass(frozen=True, slots=True)
class SnapshotInfo:
    """
    A persisted period snapshot.

    Guarantees:
        ``closing_balance == opening_balance + inflow - outflow + adjustment``
        for every snapshot written by the gateway (see ``balance_holds``).
    """

    id: str
    key: SnapshotKey
    components: Mapping[str, Decimal]
    opening_balance: Decimal
    inflow: Decimal
    outflow: Decimal
    adjustment: Decimal
    closing_balance: Decimal
    min_level: Decimal
    status: StockLevel
    reconciled_at: datetime | None = None
    adjusted_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", _freeze(self.components))

    @property
    def ledger(self) -> str:
        return self.key.ledger

    @property
    def entity_id(self) -> str:
        return self.key.entity_id

    @property
    def period(self) -> PeriodKey:
        return self.key.period

    @property
    def dimension(self) -> str:
        return self.key.dimension

    @property
    def balance_holds(self) -> bool:
        expected = self.opening_balance + self.inflow - self.outflow + self.adjustment
        return expected == self.closing_balance

    def classified_against(self, threshold: Decimal) -> SnapshotInfo:
        """Copy whose status is re-derived for ``threshold``."""
        level = classify_stock_level(self.closing_balance, threshold)
        if level == self.status and threshold == self.min_level:
            return self
        return replace(self, status=level, min_level=threshold)

    @classmethod
    def from_draft(
        cls, snapshot_id: str, draft: SnapshotDraft, adjusted_at: datetime | None = None
    ) -> SnapshotInfo:
        return cls(
            id=snapshot_id,
            key=draft.key,
            components=draft.components,
            opening_balance=draft.opening_balance,
            inflow=draft.inflow,
            outflow=draft.outflow,
            adjustment=draft.adjustment,
            closing_balance=draft.closing_balance,
            min_level=draft.min_level,
            status=draft.status,
            reconciled_at=draft.reconciled_at,
            adjusted_at=adjusted_at,
        )


@dataclass(frozen=True, slots=True)
class ReconciliationRow:
    """
    Outcome for one (entity, dimension) in a batch.

    Exactly one of ``snapshot`` / ``error`` is set.  A failed row is kept in
    the report so callers can flag it.  ``entity`` is None only when the
    entity or snapshot could not be found: ``entity_id`` then identifies a
    requested entity, ``snapshot_id`` an adjusted snapshot.
    """

    entity: EntityInfo | None
    dimension: str = ""
    snapshot: SnapshotInfo | None = None
    created: bool = False
    error: str | None = None
    error_code: str | None = None
    snapshot_id: str | None = None
    entity_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> StockLevel | None:
        return self.snapshot.status if self.snapshot is not None else None


@dataclass(frozen=True, slots=True)
class PeriodReport:
    """All rows produced by one reconcile or apply-adjustments action."""

    ledger: str
    period: PeriodKey | None
    rows: tuple[ReconciliationRow, ...] = field(default_factory=tuple)

    @property
    def snapshots(self) -> tuple[SnapshotInfo, ...]:
        return tuple(r.snapshot for r in self.rows if r.snapshot is not None)

    @property
    def failed_rows(self) -> tuple[ReconciliationRow, ...]:
        return tuple(r for r in self.rows if not r.ok)

    @property
    def created_count(self) -> int:
        return sum(1 for r in self.rows if r.created)

    @property
    def summary(self) -> dict[str, int]:
        counts = summarize_levels(s.status for s in self.snapshots)
        counts["failed"] = len(self.failed_rows)
        return counts
