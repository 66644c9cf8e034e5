"""
SnapshotGateway -- get / create / update of period snapshots.

Responsibility:
    Single path through which snapshots are persisted.  Turns the store's
    uniqueness conflict into a read of the winning row, and recomputes the
    closing balance and status when a manual adjustment changes.

Architecture position:
    Kernel > Services -- imperative shell over an injected BalanceStore.
    Called by ReconciliationService; never calls it back.

Invariants enforced:
    - Found snapshots are authoritative: ``get`` never recomputes.
    - ``create`` performs one insert.  A SnapshotConflictError from the
      store means another writer won; the existing row is returned with
      ``created=False``.
    - ``update_adjustment`` rewrites only adjustment, closing, status,
      min_level and adjusted_at.  Opening, inflow and outflow are read from
      the stored row and never changed.

Failure modes:
    - StoreReadFailure / StoreWriteFailure propagate from the store.
    - SnapshotNotFoundError from ``update_adjustment`` on an unknown id.
    - SnapshotConflictError re-raised if the conflicting row cannot be read
      back (it was removed between the insert and the read).
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from balance_kernel.domain.clock import Clock, SystemClock
from balance_kernel.domain.dtos import SnapshotDraft, SnapshotInfo, SnapshotKey
from balance_kernel.domain.period import PeriodKey
from balance_kernel.domain.recurrence import BalanceComputation
from balance_kernel.domain.status import classify_stock_level
from balance_kernel.exceptions import SnapshotConflictError, SnapshotNotFoundError
from balance_kernel.logging_config import get_logger
from balance_kernel.store.base import BalanceStore

logger = get_logger("services.snapshot_gateway")


class SnapshotGateway:
    """
    Persistence rules for period snapshots.

    Contract:
        Accepts a BalanceStore and an optional Clock.  Never commits; with
        the SQL store every write is flushed inside the caller's session.
    """

    def __init__(self, store: BalanceStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def get(
        self,
        ledger: str,
        entity_id: str,
        period: PeriodKey,
        dimension: str = "",
    ) -> SnapshotInfo | None:
        return self._store.read_snapshot(SnapshotKey(ledger, entity_id, period, dimension))

    def closing_balance_of(
        self,
        ledger: str,
        entity_id: str,
        period: PeriodKey,
        dimension: str = "",
    ) -> Decimal | None:
        """Closing balance stored for the period, or None if never reconciled."""
        snapshot = self.get(ledger, entity_id, period, dimension)
        return snapshot.closing_balance if snapshot is not None else None

    def create(self, draft: SnapshotDraft) -> tuple[SnapshotInfo, bool]:
        """
        Insert ``draft`` once.

        Returns:
            (snapshot, created).  ``created`` is False when a concurrent
            writer already holds the key; the stored row is returned as-is.
        """
        if draft.reconciled_at is None:
            draft = replace(draft, reconciled_at=self._clock.now())

        try:
            snapshot = self._store.write_snapshot(draft)
        except SnapshotConflictError:
            existing = self._store.read_snapshot(draft.key)
            if existing is None:
                raise
            logger.info(
                "snapshot_conflict_resolved",
                extra={
                    "snapshot_id": existing.id,
                    "snapshot_key": str(draft.key),
                },
            )
            return existing, False

        logger.info(
            "snapshot_created",
            extra={
                "snapshot_id": snapshot.id,
                "snapshot_key": str(snapshot.key),
                "opening_balance": snapshot.opening_balance,
                "closing_balance": snapshot.closing_balance,
                "status": snapshot.status.value,
            },
        )
        return snapshot, True

    def update_adjustment(
        self,
        snapshot_id: str,
        adjustment: Decimal,
        threshold: Decimal,
    ) -> SnapshotInfo:
        """
        Apply a new manual adjustment to a stored snapshot.

        Args:
            snapshot_id: Snapshot to update.
            adjustment: Replacement adjustment (not a delta).
            threshold: The entity's current minimum threshold; becomes the
                snapshot's min_level.

        Raises:
            SnapshotNotFoundError: No snapshot has this id.
        """
        current = self._store.read_snapshot_by_id(snapshot_id)
        if current is None:
            raise SnapshotNotFoundError(snapshot_id)

        stored = BalanceComputation(
            opening_balance=current.opening_balance,
            inflow=current.inflow,
            outflow=current.outflow,
            adjustment=current.adjustment,
            closing_balance=current.closing_balance,
        )
        recomputed = stored.with_adjustment(adjustment)
        level = classify_stock_level(recomputed.closing_balance, threshold)

        updated = self._store.update_snapshot_adjustment(
            snapshot_id,
            adjustment=recomputed.adjustment,
            closing_balance=recomputed.closing_balance,
            status=level,
            min_level=threshold,
            adjusted_at=self._clock.now(),
        )

        logger.info(
            "snapshot_adjusted",
            extra={
                "snapshot_id": snapshot_id,
                "previous_adjustment": current.adjustment,
                "adjustment": updated.adjustment,
                "closing_balance": updated.closing_balance,
                "status": updated.status.value,
            },
        )
        return updated
