"""
ReconciliationService -- period status computation and adjustment edits.

Responsibility:
    Orchestrates the balance rollover for one ledger and one period: for
    each entity (and dimension value) it returns the stored snapshot, or
    derives the opening balance, aggregates the configured components,
    applies the recurrence and persists the result through the gateway.
    Also applies user-entered adjustments and writes the new closing
    balance back onto the entity.

Architecture position:
    Kernel > Services -- imperative shell.  Entry point used by presentation
    code (``scripts/period_status.py``).  Depends on the gateway, the
    aggregator and the pure domain functions.

Invariants enforced:
    - Opening balance is the prior period's closing balance for the same
      (ledger, entity, dimension), or the entity's seed field when no prior
      snapshot exists.  Only one period back is consulted.
    - Each snapshot is computed completely, then inserted once.
    - New snapshots carry a zero adjustment; adjustments never carry
      forward.
    - Per-row isolation: each row runs inside ``store.row_scope()``.  A
      BalanceKernelError for one entity undoes that row's writes and
      becomes a failed row in the report.  Rows already processed keep
      their results and no row is dropped.
    - A requested entity id that matches no entity is reported as an
      ENTITY_NOT_FOUND row.
    - An adjustment and its entity stock write-back succeed or fail
      together.
    - The adjustment path is the only writer of the entity stock cache.

Failure modes:
    - UnknownLedgerError before any row is processed.
    - StoreReadFailure from listing entities aborts the action (there are no
      rows to attach it to).
    - Everything else is captured on ReconciliationRow.error / error_code.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import date
from uuid import uuid4

from balance_kernel.domain.aggregation import TransactionAggregator
from balance_kernel.domain.clock import Clock, SystemClock
from balance_kernel.domain.dtos import (
    EntityInfo,
    PeriodReport,
    ReconciliationRow,
    SnapshotDraft,
    SnapshotInfo,
    SnapshotKey,
)
from balance_kernel.domain.period import PeriodKey, period_key_for
from balance_kernel.domain.profiles import LedgerProfile
from balance_kernel.domain.quantities import ZERO, is_valid_adjustment, parse_adjustment
from balance_kernel.domain.recurrence import compute_balances
from balance_kernel.domain.status import classify_stock_level
from balance_kernel.exceptions import (
    BalanceKernelError,
    EntityNotFoundError,
    SnapshotNotFoundError,
    UnknownLedgerError,
)
from balance_kernel.logging_config import LogContext, get_logger
from balance_kernel.services.snapshot_gateway import SnapshotGateway
from balance_kernel.store.base import BalanceStore

logger = get_logger("services.reconciliation")


class ReconciliationService:
    """
    Generic balance engine, parameterized by ledger profile.

    Contract:
        ``profiles`` maps ledger name to LedgerProfile, normally from
        ``balance_config.get_active_profiles()``.  The service never
        commits; the caller owns the transaction.

    Non-goals:
        - Does NOT process entities in parallel.  A SQLAlchemy session is
          not shareable across threads.
        - Does NOT recompute an existing snapshot.  Late transactions for a
          reconciled period are not picked up.
    """

    def __init__(
        self,
        store: BalanceStore,
        profiles: Mapping[str, LedgerProfile],
        clock: Clock | None = None,
    ):
        self._store = store
        self._profiles = dict(profiles)
        self._clock = clock or SystemClock()
        self._gateway = SnapshotGateway(store, self._clock)
        self._aggregator = TransactionAggregator(store)

    @property
    def gateway(self) -> SnapshotGateway:
        return self._gateway

    def profile(self, ledger: str) -> LedgerProfile:
        """
        Profile configured for ``ledger``.

        Raises:
            UnknownLedgerError: No profile under that name.
        """
        try:
            return self._profiles[ledger]
        except KeyError:
            raise UnknownLedgerError(ledger, tuple(sorted(self._profiles))) from None

    # ------------------------------------------------------------------
    # Period status
    # ------------------------------------------------------------------

    def reconcile_period(
        self,
        ledger: str,
        period_date: date,
        entity_ids: Sequence[str] | None = None,
        dimension: str | None = None,
    ) -> PeriodReport:
        """
        Get or create the snapshot of every entity for the period containing
        ``period_date``.

        Args:
            ledger: Ledger profile name (``stock``, ``production``, ``inventory``).
            period_date: Any date in the target month.
            entity_ids: Restrict to these entities; all entities when None.
            dimension: For a dimensioned ledger, reconcile this value only.
                Every configured value when None.  Ignored otherwise.

        Returns:
            PeriodReport with one row per (entity, dimension), in entity
            name order then dimension order, followed by one failed row per
            requested id that matched no entity.
        """
        profile = self.profile(ledger)
        period = period_key_for(period_date)
        dimensions = profile.dimensions_for(dimension)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            ledger=ledger,
            period=str(period),
            dimension=dimension,
        ):
            entities = self._store.query_entities(profile.entity_source, entity_ids)
            logger.info(
                "reconciliation_started",
                extra={
                    "entity_count": len(entities),
                    "dimension_count": len(dimensions),
                },
            )

            rows: list[ReconciliationRow] = []
            for entity in entities:
                for dim in dimensions:
                    rows.append(self._reconcile_row(profile, entity, period, dim))
            if entity_ids is not None:
                rows.extend(self._missing_entity_rows(profile, entities, entity_ids))

            report = PeriodReport(ledger=ledger, period=period, rows=tuple(rows))
            logger.info(
                "reconciliation_completed",
                extra={
                    "row_count": len(report.rows),
                    "created_count": report.created_count,
                    "summary": report.summary,
                },
            )
            return report

    def _reconcile_row(
        self,
        profile: LedgerProfile,
        entity: EntityInfo,
        period: PeriodKey,
        dimension: str,
    ) -> ReconciliationRow:
        try:
            with self._store.row_scope():
                snapshot, created = self._get_or_create(profile, entity, period, dimension)
        except BalanceKernelError as exc:
            logger.warning(
                "reconciliation_row_failed",
                extra={
                    "entity_id": entity.id,
                    "row_dimension": dimension,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            return ReconciliationRow(
                entity=entity,
                dimension=dimension,
                error=str(exc),
                error_code=exc.code,
                entity_id=entity.id,
            )
        return ReconciliationRow(
            entity=entity,
            dimension=dimension,
            snapshot=snapshot,
            created=created,
            snapshot_id=snapshot.id,
            entity_id=entity.id,
        )

    def _missing_entity_rows(
        self,
        profile: LedgerProfile,
        found: Sequence[EntityInfo],
        requested: Sequence[str],
    ) -> list[ReconciliationRow]:
        known = {entity.id for entity in found}
        rows = []
        for entity_id in dict.fromkeys(str(i) for i in requested):
            if entity_id in known:
                continue
            exc = EntityNotFoundError(profile.entity_source, entity_id)
            logger.warning(
                "reconciliation_row_failed",
                extra={
                    "entity_id": entity_id,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            rows.append(
                ReconciliationRow(
                    entity=None,
                    error=str(exc),
                    error_code=exc.code,
                    entity_id=entity_id,
                )
            )
        return rows

    def _get_or_create(
        self,
        profile: LedgerProfile,
        entity: EntityInfo,
        period: PeriodKey,
        dimension: str,
    ) -> tuple[SnapshotInfo, bool]:
        threshold = getattr(entity, profile.threshold_field)
        key = SnapshotKey(profile.name, entity.id, period, dimension)

        existing = self._gateway.get(key.ledger, key.entity_id, key.period, key.dimension)
        if existing is not None:
            return existing.classified_against(threshold), False

        prior_key = key.previous()
        opening = self._gateway.closing_balance_of(
            prior_key.ledger, prior_key.entity_id, prior_key.period, prior_key.dimension
        )
        if opening is None:
            opening = getattr(entity, profile.seed_field)

        components = self._aggregator.totals(profile, entity.id, period, dimension or None)
        balances = compute_balances(opening, components, profile, adjustment=ZERO)

        draft = SnapshotDraft(
            key=key,
            components=components,
            opening_balance=balances.opening_balance,
            inflow=balances.inflow,
            outflow=balances.outflow,
            adjustment=balances.adjustment,
            closing_balance=balances.closing_balance,
            min_level=threshold,
            status=classify_stock_level(balances.closing_balance, threshold),
            reconciled_at=self._clock.now(),
        )
        snapshot, created = self._gateway.create(draft)
        if not created:
            snapshot = snapshot.classified_against(threshold)
        return snapshot, created

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def apply_adjustments(
        self,
        ledger: str,
        adjustments: Mapping[str, object],
    ) -> PeriodReport:
        """
        Apply user-edited adjustments to displayed snapshots.

        Each value replaces the snapshot's adjustment.  Blank or non-numeric
        values count as zero.  When the ledger syncs entity stock, the new
        closing balance is written to the entity afterwards.

        Args:
            ledger: Ledger the snapshots belong to.
            adjustments: snapshot id -> raw adjustment value.

        Returns:
            PeriodReport (period is that of the first updated snapshot, or
            None if every row failed).
        """
        profile = self.profile(ledger)

        with LogContext.bind(correlation_id=str(uuid4()), ledger=ledger):
            rows: list[ReconciliationRow] = []
            for snapshot_id, raw in adjustments.items():
                rows.append(self._adjust_row(profile, snapshot_id, raw))

            period = next(
                (r.snapshot.period for r in rows if r.snapshot is not None), None
            )
            report = PeriodReport(ledger=ledger, period=period, rows=tuple(rows))
            logger.info(
                "adjustments_applied",
                extra={
                    "row_count": len(report.rows),
                    "failed_count": len(report.failed_rows),
                },
            )
            return report

    def _adjust_row(
        self,
        profile: LedgerProfile,
        snapshot_id: str,
        raw: object,
    ) -> ReconciliationRow:
        if not is_valid_adjustment(raw) and not _is_blank(raw):
            logger.warning(
                "invalid_adjustment_defaulted",
                extra={"snapshot_id": snapshot_id, "raw_value": repr(raw)},
            )
        adjustment = parse_adjustment(raw)

        entity: EntityInfo | None = None
        dimension = ""
        try:
            with self._store.row_scope():
                current = self._store.read_snapshot_by_id(snapshot_id)
                if current is None or current.ledger != profile.name:
                    raise SnapshotNotFoundError(snapshot_id)
                dimension = current.dimension

                entity = self._store.get_entity(profile.entity_source, current.entity_id)
                if entity is None:
                    raise EntityNotFoundError(profile.entity_source, current.entity_id)

                threshold = getattr(entity, profile.threshold_field)
                updated = self._gateway.update_adjustment(snapshot_id, adjustment, threshold)

                if profile.sync_entity_stock:
                    self._store.update_entity_stock(
                        profile.entity_source, entity.id, updated.closing_balance
                    )
        except BalanceKernelError as exc:
            logger.warning(
                "reconciliation_row_failed",
                extra={
                    "snapshot_id": snapshot_id,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            return ReconciliationRow(
                entity=entity,
                dimension=dimension,
                error=str(exc),
                error_code=exc.code,
                snapshot_id=snapshot_id,
                entity_id=entity.id if entity is not None else None,
            )

        if profile.sync_entity_stock:
            entity = replace(entity, current_stock=updated.closing_balance)
            logger.info(
                "entity_stock_synced",
                extra={
                    "entity_id": entity.id,
                    "current_stock": updated.closing_balance,
                },
            )

        return ReconciliationRow(
            entity=entity,
            dimension=dimension,
            snapshot=updated,
            snapshot_id=snapshot_id,
            entity_id=entity.id,
        )


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
