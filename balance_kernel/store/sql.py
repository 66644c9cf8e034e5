"""
Module: balance_kernel.store.sql
Responsibility: SQLAlchemy implementation of BalanceStore.  Maps source names
    to ORM models, converts rows to DTOs, and translates SQLAlchemy errors
    into the kernel's typed store errors.
Architecture position: Kernel > Store.  May import from models/, db/,
    domain/ and exceptions.

Invariants enforced:
    - Snapshot uniqueness is the database's job (uq_period_snapshot_key).
      Each insert runs inside a SAVEPOINT; an IntegrityError rolls back only
      that insert and surfaces as SnapshotConflictError.
    - The store flushes, never commits.  The caller owns the transaction.
    - ``row_scope`` is a SAVEPOINT around one batch row.  A failed read or
      write inside it is rolled back to the savepoint, so the outer
      transaction stays usable on PostgreSQL and earlier rows survive the
      caller's commit.
    - Components are stored as JSON decimal strings and read back as
      Decimal, so no quantity passes through float.

Failure modes:
    - StoreReadFailure on any SQLAlchemyError during a read, or an unknown
      source name.
    - StoreWriteFailure on any other SQLAlchemyError during a write.
    - SnapshotNotFoundError / EntityNotFoundError on unknown ids in updates.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from balance_kernel.db.base import Base
from balance_kernel.domain.dtos import (
    EntityInfo,
    SnapshotDraft,
    SnapshotInfo,
    SnapshotKey,
    TransactionInfo,
)
from balance_kernel.domain.period import PeriodKey
from balance_kernel.domain.profiles import TRANSACTION_SOURCES, TransactionQuery
from balance_kernel.domain.quantities import to_quantity
from balance_kernel.domain.status import StockLevel
from balance_kernel.exceptions import (
    EntityNotFoundError,
    SnapshotConflictError,
    SnapshotNotFoundError,
    StoreReadFailure,
    StoreWriteFailure,
)
from balance_kernel.logging_config import get_logger
from balance_kernel.models import (
    PeriodSnapshot,
    Product,
    ProductionBatch,
    RawMaterial,
    Sale,
    StockPurchase,
    Task,
)
from balance_kernel.store.base import BalanceStore

logger = get_logger("store.sql")

ENTITY_MODELS: dict[str, type[Base]] = {
    "raw_materials": RawMaterial,
    "products": Product,
}

TRANSACTION_MODELS: dict[str, type[Base]] = {
    "stock_purchases": StockPurchase,
    "tasks": Task,
    "production_batches": ProductionBatch,
    "sales": Sale,
}


def _as_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SqlBalanceStore(BalanceStore):
    """
    BalanceStore over a caller-provided SQLAlchemy session.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT lock rows; concurrent reconciliations are resolved by the
          UNIQUE constraint.
    """

    def __init__(self, session: Session):
        self._session = session

    # -- master data -------------------------------------------------------

    def query_entities(
        self, source: str, entity_ids: Sequence[str] | None = None
    ) -> list[EntityInfo]:
        model = self._entity_model(source, "query_entities")
        stmt = select(model).order_by(model.name, model.id)
        if entity_ids is not None:
            stmt = stmt.where(model.id.in_([str(i) for i in entity_ids]))
        try:
            rows = self._session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreReadFailure("query_entities", str(exc)) from exc
        return [self._to_entity(source, row) for row in rows]

    def get_entity(self, source: str, entity_id: str) -> EntityInfo | None:
        row = self._load_entity(source, entity_id, "get_entity")
        return self._to_entity(source, row) if row is not None else None

    def update_entity_stock(self, source: str, entity_id: str, value: Decimal) -> None:
        row = self._load_entity(source, entity_id, "update_entity_stock")
        if row is None:
            raise EntityNotFoundError(source, entity_id)
        try:
            row.current_stock = value
            self._session.flush()
        except SQLAlchemyError as exc:
            raise StoreWriteFailure("update_entity_stock", str(exc)) from exc

    # -- transactions ------------------------------------------------------

    def query_transactions(self, query: TransactionQuery) -> list[TransactionInfo]:
        model = TRANSACTION_MODELS.get(query.source)
        if model is None:
            raise StoreReadFailure("query_transactions", f"unknown source {query.source!r}")
        schema = TRANSACTION_SOURCES[query.source]

        date_col = getattr(model, query.date_field)
        qty_col = getattr(model, query.quantity_field)
        stmt = (
            select(model.id, date_col, qty_col)
            .where(getattr(model, schema.entity_field) == str(query.entity_id))
            .where(date_col >= query.start)
            .where(date_col <= query.end)
        )
        for field_name, value in query.equals:
            stmt = stmt.where(getattr(model, field_name) == value)
        for field_name in query.require_set:
            stmt = stmt.where(getattr(model, field_name).is_not(None))
        for field_name in query.require_unset:
            stmt = stmt.where(getattr(model, field_name).is_(None))

        try:
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreReadFailure("query_transactions", str(exc)) from exc

        return [
            TransactionInfo(
                id=str(row_id),
                source=query.source,
                entity_id=query.entity_id,
                occurred_on=occurred_on,
                quantity=to_quantity(quantity),
            )
            for row_id, occurred_on, quantity in rows
        ]

    # -- snapshots ---------------------------------------------------------

    def read_snapshot(self, key: SnapshotKey) -> SnapshotInfo | None:
        stmt = select(PeriodSnapshot).where(
            PeriodSnapshot.ledger == key.ledger,
            PeriodSnapshot.entity_id == key.entity_id,
            PeriodSnapshot.period_month == key.period.month,
            PeriodSnapshot.period_year == key.period.year,
            PeriodSnapshot.dimension == key.dimension,
        )
        try:
            row = self._session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreReadFailure("read_snapshot", str(exc)) from exc
        return self._to_snapshot(row) if row is not None else None

    def read_snapshot_by_id(self, snapshot_id: str) -> SnapshotInfo | None:
        row = self._load_snapshot(snapshot_id, "read_snapshot_by_id")
        return self._to_snapshot(row) if row is not None else None

    def write_snapshot(self, draft: SnapshotDraft) -> SnapshotInfo:
        key = draft.key
        row = PeriodSnapshot(
            ledger=key.ledger,
            entity_id=key.entity_id,
            period_month=key.period.month,
            period_year=key.period.year,
            dimension=key.dimension,
            components={name: str(qty) for name, qty in draft.components.items()},
            opening_balance=draft.opening_balance,
            inflow=draft.inflow,
            outflow=draft.outflow,
            adjustment=draft.adjustment,
            closing_balance=draft.closing_balance,
            min_level=draft.min_level,
            status=draft.status.value,
            reconciled_at=draft.reconciled_at,
        )

        # Savepoint so a lost race only undoes this insert
        savepoint = self._session.begin_nested()
        try:
            self._session.add(row)
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            logger.debug("snapshot_insert_rejected", extra={"snapshot_key": str(key)})
            raise SnapshotConflictError(
                key.ledger, key.entity_id, str(key.period), key.dimension
            ) from exc
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise StoreWriteFailure("write_snapshot", str(exc)) from exc

        return SnapshotInfo.from_draft(str(row.id), draft)

    def update_snapshot_adjustment(
        self,
        snapshot_id: str,
        *,
        adjustment: Decimal,
        closing_balance: Decimal,
        status: StockLevel,
        min_level: Decimal,
        adjusted_at: datetime | None,
    ) -> SnapshotInfo:
        row = self._load_snapshot(snapshot_id, "update_snapshot_adjustment")
        if row is None:
            raise SnapshotNotFoundError(snapshot_id)

        savepoint = self._session.begin_nested()
        try:
            row.adjustment = adjustment
            row.closing_balance = closing_balance
            row.status = status.value
            row.min_level = min_level
            row.adjusted_at = adjusted_at
            self._session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise StoreWriteFailure("update_snapshot_adjustment", str(exc)) from exc

        return self._to_snapshot(row)

    # -- unit of work ------------------------------------------------------

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        try:
            savepoint = self._session.begin_nested()
        except SQLAlchemyError as exc:
            raise StoreWriteFailure("row_scope", str(exc)) from exc

        # Leaving the savepoint's own block rolls back on error (closing it
        # after a failed flush too) and releases it otherwise
        failed_inside = False
        try:
            with savepoint:
                try:
                    yield
                except BaseException:
                    failed_inside = True
                    raise
        except SQLAlchemyError as exc:
            if failed_inside:
                raise
            raise StoreWriteFailure("row_scope", str(exc)) from exc

    # -- internals ---------------------------------------------------------

    def _entity_model(self, source: str, operation: str) -> type[Base]:
        model = ENTITY_MODELS.get(source)
        if model is None:
            raise StoreReadFailure(operation, f"unknown entity source {source!r}")
        return model

    def _load_entity(self, source: str, entity_id: str, operation: str):
        model = self._entity_model(source, operation)
        pk = _as_uuid(entity_id)
        if pk is None:
            return None
        try:
            return self._session.get(model, pk)
        except SQLAlchemyError as exc:
            raise StoreReadFailure(operation, str(exc)) from exc

    def _load_snapshot(self, snapshot_id: str, operation: str) -> PeriodSnapshot | None:
        pk = _as_uuid(snapshot_id)
        if pk is None:
            return None
        try:
            return self._session.get(PeriodSnapshot, pk)
        except SQLAlchemyError as exc:
            raise StoreReadFailure(operation, str(exc)) from exc

    @staticmethod
    def _to_entity(source: str, row) -> EntityInfo:
        return EntityInfo(
            id=str(row.id),
            source=source,
            name=row.name,
            category=row.category or "",
            unit=row.unit or "",
            min_stock=to_quantity(row.min_stock),
            current_stock=to_quantity(row.current_stock),
        )

    @staticmethod
    def _to_snapshot(row: PeriodSnapshot) -> SnapshotInfo:
        return SnapshotInfo(
            id=str(row.id),
            key=SnapshotKey(
                ledger=row.ledger,
                entity_id=row.entity_id,
                period=PeriodKey.of(row.period_month, row.period_year),
                dimension=row.dimension or "",
            ),
            components={
                name: to_quantity(qty) for name, qty in (row.components or {}).items()
            },
            opening_balance=row.opening_balance,
            inflow=row.inflow,
            outflow=row.outflow,
            adjustment=row.adjustment,
            closing_balance=row.closing_balance,
            min_level=row.min_level,
            status=StockLevel(row.status),
            reconciled_at=row.reconciled_at,
            adjusted_at=row.adjusted_at,
        )
