"""
Module: balance_kernel.store.memory
Responsibility: In-process BalanceStore for tests, demos and scripts that do
    not need a database.
Architecture position: Kernel > Store.  Implements store.base.BalanceStore.

Invariants enforced:
    - Snapshot uniqueness: a keyed index checked and updated under a lock
      inside ``write_snapshot`` plays the role of the database UNIQUE
      constraint.  The lock covers only the insert, never a caller's
      read-then-write sequence.
    - Rows are stored as plain dicts keyed by the field names listed in
      ``domain.profiles`` source schemas.
    - ``row_scope`` keeps a per-thread undo log of snapshot and stock
      writes; an exception inside the scope replays it in reverse.

Failure modes:
    - StoreReadFailure on an unknown source, or when a read failure has been
      injected for the entity (``fail_reads_for``).
    - StoreWriteFailure when a write failure has been injected
      (``fail_writes_for``).
    - SnapshotConflictError on a duplicate key.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from balance_kernel.domain.dtos import (
    EntityInfo,
    SnapshotDraft,
    SnapshotInfo,
    SnapshotKey,
    TransactionInfo,
)
from balance_kernel.domain.profiles import ENTITY_SOURCES, TRANSACTION_SOURCES, TransactionQuery
from balance_kernel.domain.quantities import to_quantity
from balance_kernel.domain.status import StockLevel
from balance_kernel.exceptions import (
    EntityNotFoundError,
    SnapshotConflictError,
    SnapshotNotFoundError,
    StoreReadFailure,
    StoreWriteFailure,
)
from balance_kernel.store.base import BalanceStore


class InMemoryBalanceStore(BalanceStore):
    """Dictionary-backed store with optional failure injection."""

    def __init__(self) -> None:
        self._entities: dict[str, dict[str, dict[str, Any]]] = {
            source: {} for source in ENTITY_SOURCES
        }
        self._transactions: dict[str, list[dict[str, Any]]] = {
            source: [] for source in TRANSACTION_SOURCES
        }
        self._snapshots: dict[str, SnapshotInfo] = {}
        self._snapshot_index: dict[SnapshotKey, str] = {}
        self._insert_lock = threading.Lock()
        self._undo = threading.local()
        self.fail_reads_for: set[str] = set()
        self.fail_writes_for: set[str] = set()

    # -- seeding -----------------------------------------------------------

    def add_entity(
        self,
        source: str,
        *,
        name: str,
        category: str = "",
        unit: str = "kg",
        min_stock: Decimal | int | str = 0,
        current_stock: Decimal | int | str = 0,
        entity_id: str | None = None,
    ) -> str:
        """Insert a master row; returns its id."""
        entity_id = entity_id or str(uuid4())
        self._entity_table(source)[entity_id] = {
            "id": entity_id,
            "name": name,
            "category": category,
            "unit": unit,
            "min_stock": to_quantity(min_stock),
            "current_stock": to_quantity(current_stock),
        }
        return entity_id

    def add_transaction(self, source: str, **fields: Any) -> str:
        """Insert a transaction row; returns its id."""
        if source not in TRANSACTION_SOURCES:
            raise KeyError(source)
        row = dict(fields)
        row.setdefault("id", str(uuid4()))
        self._transactions[source].append(row)
        return row["id"]

    # -- master data -------------------------------------------------------

    def query_entities(
        self, source: str, entity_ids: Sequence[str] | None = None
    ) -> list[EntityInfo]:
        table = self._entity_table(source)
        rows = table.values()
        if entity_ids is not None:
            wanted = set(entity_ids)
            rows = [r for r in rows if r["id"] in wanted]
        return sorted(
            (self._to_entity(source, r) for r in rows), key=lambda e: (e.name, e.id)
        )

    def get_entity(self, source: str, entity_id: str) -> EntityInfo | None:
        row = self._entity_table(source).get(entity_id)
        return self._to_entity(source, row) if row is not None else None

    def update_entity_stock(self, source: str, entity_id: str, value: Decimal) -> None:
        self._check_write(entity_id, "update_entity_stock")
        row = self._entity_table(source).get(entity_id)
        if row is None:
            raise EntityNotFoundError(source, entity_id)
        previous = row["current_stock"]
        row["current_stock"] = value

        def _restore() -> None:
            row["current_stock"] = previous

        self._record_undo(_restore)

    # -- transactions ------------------------------------------------------

    def query_transactions(self, query: TransactionQuery) -> list[TransactionInfo]:
        schema = TRANSACTION_SOURCES.get(query.source)
        if schema is None:
            raise StoreReadFailure("query_transactions", f"unknown source {query.source!r}")
        if query.entity_id in self.fail_reads_for:
            raise StoreReadFailure("query_transactions", f"injected failure for {query.entity_id}")

        matched = []
        for row in self._transactions[query.source]:
            if str(row.get(schema.entity_field)) != query.entity_id:
                continue
            occurred_on = row.get(query.date_field)
            if isinstance(occurred_on, datetime):
                occurred_on = occurred_on.date()
            if not isinstance(occurred_on, date):
                continue
            if not query.start <= occurred_on <= query.end:
                continue
            if any(str(row.get(k)) != v for k, v in query.equals):
                continue
            if any(row.get(f) is None for f in query.require_set):
                continue
            if any(row.get(f) is not None for f in query.require_unset):
                continue
            matched.append(
                TransactionInfo(
                    id=str(row["id"]),
                    source=query.source,
                    entity_id=query.entity_id,
                    occurred_on=occurred_on,
                    quantity=to_quantity(row.get(query.quantity_field)),
                )
            )
        return matched

    # -- snapshots ---------------------------------------------------------

    def read_snapshot(self, key: SnapshotKey) -> SnapshotInfo | None:
        if key.entity_id in self.fail_reads_for:
            raise StoreReadFailure("read_snapshot", f"injected failure for {key.entity_id}")
        snapshot_id = self._snapshot_index.get(key)
        return self._snapshots.get(snapshot_id) if snapshot_id else None

    def read_snapshot_by_id(self, snapshot_id: str) -> SnapshotInfo | None:
        return self._snapshots.get(snapshot_id)

    def write_snapshot(self, draft: SnapshotDraft) -> SnapshotInfo:
        self._check_write(draft.key.entity_id, "write_snapshot")
        with self._insert_lock:
            if draft.key in self._snapshot_index:
                raise SnapshotConflictError(
                    draft.key.ledger,
                    draft.key.entity_id,
                    str(draft.key.period),
                    draft.key.dimension,
                )
            snapshot = SnapshotInfo.from_draft(str(uuid4()), draft)
            self._snapshots[snapshot.id] = snapshot
            self._snapshot_index[draft.key] = snapshot.id

        def _remove() -> None:
            with self._insert_lock:
                self._snapshots.pop(snapshot.id, None)
                self._snapshot_index.pop(draft.key, None)

        self._record_undo(_remove)
        return snapshot

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
        current = self._snapshots.get(snapshot_id)
        if current is None:
            raise SnapshotNotFoundError(snapshot_id)
        self._check_write(current.entity_id, "update_snapshot_adjustment")
        updated = replace(
            current,
            adjustment=adjustment,
            closing_balance=closing_balance,
            status=status,
            min_level=min_level,
            adjusted_at=adjusted_at,
        )
        self._snapshots[snapshot_id] = updated

        def _revert() -> None:
            self._snapshots[snapshot_id] = current

        self._record_undo(_revert)
        return updated

    # -- unit of work ------------------------------------------------------

    @contextmanager
    def row_scope(self) -> Iterator[None]:
        outer = getattr(self._undo, "log", None)
        log: list[Callable[[], None]] = []
        self._undo.log = log
        try:
            yield
        except Exception:
            for undo in reversed(log):
                undo()
            raise
        else:
            if outer is not None:
                outer.extend(log)
        finally:
            self._undo.log = outer

    @property
    def snapshot_count(self) -> int:
        return len(self._snapshots)

    # -- internals ---------------------------------------------------------

    def _entity_table(self, source: str) -> dict[str, dict[str, Any]]:
        table = self._entities.get(source)
        if table is None:
            raise StoreReadFailure("query_entities", f"unknown entity source {source!r}")
        return table

    def _record_undo(self, undo: Callable[[], None]) -> None:
        log = getattr(self._undo, "log", None)
        if log is not None:
            log.append(undo)

    def _check_write(self, entity_id: str, operation: str) -> None:
        if entity_id in self.fail_writes_for:
            raise StoreWriteFailure(operation, f"injected failure for {entity_id}")

    @staticmethod
    def _to_entity(source: str, row: dict[str, Any]) -> EntityInfo:
        return EntityInfo(
            id=row["id"],
            source=source,
            name=row["name"],
            category=row["category"],
            unit=row["unit"],
            min_stock=row["min_stock"],
            current_stock=row["current_stock"],
        )
