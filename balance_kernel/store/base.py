"""
Module: balance_kernel.store.base
Responsibility: The explicit store interface the reconciliation engine is
    written against.  Replaces an ambient backend client with a capability
    set injected into the services.
Architecture position: Kernel > Store.  May import from domain/ and
    exceptions only.  Implementations: ``store.memory`` and ``store.sql``.

Invariants enforced:
    - ``write_snapshot`` never produces two rows for one SnapshotKey.  The
      implementation enforces this at the storage level and raises
      SnapshotConflictError when the key is taken.
    - ``update_snapshot_adjustment`` writes only adjustment, closing,
      status, min_level and adjusted_at.
    - Reads return DTOs, never storage rows.
    - ``row_scope`` makes every read and write of one batch row atomic: on
      an exception inside it, that row's writes are undone and the store
      stays usable for the next row.

Failure modes:
    - StoreReadFailure for any failed read.
    - StoreWriteFailure (or SnapshotConflictError) for any failed write.
    - SnapshotNotFoundError / EntityNotFoundError on an unknown id in an
      update.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal

from balance_kernel.domain.dtos import (
    EntityInfo,
    SnapshotDraft,
    SnapshotInfo,
    SnapshotKey,
    TransactionInfo,
)
from balance_kernel.domain.profiles import TransactionQuery
from balance_kernel.domain.status import StockLevel


class BalanceStore(ABC):
    """
    Capability set over master data, transactions and period snapshots.

    Contract:
        Stores do not own transaction boundaries.  The SQL implementation
        flushes inside the caller's session; the caller commits.
    """

    # -- master data -------------------------------------------------------

    @abstractmethod
    def query_entities(
        self, source: str, entity_ids: Sequence[str] | None = None
    ) -> list[EntityInfo]:
        """Entities of ``source`` ordered by name, optionally restricted to ids."""

    @abstractmethod
    def get_entity(self, source: str, entity_id: str) -> EntityInfo | None:
        """One entity, or None."""

    @abstractmethod
    def update_entity_stock(self, source: str, entity_id: str, value: Decimal) -> None:
        """Set the cached ``current_stock`` of one entity."""

    # -- transactions ------------------------------------------------------

    @abstractmethod
    def query_transactions(self, query: TransactionQuery) -> list[TransactionInfo]:
        """Transactions matching ``query``; empty list when none match."""

    # -- snapshots ---------------------------------------------------------

    @abstractmethod
    def read_snapshot(self, key: SnapshotKey) -> SnapshotInfo | None:
        """The snapshot stored under ``key``, or None."""

    @abstractmethod
    def read_snapshot_by_id(self, snapshot_id: str) -> SnapshotInfo | None:
        """The snapshot with ``snapshot_id``, or None."""

    @abstractmethod
    def write_snapshot(self, draft: SnapshotDraft) -> SnapshotInfo:
        """
        Insert a new snapshot.

        Raises:
            SnapshotConflictError: A snapshot already exists for draft.key.
        """

    @abstractmethod
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
        """Overwrite the adjustment-derived fields of one snapshot."""

    # -- unit of work ------------------------------------------------------

    @abstractmethod
    def row_scope(self) -> AbstractContextManager[None]:
        """
        Scope for everything one batch row reads and writes.

        On normal exit the row's writes stay pending in the caller's
        transaction.  If the block raises, the row's writes are undone and
        the exception propagates; earlier rows keep their results.

        Raises:
            StoreWriteFailure: The scope could not be opened or released.
        """
