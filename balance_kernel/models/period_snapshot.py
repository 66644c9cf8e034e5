"""
Module: balance_kernel.models.period_snapshot
Responsibility: ORM persistence for period balance snapshots: one row per
    (ledger, entity, month, year, dimension) holding the computed opening,
    inflow, outflow, adjustment and closing balances.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - uq_period_snapshot_key: at most one snapshot per key.  This is the
      race guard for concurrent reconciliations; no application lock exists.
    - dimension is NOT NULL and '' for ledgers without a dimension, so the
      UNIQUE constraint applies (NULLs would compare distinct).
    - closing_balance = opening_balance + inflow - outflow + adjustment.
      Written by the snapshot gateway only.

Failure modes:
    - IntegrityError on a duplicate key, translated by the SQL store into
      SnapshotConflictError.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from balance_kernel.db.base import TrackedBase


class PeriodSnapshot(TrackedBase):
    """
    Persisted balance rollover for one entity in one month.

    Contract:
        opening_balance, inflow and outflow are fixed once written.  Only
        adjustment, closing_balance, status, min_level and adjusted_at are
        rewritten, by an adjustment edit.

    Non-goals:
        - This model does NOT verify the balance equation; the gateway
          computes every closing it writes.
    """

    __tablename__ = "period_snapshots"

    __table_args__ = (
        UniqueConstraint(
            "ledger",
            "entity_id",
            "period_month",
            "period_year",
            "dimension",
            name="uq_period_snapshot_key",
        ),
        Index("idx_snapshot_ledger_period", "ledger", "period_year", "period_month"),
    )

    ledger: Mapped[str] = mapped_column(String(30), nullable=False)
    # Raw material or product id; no FK because the target table depends on ledger
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    period_month: Mapped[str] = mapped_column(String(3), nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    dimension: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    # {component_name: "decimal string"}, memo components included
    components: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    opening_balance: Mapped[Decimal] = mapped_column(nullable=False)
    inflow: Mapped[Decimal] = mapped_column(nullable=False)
    outflow: Mapped[Decimal] = mapped_column(nullable=False)
    adjustment: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    closing_balance: Mapped[Decimal] = mapped_column(nullable=False)

    min_level: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)

    reconciled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    adjusted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        suffix = f"/{self.dimension}" if self.dimension else ""
        return (
            f"<PeriodSnapshot {self.ledger}/{self.entity_id}/"
            f"{self.period_month}-{self.period_year}{suffix}: {self.closing_balance}>"
        )
