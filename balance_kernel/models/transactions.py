"""
Module: balance_kernel.models.transactions
Responsibility: ORM persistence for the transaction sources the balance
    engine aggregates: stock purchases, production tasks, production batches
    and sales.
Architecture position: Kernel > Models.  May import from db/ and
    models/master only.

Invariants enforced:
    - Transactions are read-only to the engine.  Other parts of the ERP
      create and edit them; reconciliation only sums them.
    - Every row references exactly one entity (raw material or product).

Failure modes:
    - IntegrityError on a dangling entity reference.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from balance_kernel.db.base import TrackedBase, UUIDString


class StockPurchase(TrackedBase):
    """A raw material purchase from a vendor."""

    __tablename__ = "stock_purchases"

    __table_args__ = (
        Index("idx_purchase_material_date", "raw_material_id", "purchase_date"),
    )

    raw_material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("raw_materials.id"),
        nullable=False,
    )
    vendor_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)


class Task(TrackedBase):
    """
    A unit of production work on a raw material.

    A task is assigned to a staff member for one process (Cleaning, Roasting,
    Grinding...).  date_completed and wastage_qty stay NULL until the task
    is completed.
    """

    __tablename__ = "tasks"

    __table_args__ = (
        UniqueConstraint("task_code", name="uq_task_code"),
        Index("idx_task_material_assigned", "raw_material_id", "date_assigned"),
        Index("idx_task_material_completed", "raw_material_id", "date_completed"),
        Index("idx_task_process", "process"),
    )

    task_code: Mapped[str] = mapped_column(String(50), nullable=False)
    raw_material_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("raw_materials.id"),
        nullable=False,
    )
    process: Mapped[str] = mapped_column(String(50), nullable=False)
    staff_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    date_assigned: Mapped[date] = mapped_column(Date, nullable=False)
    assigned_qty: Mapped[Decimal] = mapped_column(nullable=False)

    date_completed: Mapped[date | None] = mapped_column(Date, nullable=True)
    wastage_qty: Mapped[Decimal | None] = mapped_column(nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.date_completed is not None


class ProductionBatch(TrackedBase):
    """A batch of finished product; only completed batches add to inventory."""

    __tablename__ = "production_batches"

    __table_args__ = (
        UniqueConstraint("batch_number", name="uq_batch_number"),
        Index("idx_batch_product_completed", "product_id", "completion_date"),
    )

    batch_number: Mapped[str] = mapped_column(String(50), nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="planned")
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    wastage: Mapped[Decimal | None] = mapped_column(nullable=True)


class Sale(TrackedBase):
    """One invoice line selling a product through a channel."""

    __tablename__ = "sales"

    __table_args__ = (
        Index("idx_sale_product_date", "product_id", "sale_date"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    channel_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
