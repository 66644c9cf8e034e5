"""
Module: balance_kernel.models.master
Responsibility: ORM persistence for master data: raw materials and finished
    products.  Both carry a minimum threshold and a cached current stock.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, store/, domain/ or outer layers.

Invariants enforced:
    - code (raw materials) and sku (products) are unique.
    - current_stock is a cache of the latest adjusted closing balance.  The
      reconciliation service is the only writer after creation.

Failure modes:
    - IntegrityError on duplicate code / sku.
"""

from decimal import Decimal

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from balance_kernel.db.base import TrackedBase


class RawMaterial(TrackedBase):
    """
    A purchasable input (whole spice, packaging) tracked in kilograms or units.

    Guarantees:
        - min_stock and current_stock are exact decimals; current_stock may
          go negative after a manual adjustment.
    """

    __tablename__ = "raw_materials"

    __table_args__ = (
        UniqueConstraint("code", name="uq_raw_material_code"),
        Index("idx_raw_material_name", "name"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")

    min_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    current_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<RawMaterial {self.code}: {self.name}>"


class Product(TrackedBase):
    """A finished, sellable product."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        Index("idx_product_name", "name"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="pack")
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    min_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    current_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.name}>"
