"""ORM models for the balance kernel."""

from balance_kernel.models.master import Product, RawMaterial
from balance_kernel.models.period_snapshot import PeriodSnapshot
from balance_kernel.models.transactions import ProductionBatch, Sale, StockPurchase, Task

__all__ = [
    "RawMaterial",
    "Product",
    "StockPurchase",
    "Task",
    "ProductionBatch",
    "Sale",
    "PeriodSnapshot",
]
