"""Kernel services: snapshot persistence and period reconciliation."""

from balance_kernel.services.reconciliation_service import ReconciliationService
from balance_kernel.services.snapshot_gateway import SnapshotGateway

__all__ = [
    "ReconciliationService",
    "SnapshotGateway",
]
