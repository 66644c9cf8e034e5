"""
Transaction Aggregator.

Responsibility:
    Sums one component's quantity over an entity's transactions inside a
    period, using the injected store's ``query_transactions``.

Invariants enforced:
    - Returns Decimal zero (not an error) when nothing matches.
    - No partial aggregation: a store failure propagates as
      StoreReadFailure and no total is produced for that component.
    - Pure read: never writes to the store.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from balance_kernel.domain.period import PeriodKey
from balance_kernel.domain.profiles import ComponentSpec, LedgerProfile, TransactionQuery
from balance_kernel.domain.quantities import ZERO
from balance_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from balance_kernel.store.base import BalanceStore

logger = get_logger("domain.aggregation")


def build_query(
    component: ComponentSpec,
    entity_id: str,
    period: PeriodKey,
    dimension: str | None = None,
) -> TransactionQuery:
    """Resolve a component spec into a concrete store query."""
    return TransactionQuery(
        source=component.source,
        entity_id=entity_id,
        date_field=component.date_field,
        start=period.first_day,
        end=period.last_day,
        quantity_field=component.quantity_field,
        equals=component.resolved_filters(dimension),
        require_set=component.require_set,
        require_unset=component.require_unset,
    )


class TransactionAggregator:
    """Sums component quantities for the reconciliation driver."""

    def __init__(self, store: "BalanceStore"):
        self._store = store

    def total(
        self,
        component: ComponentSpec,
        entity_id: str,
        period: PeriodKey,
        dimension: str | None = None,
    ) -> Decimal:
        query = build_query(component, entity_id, period, dimension)
        transactions = self._store.query_transactions(query)
        total = sum((t.quantity for t in transactions), ZERO)
        logger.debug(
            "component_aggregated",
            extra={
                "component": component.name,
                "entity_id": entity_id,
                "matched": len(transactions),
                "total": total,
            },
        )
        return total

    def totals(
        self,
        profile: LedgerProfile,
        entity_id: str,
        period: PeriodKey,
        dimension: str | None = None,
    ) -> dict[str, Decimal]:
        """Every component of ``profile`` (memo included), in declaration order."""
        return {
            spec.name: self.total(spec, entity_id, period, dimension)
            for spec in profile.components
        }
