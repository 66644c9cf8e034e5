"""
Ledger profiles -- the per-feature mapping that parameterizes the engine.

Responsibility:
    Describes, for each ledger (stock, production, inventory), which master
    source supplies entities, which field seeds the first opening balance,
    which field is the minimum threshold, the optional dimension, and the
    named transaction components with their role in the recurrence.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Built by ``balance_config``
    from YAML; consumed by the aggregator and the reconciliation driver.

Invariants enforced:
    - Component names are unique within a profile.
    - Only INFLOW and OUTFLOW components enter the recurrence; MEMO
      components are recorded on the snapshot for display only.
    - ``$dimension`` in a filter value is replaced by the dimension value
      being reconciled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Mapping

DIMENSION_PLACEHOLDER = "$dimension"


class ComponentRole(str, Enum):
    """How a component participates in the balance recurrence."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"
    MEMO = "memo"


@dataclass(frozen=True, slots=True)
class SourceSchema:
    """Shape of one master or transaction source, by field name."""

    name: str
    entity_field: str | None = None
    date_fields: frozenset[str] = frozenset()
    quantity_fields: frozenset[str] = frozenset()
    tag_fields: frozenset[str] = frozenset()

    @property
    def filterable_fields(self) -> frozenset[str]:
        return self.date_fields | self.quantity_fields | self.tag_fields


ENTITY_SOURCES: Mapping[str, SourceSchema] = MappingProxyType({
    "raw_materials": SourceSchema(
        name="raw_materials",
        quantity_fields=frozenset({"current_stock", "min_stock"}),
    ),
    "products": SourceSchema(
        name="products",
        quantity_fields=frozenset({"current_stock", "min_stock"}),
    ),
})

TRANSACTION_SOURCES: Mapping[str, SourceSchema] = MappingProxyType({
    "stock_purchases": SourceSchema(
        name="stock_purchases",
        entity_field="raw_material_id",
        date_fields=frozenset({"purchase_date"}),
        quantity_fields=frozenset({"quantity"}),
        tag_fields=frozenset({"vendor_id"}),
    ),
    "tasks": SourceSchema(
        name="tasks",
        entity_field="raw_material_id",
        date_fields=frozenset({"date_assigned", "date_completed"}),
        quantity_fields=frozenset({"assigned_qty", "wastage_qty"}),
        tag_fields=frozenset({"process", "staff_id"}),
    ),
    "production_batches": SourceSchema(
        name="production_batches",
        entity_field="product_id",
        date_fields=frozenset({"start_date", "completion_date"}),
        quantity_fields=frozenset({"quantity", "wastage"}),
        tag_fields=frozenset({"status", "batch_number"}),
    ),
    "sales": SourceSchema(
        name="sales",
        entity_field="product_id",
        date_fields=frozenset({"sale_date"}),
        quantity_fields=frozenset({"quantity"}),
        tag_fields=frozenset({"channel_id"}),
    ),
})


@dataclass(frozen=True, slots=True)
class ComponentSpec:
    """
    One named, summable transaction category.

    The component total for (entity, period) is the sum of
    ``quantity_field`` over rows of ``source`` whose ``date_field`` falls in
    the period, whose tag fields equal ``filters`` and whose fields listed in
    ``require_set`` / ``require_unset`` are present / absent.
    """

    name: str
    role: ComponentRole
    source: str
    date_field: str
    quantity_field: str
    filters: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    require_set: tuple[str, ...] = ()
    require_unset: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.filters, MappingProxyType):
            object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    @property
    def uses_dimension(self) -> bool:
        return DIMENSION_PLACEHOLDER in self.filters.values()

    def resolved_filters(self, dimension: str | None) -> tuple[tuple[str, str], ...]:
        """Filters with ``$dimension`` substituted, sorted for stable queries."""
        resolved = []
        for key, value in sorted(self.filters.items()):
            if value == DIMENSION_PLACEHOLDER:
                value = dimension or ""
            resolved.append((key, value))
        return tuple(resolved)


@dataclass(frozen=True, slots=True)
class LedgerProfile:
    """
    Mapping configuration for one instantiation of the engine.

    Guarantees:
        - ``components`` preserves declaration order (display order).
        - ``dimension_values`` is empty iff ``dimension`` is None.
    """

    name: str
    entity_source: str
    components: tuple[ComponentSpec, ...]
    seed_field: str = "current_stock"
    threshold_field: str = "min_stock"
    dimension: str | None = None
    dimension_values: tuple[str, ...] = ()
    # Adjustment edits copy the new closing balance onto the entity's seed field
    sync_entity_stock: bool = True
    description: str = ""

    @property
    def is_dimensioned(self) -> bool:
        return self.dimension is not None

    @property
    def inflows(self) -> tuple[ComponentSpec, ...]:
        return tuple(c for c in self.components if c.role == ComponentRole.INFLOW)

    @property
    def outflows(self) -> tuple[ComponentSpec, ...]:
        return tuple(c for c in self.components if c.role == ComponentRole.OUTFLOW)

    @property
    def memos(self) -> tuple[ComponentSpec, ...]:
        return tuple(c for c in self.components if c.role == ComponentRole.MEMO)

    def component(self, name: str) -> ComponentSpec:
        for spec in self.components:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def dimensions_for(self, dimension: str | None) -> tuple[str, ...]:
        """
        Dimension values to reconcile.

        A non-dimensioned ledger always yields ``("",)`` -- the single,
        empty dimension its snapshots are keyed under.
        """
        if not self.is_dimensioned:
            return ("",)
        if dimension:
            return (dimension,)
        return self.dimension_values


@dataclass(frozen=True, slots=True)
class TransactionQuery:
    """A fully resolved transaction filter handed to a store."""

    source: str
    entity_id: str
    date_field: str
    start: date
    end: date
    quantity_field: str
    equals: tuple[tuple[str, str], ...] = ()
    require_set: tuple[str, ...] = ()
    require_unset: tuple[str, ...] = ()
