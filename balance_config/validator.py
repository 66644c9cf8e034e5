"""
Profile Validator (``balance_config.validator``).

Responsibility
--------------
Checks a parsed ``LedgerProfile`` against the known master and transaction
source schemas before the engine is allowed to use it.

Invariants enforced
-------------------
* Entity source and every component source are known.
* Date, quantity and filter fields exist on the component's source.
* Seed and threshold fields are quantity fields of the entity source.
* Component names are unique; at least one inflow or outflow exists.
* ``$dimension`` appears only in dimensioned ledgers, and a dimensioned
  ledger lists its dimension values.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from balance_kernel.domain.profiles import (
    DIMENSION_PLACEHOLDER,
    ENTITY_SOURCES,
    TRANSACTION_SOURCES,
    ComponentSpec,
    LedgerProfile,
)

# Fields of EntityInfo the engine can read a balance from
_ENTITY_BALANCE_FIELDS = frozenset({"current_stock", "min_stock"})


@dataclass
class ProfileValidationResult:
    """Errors block use of the profile; warnings do not."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_profile(profile: LedgerProfile) -> ProfileValidationResult:
    """Validate one ledger profile."""
    result = ProfileValidationResult()

    entity_schema = ENTITY_SOURCES.get(profile.entity_source)
    if entity_schema is None:
        result.add_error(f"unknown entity_source {profile.entity_source!r}")
    for label, value in (("seed_field", profile.seed_field), ("threshold_field", profile.threshold_field)):
        if value not in _ENTITY_BALANCE_FIELDS:
            result.add_error(f"{label} {value!r} is not a balance field of the entity")

    seen: set[str] = set()
    for component in profile.components:
        if component.name in seen:
            result.add_error(f"duplicate component name {component.name!r}")
        seen.add(component.name)
        _check_component(profile, component, result)

    if not profile.inflows and not profile.outflows:
        result.add_error("profile has no inflow or outflow component")

    if profile.is_dimensioned and not profile.dimension_values:
        result.add_error(f"dimension {profile.dimension!r} has no dimension_values")
    if not profile.is_dimensioned and profile.dimension_values:
        result.add_warning("dimension_values given without a dimension; ignored")
    if len(set(profile.dimension_values)) != len(profile.dimension_values):
        result.add_error("dimension_values contains duplicates")

    return result


def _check_component(
    profile: LedgerProfile,
    component: ComponentSpec,
    result: ProfileValidationResult,
) -> None:
    prefix = f"component {component.name!r}"
    schema = TRANSACTION_SOURCES.get(component.source)
    if schema is None:
        result.add_error(f"{prefix}: unknown source {component.source!r}")
        return

    if component.date_field not in schema.date_fields:
        result.add_error(f"{prefix}: {component.date_field!r} is not a date field of {schema.name}")
    if component.quantity_field not in schema.quantity_fields:
        result.add_error(
            f"{prefix}: {component.quantity_field!r} is not a quantity field of {schema.name}"
        )
    for name in component.filters:
        if name not in schema.tag_fields:
            result.add_error(f"{prefix}: cannot filter on {name!r}")
    for name in (*component.require_set, *component.require_unset):
        if name not in schema.filterable_fields:
            result.add_error(f"{prefix}: unknown field {name!r} in require_set/require_unset")
    if component.uses_dimension and not profile.is_dimensioned:
        result.add_error(f"{prefix}: uses {DIMENSION_PLACEHOLDER} but the ledger has no dimension")
