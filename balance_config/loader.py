"""
Profile Loader (``balance_config.loader``).

Responsibility
--------------
Loads a ledger profile YAML file and parses it into the kernel's frozen
``LedgerProfile`` / ``ComponentSpec`` dataclasses.  Build/test tooling:
runtime callers go through ``balance_config.get_active_profiles()``.

Architecture position
---------------------
**Config layer**.  Imports kernel domain types; the kernel never imports
this package.

Invariants enforced
-------------------
* No silent defaults for required keys: a missing ``entity_source``,
  ``components`` or component field raises ProfileValidationError naming
  the ledger.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural errors  -> ``ProfileValidationError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from balance_kernel.domain.profiles import ComponentRole, ComponentSpec, LedgerProfile
from balance_kernel.exceptions import ProfileValidationError

_COMPONENT_REQUIRED = ("name", "role", "source", "date_field", "quantity_field")


@dataclass(frozen=True)
class ProfileSet:
    """All ledger profiles from one YAML document."""

    config_id: str
    version: int
    checksum: str
    profiles: dict[str, LedgerProfile] = field(default_factory=dict)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_component(ledger: str, data: dict[str, Any]) -> ComponentSpec:
    """Parse one component entry of a ledger."""
    missing = [k for k in _COMPONENT_REQUIRED if not data.get(k)]
    if missing:
        label = data.get("name", "?")
        raise ProfileValidationError(
            ledger, [f"component {label!r} missing {', '.join(missing)}"]
        )
    try:
        role = ComponentRole(str(data["role"]).lower())
    except ValueError:
        raise ProfileValidationError(
            ledger, [f"component {data['name']!r} has unknown role {data['role']!r}"]
        ) from None

    return ComponentSpec(
        name=str(data["name"]),
        role=role,
        source=str(data["source"]),
        date_field=str(data["date_field"]),
        quantity_field=str(data["quantity_field"]),
        filters={str(k): str(v) for k, v in (data.get("filters") or {}).items()},
        require_set=_as_tuple(data.get("require_set")),
        require_unset=_as_tuple(data.get("require_unset")),
    )


def parse_profile(name: str, data: dict[str, Any]) -> LedgerProfile:
    """
    Parse a ``LedgerProfile`` from the mapping stored under ``ledgers.<name>``.

    Raises:
        ProfileValidationError: on a missing required key.
    """
    if not data.get("entity_source"):
        raise ProfileValidationError(name, ["entity_source is required"])
    raw_components = data.get("components")
    if not raw_components:
        raise ProfileValidationError(name, ["components is required"])

    dimension = data.get("dimension")
    return LedgerProfile(
        name=name,
        entity_source=str(data["entity_source"]),
        components=tuple(parse_component(name, c) for c in raw_components),
        seed_field=str(data.get("seed_field", "current_stock")),
        threshold_field=str(data.get("threshold_field", "min_stock")),
        dimension=str(dimension) if dimension else None,
        dimension_values=_as_tuple(data.get("dimension_values")),
        sync_entity_stock=bool(data.get("sync_entity_stock", True)),
        description=str(data.get("description", "")),
    )


def load_profile_set(path: Path) -> ProfileSet:
    """Load and parse every ledger in a profile file (no validation)."""
    data = load_yaml_file(path)
    ledgers = data.get("ledgers") or {}
    return ProfileSet(
        config_id=str(data.get("config_id", path.stem)),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        profiles={name: parse_profile(name, body or {}) for name, body in ledgers.items()},
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
