"""Tests for ledger profile loading and validation."""

from pathlib import Path

import pytest
import yaml

from balance_config import DEFAULT_PROFILE_PATH, get_active_profiles, load_active_profile_set
from balance_config.loader import compute_checksum, load_yaml_file, parse_component, parse_profile
from balance_config.validator import validate_profile
from balance_kernel.domain.profiles import ComponentRole
from balance_kernel.exceptions import ProfileValidationError


def _write(tmp_path: Path, document: dict) -> Path:
    path = tmp_path / "profiles.yaml"
    path.write_text(yaml.safe_dump(document))
    return path


def _minimal_ledger(**overrides) -> dict:
    ledger = {
        "entity_source": "raw_materials",
        "components": [
            {
                "name": "purchases",
                "role": "inflow",
                "source": "stock_purchases",
                "date_field": "purchase_date",
                "quantity_field": "quantity",
            }
        ],
    }
    ledger.update(overrides)
    return ledger


class TestBundledProfiles:
    def test_three_ledgers(self, profiles):
        assert set(profiles) == {"stock", "production", "inventory"}

    def test_stock_profile(self, profiles):
        stock = profiles["stock"]
        assert stock.entity_source == "raw_materials"
        assert [c.name for c in stock.inflows] == ["purchases"]
        utilized = stock.component("utilized")
        assert utilized.role == ComponentRole.OUTFLOW
        assert dict(utilized.filters) == {"process": "Cleaning"}
        assert utilized.date_field == "date_assigned"
        assert not stock.is_dimensioned
        assert stock.dimensions_for("ignored") == ("",)

    def test_production_profile(self, profiles):
        production = profiles["production"]
        assert production.dimension == "process"
        assert production.dimension_values == (
            "Cleaning", "C & D", "Seeds C & D", "Roasting", "RFP", "Sample", "Grinding", "Packing",
        )
        assert [c.name for c in production.memos] == ["assigned", "pending"]
        assert production.component("pending").require_unset == ("date_completed",)
        assert production.sync_entity_stock is False
        assert production.dimensions_for("Roasting") == ("Roasting",)

    def test_inventory_profile(self, profiles):
        inventory = profiles["inventory"]
        assert inventory.entity_source == "products"
        assert dict(inventory.component("produced").filters) == {"status": "completed"}
        assert inventory.component("sold").source == "sales"

    def test_every_bundled_profile_validates(self, profiles):
        for profile in profiles.values():
            assert validate_profile(profile).is_valid, profile.name

    def test_checksum_is_deterministic(self):
        first = load_active_profile_set()
        second = load_active_profile_set()
        assert first.checksum == second.checksum
        assert first.checksum == compute_checksum(load_yaml_file(DEFAULT_PROFILE_PATH))

    def test_profiles_loaded_logged(self, captured_logs):
        get_active_profiles()
        record = next(r for r in captured_logs() if r["message"] == "profiles_loaded")
        assert record["ledgers"] == ["inventory", "production", "stock"]


class TestParsing:
    def test_missing_component_field(self):
        with pytest.raises(ProfileValidationError) as exc_info:
            parse_component("stock", {"name": "purchases", "role": "inflow"})
        assert "source" in str(exc_info.value)
        assert exc_info.value.ledger == "stock"

    def test_unknown_role(self):
        data = _minimal_ledger()["components"][0] | {"role": "sideways"}
        with pytest.raises(ProfileValidationError):
            parse_component("stock", data)

    def test_missing_entity_source(self):
        with pytest.raises(ProfileValidationError):
            parse_profile("stock", {"components": _minimal_ledger()["components"]})

    def test_defaults(self):
        profile = parse_profile("stock", _minimal_ledger())
        assert profile.seed_field == "current_stock"
        assert profile.threshold_field == "min_stock"
        assert profile.sync_entity_stock is True
        assert profile.dimension is None


class TestValidation:
    def test_unknown_transaction_source(self, tmp_path):
        ledger = _minimal_ledger()
        ledger["components"][0]["source"] = "refunds"
        path = _write(tmp_path, {"ledgers": {"stock": ledger}})
        with pytest.raises(ProfileValidationError, match="unknown source"):
            get_active_profiles(path)

    def test_wrong_date_field(self):
        ledger = _minimal_ledger()
        ledger["components"][0]["date_field"] = "sale_date"
        result = validate_profile(parse_profile("stock", ledger))
        assert not result.is_valid

    def test_duplicate_component_names(self):
        ledger = _minimal_ledger()
        ledger["components"].append(dict(ledger["components"][0]))
        result = validate_profile(parse_profile("stock", ledger))
        assert any("duplicate" in e for e in result.errors)

    def test_memo_only_profile_rejected(self):
        ledger = _minimal_ledger()
        ledger["components"][0]["role"] = "memo"
        result = validate_profile(parse_profile("stock", ledger))
        assert any("no inflow or outflow" in e for e in result.errors)

    def test_dimension_placeholder_requires_dimension(self):
        ledger = _minimal_ledger()
        ledger["components"].append({
            "name": "done",
            "role": "outflow",
            "source": "tasks",
            "date_field": "date_completed",
            "quantity_field": "assigned_qty",
            "filters": {"process": "$dimension"},
        })
        result = validate_profile(parse_profile("stock", ledger))
        assert any("$dimension" in e for e in result.errors)

    def test_dimension_requires_values(self):
        result = validate_profile(parse_profile("stock", _minimal_ledger(dimension="process")))
        assert not result.is_valid

    def test_seed_field_must_be_balance_field(self):
        result = validate_profile(parse_profile("stock", _minimal_ledger(seed_field="name")))
        assert any("seed_field" in e for e in result.errors)

    def test_filter_on_quantity_field_rejected(self):
        ledger = _minimal_ledger()
        ledger["components"][0]["filters"] = {"quantity": "5"}
        result = validate_profile(parse_profile("stock", ledger))
        assert any("cannot filter" in e for e in result.errors)

    def test_custom_file_loads(self, tmp_path):
        path = _write(tmp_path, {"config_id": "custom", "ledgers": {"stock": _minimal_ledger()}})
        assert list(get_active_profiles(path)) == ["stock"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_profiles(tmp_path / "absent.yaml")
