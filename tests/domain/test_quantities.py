"""Tests for quantity normalization and lenient adjustment parsing."""

from decimal import Decimal

import pytest

from balance_kernel.domain.quantities import (
    ZERO,
    is_valid_adjustment,
    parse_adjustment,
    to_quantity,
)
from balance_kernel.exceptions import InvalidAdjustmentError


class TestToQuantity:
    def test_none_is_zero(self):
        assert to_quantity(None) == ZERO

    def test_float_goes_through_str(self):
        assert to_quantity(0.1) == Decimal("0.1")

    def test_int(self):
        assert to_quantity(75) == Decimal("75")

    def test_string_is_stripped(self):
        assert to_quantity(" 12.5 ") == Decimal("12.5")

    def test_decimal_passthrough(self):
        value = Decimal("3.333333333")
        assert to_quantity(value) is value

    @pytest.mark.parametrize("value", ["abc", True, "NaN", "Infinity", object()])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ValueError):
            to_quantity(value)


class TestParseAdjustment:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("-50", Decimal("-50")),
            ("2.5", Decimal("2.5")),
            (7, Decimal("7")),
            (Decimal("-0.25"), Decimal("-0.25")),
        ],
    )
    def test_numeric_values(self, raw, expected):
        assert parse_adjustment(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "12kg", "NaN"])
    def test_lenient_defaults_to_zero(self, raw):
        assert parse_adjustment(raw) == ZERO

    @pytest.mark.parametrize("raw", ["", None, "abc"])
    def test_strict_raises(self, raw):
        with pytest.raises(InvalidAdjustmentError) as exc_info:
            parse_adjustment(raw, strict=True)
        assert exc_info.value.code == "INVALID_ADJUSTMENT"

    def test_is_valid_adjustment(self):
        assert is_valid_adjustment("-5")
        assert not is_valid_adjustment("five")
