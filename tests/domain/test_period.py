"""Tests for the period key resolver."""

from datetime import date

import pytest

from balance_kernel.domain.period import (
    MONTH_LABELS,
    PeriodKey,
    period_bounds,
    period_key_for,
    previous_period,
)
from balance_kernel.exceptions import InvalidPeriodError


class TestPeriodKeyFor:
    def test_mid_month(self):
        key = period_key_for(date(2024, 3, 15))
        assert key.month == "Mar"
        assert key.year == 2024

    def test_first_and_last_day_resolve_to_same_period(self):
        assert period_key_for(date(2024, 3, 1)) == period_key_for(date(2024, 3, 31))

    @pytest.mark.parametrize("month", range(1, 13))
    def test_every_month_has_fixed_english_label(self, month):
        assert period_key_for(date(2023, month, 1)).month == MONTH_LABELS[month - 1]

    def test_display_form(self):
        assert str(period_key_for(date(2024, 3, 15))) == "Mar-2024"


class TestPreviousPeriod:
    def test_within_year(self):
        assert previous_period(PeriodKey(2024, 3)) == PeriodKey(2024, 2)

    def test_january_rolls_back_to_december_of_prior_year(self):
        prev = previous_period(PeriodKey.of("Jan", 2024))
        assert prev.month == "Dec"
        assert prev.year == 2023

    def test_next_inverts_previous(self):
        key = PeriodKey(2024, 1)
        assert key.previous().next() == key

    def test_december_next_is_january(self):
        assert PeriodKey(2023, 12).next() == PeriodKey(2024, 1)


class TestPeriodBounds:
    def test_leap_february(self):
        assert period_bounds(PeriodKey(2024, 2)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_non_leap_february(self):
        assert period_bounds(PeriodKey(2023, 2)) == (date(2023, 2, 1), date(2023, 2, 28))

    def test_contains(self):
        key = PeriodKey(2024, 4)
        assert key.contains(date(2024, 4, 30))
        assert not key.contains(date(2024, 5, 1))
        assert not key.contains(date(2023, 4, 15))


class TestParsing:
    def test_parse_display_form(self):
        assert PeriodKey.parse("Mar-2024") == PeriodKey(2024, 3)

    def test_parse_is_case_insensitive(self):
        assert PeriodKey.parse(" mar-2024 ") == PeriodKey(2024, 3)

    @pytest.mark.parametrize("value", ["Mrz-2024", "March", "Mar-", "-2024", "Mar-20x4", ""])
    def test_unknown_label_rejected(self, value):
        with pytest.raises(InvalidPeriodError) as exc_info:
            PeriodKey.parse(value)
        assert exc_info.value.code == "INVALID_PERIOD"

    def test_month_number_out_of_range(self):
        with pytest.raises(InvalidPeriodError):
            PeriodKey(2024, 13)

    def test_ordering_is_chronological(self):
        keys = [PeriodKey(2024, 1), PeriodKey(2023, 12), PeriodKey(2023, 2)]
        assert sorted(keys) == [PeriodKey(2023, 2), PeriodKey(2023, 12), PeriodKey(2024, 1)]
