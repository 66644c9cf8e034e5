"""
Period Key Resolver -- calendar month buckets for balance rollover.

Responsibility:
    Derives the canonical period key (short month label + year) from a
    calendar date, steps to the adjacent prior/next period, and yields the
    inclusive first/last day used for transaction aggregation.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - The key is taken from the date as given; no timezone normalization.
    - ``previous_period`` rolls January back to December of year - 1.
    - Month labels are the fixed English abbreviations ``Jan`` .. ``Dec``
      regardless of process locale, so stored keys are stable.

Failure modes:
    - InvalidPeriodError from ``PeriodKey.parse`` on an unknown label.
      Resolving from a date is total.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date

from balance_kernel.exceptions import InvalidPeriodError

MONTH_LABELS: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_MONTH_NUMBERS = {label.lower(): i + 1 for i, label in enumerate(MONTH_LABELS)}


@dataclass(frozen=True, slots=True, order=True)
class PeriodKey:
    """
    One (month, year) bucket.

    Ordering is chronological: fields are compared year first.
    """

    year: int
    month_number: int

    def __post_init__(self) -> None:
        if not 1 <= self.month_number <= 12:
            raise InvalidPeriodError(f"{self.month_number}-{self.year}")

    @property
    def month(self) -> str:
        """Short month label as stored on snapshots (e.g. ``"Mar"``)."""
        return MONTH_LABELS[self.month_number - 1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month_number, 1)

    @property
    def last_day(self) -> date:
        days = calendar.monthrange(self.year, self.month_number)[1]
        return date(self.year, self.month_number, days)

    def previous(self) -> PeriodKey:
        if self.month_number == 1:
            return PeriodKey(self.year - 1, 12)
        return PeriodKey(self.year, self.month_number - 1)

    def next(self) -> PeriodKey:
        if self.month_number == 12:
            return PeriodKey(self.year + 1, 1)
        return PeriodKey(self.year, self.month_number + 1)

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month_number

    @classmethod
    def of(cls, month: str, year: int) -> PeriodKey:
        """Build a key from a stored (month label, year) pair."""
        number = _MONTH_NUMBERS.get(month.strip().lower())
        if number is None:
            raise InvalidPeriodError(f"{month}-{year}")
        return cls(int(year), number)

    @classmethod
    def parse(cls, value: str) -> PeriodKey:
        """Parse ``"Mar-2024"`` (the display form) into a key."""
        month, sep, year = value.strip().partition("-")
        if not sep or not year.strip().isdigit():
            raise InvalidPeriodError(value)
        try:
            return cls.of(month, int(year))
        except InvalidPeriodError:
            raise InvalidPeriodError(value) from None

    def __str__(self) -> str:
        return f"{self.month}-{self.year}"


def period_key_for(day: date) -> PeriodKey:
    """Resolve the period containing ``day``."""
    return PeriodKey(day.year, day.month)


def previous_period(key: PeriodKey) -> PeriodKey:
    """The period immediately before ``key``."""
    return key.previous()


def period_bounds(key: PeriodKey) -> tuple[date, date]:
    """Inclusive (first day, last day) of the period."""
    return key.first_day, key.last_day
