"""
Interval library (``rental_kernel.domain.intervals``).

Responsibility
--------------
Pure date-range math shared by the availability and revenue engines:
half-open overlap tests, month arithmetic, inclusive day counts, and the
bookkeeping helpers used for labels and loop control.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O, no clock access.  Callers pass every
date explicitly.

Invariants enforced
-------------------
* Ranges are half-open ``[start, end)``: ranges that merely touch do not
  overlap, and ``overlaps(a, b) == overlaps(b, a)``.
* ``add_months`` keeps the calendar-rollover behaviour of the booking system:
  a day that does not exist in the target month spills into the next one
  (Jan 31 + 1 month = Mar 3, or Mar 2 in a leap year).
* ``start_of_day``/``end_of_day``/``start_of_next_month``/``is_same_day``/
  ``months_between`` are for labels and bookkeeping only; revenue math uses
  ``days_between_inclusive`` on calendar dates.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateRange:
    """Half-open calendar range ``[start, end)``."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} precedes start {self.start}")

    @property
    def last_day(self) -> date:
        """Last calendar day covered by the range."""
        return self.end - _ONE_DAY


def overlaps(a: DateRange, b: DateRange) -> bool:
    """True when the two half-open ranges share at least one instant."""
    return a.start < b.end and a.end > b.start


def add_months(value: date, months: int) -> date:
    """Add calendar months, rolling overflowing days into the following month."""
    total = value.year * 12 + (value.month - 1) + months
    year, month_index = divmod(total, 12)
    return date(year, month_index + 1, 1) + timedelta(days=value.day - 1)


def days_between_inclusive(start: date | datetime, end: date | datetime) -> int:
    """Number of days touched by ``[start, end]``, counting both ends."""
    return math.ceil((end - start) / _ONE_DAY) + 1


def range_from_duration(start: date, duration_months: int) -> DateRange:
    return DateRange(start, add_months(start, duration_months))


def is_date_in_range(value: date, date_range: DateRange) -> bool:
    """Inclusive start, exclusive end."""
    return date_range.start <= value < date_range.end


def find_latest_end(ranges: Iterable[DateRange]) -> date | None:
    """Latest ``end`` across the ranges, or None for an empty input."""
    latest: date | None = None
    for r in ranges:
        if latest is None or r.end > latest:
            latest = r.end
    return latest


# ---------------------------------------------------------------------------
# Bookkeeping helpers
# ---------------------------------------------------------------------------


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_day(value: date | datetime) -> datetime:
    return datetime.combine(_as_date(value), time.min, tzinfo=getattr(value, "tzinfo", None))


def end_of_day(value: date | datetime) -> datetime:
    return datetime.combine(_as_date(value), time.max, tzinfo=getattr(value, "tzinfo", None))


def start_of_next_month(value: date | datetime) -> date:
    d = _as_date(value)
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def is_same_day(a: date | datetime, b: date | datetime) -> bool:
    return _as_date(a) == _as_date(b)


def months_between(start: date, end: date) -> float:
    """Whole months between the dates plus a day-based fraction of the end month."""
    total = (end.year - start.year) * 12 + (end.month - start.month)
    days = end.day - start.day
    if days != 0:
        total += days / calendar.monthrange(end.year, end.month)[1]
    return float(total)


# ---------------------------------------------------------------------------
# Reporting periods
# ---------------------------------------------------------------------------


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month (inclusive period)."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def iter_months(
    start_year: int, start_month: int, end_year: int, end_month: int,
) -> Iterator[tuple[int, int]]:
    """Yield ``(year, month)`` from the start month through the end month."""
    year, month = start_year, start_month
    while (year, month) <= (end_year, end_month):
        yield year, month
        month += 1
        if month > 12:
            month = 1
            year += 1
