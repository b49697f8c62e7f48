"""
Cron arithmetic for the revenue job.

Five-field expressions (``minute hour day-of-month month day-of-week``,
Sunday = 0) with ``*``, lists, ranges and steps.  Everything here is a
pure function of its arguments; the scheduler supplies "now" from its
clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

# 02:00 on the first of every month
MONTHLY_REVENUE_CRON = "0 2 1 * *"

_SEARCH_HORIZON = timedelta(days=366)

# (attribute, lowest, highest) in expression order
_FIELDS: tuple[tuple[str, int, int], ...] = (
    ("minutes", 0, 59),
    ("hours", 0, 23),
    ("days_of_month", 1, 31),
    ("months", 1, 12),
    ("days_of_week", 0, 6),
)


def _every(lo: int, hi: int):
    return field(default_factory=lambda: frozenset(range(lo, hi + 1)))


@dataclass(frozen=True)
class CronSpec:
    """The set of allowed values for each cron field; defaults allow everything."""

    minutes: frozenset[int] = _every(0, 59)
    hours: frozenset[int] = _every(0, 23)
    days_of_month: frozenset[int] = _every(1, 31)
    months: frozenset[int] = _every(1, 12)
    days_of_week: frozenset[int] = _every(0, 6)

    def matches_day(self, dt: datetime) -> bool:
        weekday = dt.isoweekday() % 7
        return (
            dt.month in self.months
            and dt.day in self.days_of_month
            and weekday in self.days_of_week
        )


def _number(text: str, lo: int, hi: int) -> int:
    value = int(text)
    if not lo <= value <= hi:
        raise ValueError(f"Value {value} outside range [{lo}, {hi}]")
    return value


def _parse_cron_field(text: str, lo: int, hi: int) -> frozenset[int]:
    """Expand one field into the values it allows; raises ValueError when malformed."""
    selected: set[int] = set()
    for item in (piece.strip() for piece in text.split(",")):
        if not item:
            raise ValueError(f"Empty cron field element in '{text}'")

        base, _, step_text = item.partition("/")
        step = int(step_text) if step_text else 1
        if step < 1:
            raise ValueError(f"Step must be positive: {step}")

        if base == "*":
            first, last = lo, hi
        elif "-" in base:
            first_text, last_text = base.split("-", 1)
            first, last = _number(first_text, lo, hi), _number(last_text, lo, hi)
            if first > last:
                raise ValueError(f"Range start > end: {first}-{last}")
        else:
            first = _number(base, lo, hi)
            # "n/step" runs from n to the top of the field
            last = hi if step_text else first

        selected.update(range(first, last + 1, step))
    return frozenset(selected)


def parse_cron(expression: str) -> CronSpec:
    fields = expression.split()
    if len(fields) != len(_FIELDS):
        raise ValueError(f"Cron expression needs 5 fields, got {len(fields)}: '{expression}'")
    return CronSpec(**{
        name: _parse_cron_field(text, lo, hi)
        for text, (name, lo, hi) in zip(fields, _FIELDS)
    })


def matches_cron(spec: CronSpec, dt: datetime) -> bool:
    return spec.matches_day(dt) and dt.hour in spec.hours and dt.minute in spec.minutes


def compute_next_run(cron_expression: str, after: datetime) -> datetime:
    """
    The first whole minute strictly later than ``after`` that the
    expression selects.  Non-matching days are skipped in one step.

    Raises ValueError for a malformed expression, or when nothing matches
    within a year (``0 0 31 2 *``).
    """
    spec = parse_cron(cron_expression)
    moment = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
    horizon = moment + _SEARCH_HORIZON

    while moment < horizon:
        if not spec.matches_day(moment):
            moment = moment.replace(hour=0, minute=0) + timedelta(days=1)
        elif matches_cron(spec, moment):
            return moment
        else:
            moment += timedelta(minutes=1)

    raise ValueError(f"No match for '{cron_expression}' within a year after {after.isoformat()}")


def should_fire(next_run_at: datetime | None, as_of: datetime) -> bool:
    """Due once ``as_of`` reaches an armed run time."""
    return next_run_at is not None and as_of >= next_run_at
