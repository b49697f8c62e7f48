"""
Pure domain layer.

Value objects and date math with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (SystemClock is the single sanctioned exception)
"""

from rental_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from rental_kernel.domain.intervals import (
    DateRange,
    add_months,
    days_between_inclusive,
    month_bounds,
    overlaps,
)
from rental_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DateRange",
    "add_months",
    "days_between_inclusive",
    "month_bounds",
    "overlaps",
    "Transition",
    "Workflow",
]
