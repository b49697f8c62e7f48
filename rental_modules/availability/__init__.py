"""
Availability Engine (``rental_modules.availability``).

Interval-overlap conflict detection for rental units, next-available-date
search, concurrent batch queries with per-unit failure isolation, and
type-filtered searches for free units.
"""

from rental_modules.availability.config import AvailabilityConfig
from rental_modules.availability.models import (
    AvailabilityMetrics,
    AvailabilityOptions,
    AvailabilityResult,
    BookingConflict,
    UnitAvailability,
)
from rental_modules.availability.service import AvailabilityService

__all__ = [
    "AvailabilityConfig",
    "AvailabilityMetrics",
    "AvailabilityOptions",
    "AvailabilityResult",
    "AvailabilityService",
    "BookingConflict",
    "UnitAvailability",
]
