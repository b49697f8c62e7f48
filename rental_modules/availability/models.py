"""
Availability Domain Models (``rental_modules.availability.models``).

Frozen value objects returned by ``AvailabilityService``.  Results convert
to and from plain dicts so they can pass through any ``QueryCache`` backend
and be returned as JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from rental_kernel.domain.entities import RentalUnit


@dataclass(frozen=True)
class AvailabilityOptions:
    include_conflicts: bool = True
    calculate_next_available: bool = True
    # Next-available dates after this day are reported as None
    max_search_date: date | None = None

    def cache_token(self) -> str:
        return (
            f"{int(self.include_conflicts)}{int(self.calculate_next_available)}"
            f":{self.max_search_date.isoformat() if self.max_search_date else '-'}"
        )


@dataclass(frozen=True)
class BookingConflict:
    """An agreement whose impact interval overlaps the requested range."""

    agreement_id: str
    vendor_name: str
    status: str
    start_date: date
    end_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "agreement_id": self.agreement_id,
            "vendor_name": self.vendor_name,
            "status": self.status,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookingConflict:
        return cls(
            agreement_id=data["agreement_id"],
            vendor_name=data["vendor_name"],
            status=data["status"],
            start_date=date.fromisoformat(data["start_date"]),
            end_date=date.fromisoformat(data["end_date"]),
        )


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Availability of one unit for one requested range.

    ``error`` is set only for batch items whose calculation failed; such
    items always report ``available=False``.
    """

    unit_id: str
    available: bool
    conflicts: tuple[BookingConflict, ...] = ()
    next_available: date | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "available": self.available,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "next_available": self.next_available.isoformat() if self.next_available else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AvailabilityResult:
        next_available = data.get("next_available")
        return cls(
            unit_id=data["unit_id"],
            available=data["available"],
            conflicts=tuple(BookingConflict.from_dict(c) for c in data.get("conflicts", ())),
            next_available=date.fromisoformat(next_available) if next_available else None,
            error=data.get("error"),
        )

    @classmethod
    def failed(cls, unit_id: str, error: str) -> AvailabilityResult:
        return cls(unit_id=unit_id, available=False, error=error)


@dataclass(frozen=True)
class UnitAvailability:
    """A unit returned by a type search, annotated with its availability."""

    unit: RentalUnit
    availability: AvailabilityResult


@dataclass(frozen=True)
class AvailabilityMetrics:
    queries_executed: int = 0
    units_checked: int = 0
    conflicts_found: int = 0
    cache_hits: int = 0
    total_query_seconds: float = 0.0

    @property
    def average_query_seconds(self) -> float:
        if self.queries_executed == 0:
            return 0.0
        return self.total_query_seconds / self.queries_executed
