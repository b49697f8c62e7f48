"""
Revenue Domain Models (``rental_modules.revenue.models``).

Responsibility
--------------
Frozen value objects for monthly revenue records (historical and
projected), their per-unit breakdown, and the analytics views built on top
of stored records.

Invariants enforced
-------------------
* All monetary fields use ``Decimal``.
* ``MonthlyRevenueRecord.month`` is always the first day of the month.
* Projections carry ``is_projection=True`` and are never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class UnitRevenue:
    """Revenue attributed to one rental unit for one month."""

    unit_id: str
    label: str
    revenue: Decimal
    agreement_count: int
    trial_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "label": self.label,
            "revenue": str(self.revenue),
            "agreement_count": self.agreement_count,
            "trial_count": self.trial_count,
        }


@dataclass(frozen=True)
class MonthlyRevenueRecord:
    month: date
    total_revenue: Decimal
    paid_agreements: int
    trial_agreements: int
    unit_breakdown: tuple[UnitRevenue, ...] = ()
    is_projection: bool = False
    include_trial_revenue: bool = False
    calculated_at: datetime | None = None

    @property
    def year(self) -> int:
        return self.month.year

    @property
    def month_number(self) -> int:
        return self.month.month

    @property
    def month_key(self) -> str:
        return f"{self.month.year:04d}-{self.month.month:02d}"

    @property
    def occupied_units(self) -> int:
        return len(self.unit_breakdown)

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month_key,
            "total_revenue": str(self.total_revenue),
            "paid_agreements": self.paid_agreements,
            "trial_agreements": self.trial_agreements,
            "unit_breakdown": [u.to_dict() for u in self.unit_breakdown],
            "is_projection": self.is_projection,
        }


@dataclass(frozen=True)
class RevenueStatistics:
    total_revenue: Decimal
    total_paid_agreements: int
    total_trial_agreements: int
    average_monthly_revenue: Decimal
    months_tracked: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_revenue": str(self.total_revenue),
            "total_paid_agreements": self.total_paid_agreements,
            "total_trial_agreements": self.total_trial_agreements,
            "average_monthly_revenue": str(self.average_monthly_revenue),
            "months_tracked": self.months_tracked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RevenueStatistics:
        return cls(
            total_revenue=Decimal(data["total_revenue"]),
            total_paid_agreements=data["total_paid_agreements"],
            total_trial_agreements=data["total_trial_agreements"],
            average_monthly_revenue=Decimal(data["average_monthly_revenue"]),
            months_tracked=data["months_tracked"],
        )


@dataclass(frozen=True)
class TrendPoint:
    month: date
    revenue: Decimal
    growth_rate: Decimal
    paid_agreements: int
    trial_agreements: int


@dataclass(frozen=True)
class RevenueTrends:
    points: tuple[TrendPoint, ...]
    average_growth_rate: Decimal
    best_month: TrendPoint | None
    worst_month: TrendPoint | None


@dataclass(frozen=True)
class UnitPerformance:
    unit_id: str
    label: str
    revenue: Decimal
    agreement_count: int


@dataclass(frozen=True)
class VacantUnit:
    unit_id: str
    label: str
    days_vacant: int


@dataclass(frozen=True)
class UnitAnalysis:
    month: date
    total_units: int
    occupied_units: int
    occupancy_rate: Decimal
    top_units: tuple[UnitPerformance, ...]
    vacant_units: tuple[VacantUnit, ...]


@dataclass(frozen=True)
class YearSummary:
    year: int
    total_revenue: Decimal
    average_monthly_revenue: Decimal
    total_paid_agreements: int


@dataclass(frozen=True)
class YearOverYear:
    current: YearSummary
    previous: YearSummary
    revenue_growth: Decimal
    agreement_growth: Decimal


@dataclass(frozen=True)
class PipelineEntry:
    """A scheduled or running agreement starting inside the pipeline window."""

    agreement_id: str
    vendor_id: str
    start_date: date
    end_date: date
    monthly_revenue: Decimal
    is_trial: bool
    payment_start_date: date
    unit_ids: tuple[str, ...]


@dataclass(frozen=True)
class OccupancyProjection:
    month: date
    total_units: int
    occupied_units: int
    occupancy_rate: Decimal
    is_projection: bool = True
