"""
Revenue Engine (``rental_modules.revenue``).

Prorated monthly revenue over agreements, split into paid and still-in-trial
agreements, aggregated overall and per rental unit.  Historical months are
stored; future months are pure projections.
"""

from rental_modules.revenue.config import RevenueConfig
from rental_modules.revenue.models import (
    MonthlyRevenueRecord,
    OccupancyProjection,
    PipelineEntry,
    RevenueStatistics,
    RevenueTrends,
    UnitAnalysis,
    UnitRevenue,
    YearOverYear,
)
from rental_modules.revenue.service import RevenueService

__all__ = [
    "MonthlyRevenueRecord",
    "OccupancyProjection",
    "PipelineEntry",
    "RevenueConfig",
    "RevenueService",
    "RevenueStatistics",
    "RevenueTrends",
    "UnitAnalysis",
    "UnitRevenue",
    "YearOverYear",
]
