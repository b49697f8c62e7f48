"""
Revenue Engine Configuration Schema.

Which agreement statuses earn revenue, how stored figures are rounded, and
the default sizes of the analytics views.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from rental_kernel.domain.entities import AgreementStatus
from rental_kernel.logging_config import get_logger

logger = get_logger("modules.revenue.config")


@dataclass
class RevenueConfig:
    """Configuration schema for the revenue engine."""

    # Statuses selected for revenue and occupancy
    revenue_statuses: tuple[AgreementStatus, ...] = (
        AgreementStatus.ACTIVE,
        AgreementStatus.SCHEDULED,
    )

    # Quantum for figures written to monthly revenue records
    rounding_quantum: Decimal = Decimal("0.01")

    # Unit analysis list sizes
    top_units: int = 10
    vacant_units: int = 10

    # Default windows (months)
    trend_months: int = 12
    pipeline_months: int = 12

    # Seconds cached statistics stay valid
    cache_ttl_seconds: int = 300

    def __post_init__(self):
        self.revenue_statuses = tuple(AgreementStatus(s) for s in self.revenue_statuses)
        if not self.revenue_statuses:
            raise ValueError("revenue_statuses cannot be empty")
        if self.rounding_quantum <= 0:
            raise ValueError("rounding_quantum must be positive")
        if self.top_units <= 0 or self.vacant_units <= 0:
            raise ValueError("top_units and vacant_units must be positive")
        if self.trend_months <= 0 or self.pipeline_months <= 0:
            raise ValueError("trend_months and pipeline_months must be positive")

        logger.info(
            "revenue_config_initialized",
            extra={
                "revenue_statuses": [s.value for s in self.revenue_statuses],
                "rounding_quantum": str(self.rounding_quantum),
                "trend_months": self.trend_months,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
