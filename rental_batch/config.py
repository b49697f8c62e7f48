"""
Revenue Job Configuration Schema.
"""

from dataclasses import dataclass
from typing import Self

from rental_batch.domain.schedule import MONTHLY_REVENUE_CRON, parse_cron
from rental_kernel.logging_config import get_logger

logger = get_logger("batch.config")


@dataclass
class JobConfig:
    """When the monthly revenue job runs and how it retries."""

    cron_expression: str = MONTHLY_REVENUE_CRON

    # Single retry after a failed run
    retry_delay_seconds: float = 3600

    # Scheduler polling interval
    tick_interval_seconds: float = 60

    # Recalculated months include trial revenue
    include_trial_revenue: bool = False

    def __post_init__(self):
        parse_cron(self.cron_expression)
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds cannot be negative")
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be positive")

        logger.info(
            "job_config_initialized",
            extra={
                "cron_expression": self.cron_expression,
                "retry_delay_seconds": self.retry_delay_seconds,
                "tick_interval_seconds": self.tick_interval_seconds,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
