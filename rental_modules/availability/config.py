"""
Availability Engine Configuration Schema.

Which agreement statuses block a unit, how wide batch fan-out may go, and
how many units a type search loads.
"""

from dataclasses import dataclass
from typing import Self

from rental_kernel.domain.entities import AgreementStatus
from rental_kernel.logging_config import get_logger

logger = get_logger("modules.availability.config")


@dataclass
class AvailabilityConfig:
    """Configuration schema for the availability engine."""

    # Statuses whose impact interval makes a unit unavailable
    blocking_statuses: tuple[AgreementStatus, ...] = (
        AgreementStatus.ACTIVE,
        AgreementStatus.SCHEDULED,
        AgreementStatus.PENDING,
    )

    # Thread pool width for batch availability
    batch_max_workers: int = 8

    # Default number of units loaded by find_available_units
    find_limit: int = 50

    # Seconds a cached availability result stays valid
    cache_ttl_seconds: int = 300

    def __post_init__(self):
        self.blocking_statuses = tuple(AgreementStatus(s) for s in self.blocking_statuses)
        if not self.blocking_statuses:
            raise ValueError("blocking_statuses cannot be empty")
        if self.batch_max_workers <= 0:
            raise ValueError("batch_max_workers must be positive")
        if self.find_limit <= 0:
            raise ValueError("find_limit must be positive")
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds cannot be negative")

        logger.info(
            "availability_config_initialized",
            extra={
                "blocking_statuses": [s.value for s in self.blocking_statuses],
                "batch_max_workers": self.batch_max_workers,
                "find_limit": self.find_limit,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
