"""
rental_batch.domain -- Pure schedule evaluation and result types.

ZERO I/O.  All types are frozen dataclasses.
"""

from rental_batch.domain.schedule import (
    MONTHLY_REVENUE_CRON,
    CronSpec,
    compute_next_run,
    matches_cron,
    parse_cron,
    should_fire,
)
from rental_batch.domain.types import JobRunResult, JobRunStatus

__all__ = [
    "MONTHLY_REVENUE_CRON",
    "CronSpec",
    "JobRunResult",
    "JobRunStatus",
    "compute_next_run",
    "matches_cron",
    "parse_cron",
    "should_fire",
]
