"""
Batch domain types -- frozen dataclasses.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class JobRunStatus(str, Enum):
    """Outcome of one revenue job run."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobRunResult:
    """Result of a revenue recalculation run.

    ``months`` lists the ``YYYY-MM`` keys recalculated before the run
    finished or failed.
    """

    job_id: str
    status: JobRunStatus
    months: tuple[str, ...] = ()
    error: str | None = None
    is_retry: bool = False
    retry_scheduled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == JobRunStatus.COMPLETED
