"""
RevenueCalculationJob -- scheduled monthly revenue recalculation.

Contract:
    ``run()`` recalculates the previous month and the current month, each
    in its own session from ``session_factory``.  Any failure is logged as
    ``revenue_job_failed`` and one retry is scheduled after
    ``retry_delay_seconds`` on a ``threading.Timer`` owned by the job.  The
    retry never schedules another.  ``run()`` itself does not raise.

    ``calculate_for_month()`` is the manual trigger; it propagates failures.

Architecture: rental_batch/services.  Drives rental_modules.revenue; nothing
    in the kernel or modules imports from rental_batch.
"""

from __future__ import annotations

import threading
from datetime import date
from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session

from rental_batch.config import JobConfig
from rental_batch.domain.types import JobRunResult, JobRunStatus
from rental_kernel.cache import QueryCache
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.intervals import add_months
from rental_kernel.logging_config import LogContext, get_logger
from rental_modules.revenue.config import RevenueConfig
from rental_modules.revenue.models import MonthlyRevenueRecord
from rental_modules.revenue.service import RevenueService

logger = get_logger("batch.revenue_job")

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class RevenueCalculationJob:
    """Recalculates the previous and current month's revenue records."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        config: JobConfig | None = None,
        revenue_config: RevenueConfig | None = None,
        cache: QueryCache | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or JobConfig.with_defaults()
        self._revenue_config = revenue_config
        self._cache = cache
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._retry_timer: threading.Timer | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def months_to_recalculate(self) -> tuple[tuple[int, int], tuple[int, int]]:
        """``(year, month)`` of the previous and the current month."""
        today = self._clock.today()
        current = date(today.year, today.month, 1)
        previous = add_months(current, -1)
        return (previous.year, previous.month), (current.year, current.month)

    def run(self) -> JobRunResult:
        return self._execute(is_retry=False)

    def calculate_for_month(self, year: int, month: int) -> MonthlyRevenueRecord:
        """Recalculate one month on demand."""
        logger.info("revenue_manual_calculation_started", extra={"year": year, "month": month})
        return self._calculate(year, month)

    @property
    def retry_pending(self) -> bool:
        with self._lock:
            return self._retry_timer is not None and self._retry_timer.is_alive()

    def cancel_retry(self) -> None:
        with self._lock:
            timer, self._retry_timer = self._retry_timer, None
        if timer is not None:
            timer.cancel()
            logger.info("revenue_job_retry_cancelled")

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _calculate(self, year: int, month: int) -> MonthlyRevenueRecord:
        with self._session_factory() as session:
            service = RevenueService(
                session,
                clock=self._clock,
                config=self._revenue_config,
                cache=self._cache,
            )
            return service.calculate_monthly_revenue(
                year, month, include_trial_revenue=self._config.include_trial_revenue,
            )

    def _execute(self, is_retry: bool) -> JobRunResult:
        job_id = str(uuid4())
        done: list[str] = []

        with LogContext.bind(job_id=job_id):
            logger.info("revenue_job_started", extra={"is_retry": is_retry})
            try:
                for year, month in self.months_to_recalculate():
                    record = self._calculate(year, month)
                    done.append(record.month_key)
            except Exception as exc:
                logger.exception(
                    "revenue_job_failed",
                    extra={"is_retry": is_retry, "completed_months": done},
                )
                retry_scheduled = False if is_retry else self._schedule_retry()
                return JobRunResult(
                    job_id=job_id,
                    status=JobRunStatus.FAILED,
                    months=tuple(done),
                    error=str(exc),
                    is_retry=is_retry,
                    retry_scheduled=retry_scheduled,
                )

            logger.info("revenue_job_completed", extra={"months": done, "is_retry": is_retry})
        return JobRunResult(
            job_id=job_id,
            status=JobRunStatus.COMPLETED,
            months=tuple(done),
            is_retry=is_retry,
        )

    def _schedule_retry(self) -> bool:
        delay = self._config.retry_delay_seconds
        timer = self._timer_factory(delay, self._run_retry)
        timer.daemon = True
        with self._lock:
            if self._retry_timer is not None:
                self._retry_timer.cancel()
            self._retry_timer = timer
        timer.start()
        logger.info("revenue_job_retry_scheduled", extra={"delay_seconds": delay})
        return True

    def _run_retry(self) -> None:
        with self._lock:
            self._retry_timer = None
        self._execute(is_retry=True)
