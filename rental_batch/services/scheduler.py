"""
In-process scheduler for the monthly revenue job.

A daemon thread wakes every ``tick_interval_seconds`` and calls
``tick()``.  The first tick arms the schedule at the next cron match; a
later tick at or past that time runs the job once and re-arms from "now",
so missed matches collapse into a single run.  Cron fields are read in the
clock's timezone.  There is no leader election: run one scheduler per
deployment.
"""

from __future__ import annotations

import threading
from datetime import datetime

from rental_batch.config import JobConfig
from rental_batch.domain.schedule import compute_next_run, should_fire
from rental_batch.services.revenue_job import RevenueCalculationJob
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.logging_config import get_logger

logger = get_logger("batch.scheduler")


class RevenueJobScheduler:
    def __init__(
        self,
        job: RevenueCalculationJob,
        clock: Clock | None = None,
        config: JobConfig | None = None,
    ):
        self._job = job
        self._clock = clock if clock is not None else SystemClock()
        self._config = config or JobConfig.with_defaults()
        self.next_run_at: datetime | None = None
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def tick(self) -> int:
        """Run the job if it is due; returns how many runs happened (0 or 1)."""
        now = self._clock.now()
        cron = self._config.cron_expression

        if self.next_run_at is None:
            self.next_run_at = compute_next_run(cron, now)
            logger.info("revenue_job_armed", extra={"next_run_at": self.next_run_at})
            return 0
        if not should_fire(self.next_run_at, now):
            return 0

        result = self._job.run()
        self.next_run_at = compute_next_run(cron, now)
        logger.info(
            "revenue_job_fired",
            extra={
                "job_id": result.job_id,
                "status": result.status.value,
                "next_run_at": self.next_run_at,
            },
        )
        return 1

    def start(self) -> None:
        if self.is_running:
            return
        self._wake.clear()
        self._thread = threading.Thread(
            target=self._loop, name="revenue-job-scheduler", daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={"tick_interval": self._config.tick_interval_seconds},
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the loop and cancel any retry the job still has pending."""
        self._wake.set()
        if self.is_running:
            self._thread.join(timeout)
        self._job.cancel_retry()
        logger.info("scheduler_stopped")

    def _loop(self) -> None:
        while not self._wake.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_failed")
            self._wake.wait(self._config.tick_interval_seconds)
