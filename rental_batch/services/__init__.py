"""rental_batch.services -- Revenue job and its polling scheduler."""

from rental_batch.services.revenue_job import RevenueCalculationJob
from rental_batch.services.scheduler import RevenueJobScheduler

__all__ = ["RevenueCalculationJob", "RevenueJobScheduler"]
