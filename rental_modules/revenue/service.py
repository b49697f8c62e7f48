"""
Revenue Engine Service (``rental_modules.revenue.service``).

Responsibility
--------------
Computes monthly revenue by prorating each agreement's monthly price over
the reporting month, persists historical months, produces never-persisted
projections for future months, and serves the analytics views built on
stored months (statistics, trends, unit occupancy, year-over-year, CSV).

Architecture position
---------------------
**Modules layer** -- orchestration.  Selection goes through kernel
selectors; all math is delegated to ``calculations.py``.

Invariants enforced
-------------------
* Each public method that writes owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on failure), so a
  month's record is written fully or not at all.
* Multi-month recalculation is sequential: each month commits before the
  next one starts.
* Projections are never written.
* All monetary calculations use ``Decimal`` -- NEVER ``float``.

Failure modes
-------------
* Store failure  -> ``StoreUnavailableError`` (after rollback).
* Invalid month  -> ``ValueError`` from ``month_bounds``.
* ``get_combined_revenue_range`` logs and skips a failing month.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rental_kernel.cache import REVENUE_NAMESPACE, NullQueryCache, QueryCache
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.intervals import add_months, days_between_inclusive, iter_months, month_bounds
from rental_kernel.exceptions import RentalKernelError
from rental_kernel.logging_config import get_logger
from rental_kernel.selectors import AgreementSelector, RentalUnitSelector, store_access
from rental_modules.revenue.calculations import (
    ZERO,
    build_monthly_record,
    build_trends,
    format_revenue_csv,
    format_unit_revenue_csv,
    growth_rate,
    percentage,
    referenced_unit_ids,
    round_money,
)
from rental_modules.revenue.config import RevenueConfig
from rental_modules.revenue.models import (
    MonthlyRevenueRecord,
    OccupancyProjection,
    PipelineEntry,
    RevenueStatistics,
    RevenueTrends,
    UnitAnalysis,
    UnitPerformance,
    VacantUnit,
    YearOverYear,
    YearSummary,
)
from rental_modules.revenue.orm import MonthlyRevenueModel

logger = get_logger("modules.revenue.service")

_STATISTICS_KEY = "statistics"


class RevenueService:
    """
    Historical and projected monthly revenue.

    Contract
    --------
    * ``calculate_monthly_revenue`` is idempotent: over unchanged agreements
      it rewrites an identical record.
    * "Now" comes from the injected clock; months up to and including the
      current one are historical, later months are projections.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: RevenueConfig | None = None,
        cache: QueryCache | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or RevenueConfig.with_defaults()
        self._cache = cache or NullQueryCache()
        self._agreements = AgreementSelector(session)
        self._units = RentalUnitSelector(session)

    # =========================================================================
    # Monthly calculation
    # =========================================================================

    def _compute(
        self, year: int, month: int, include_trial_revenue: bool, is_projection: bool,
    ) -> MonthlyRevenueRecord:
        period_start, period_end = month_bounds(year, month)
        agreements = self._agreements.find_for_period(
            period_start, period_end, self._config.revenue_statuses,
        )
        units = self._units.get_many(referenced_unit_ids(agreements))
        return build_monthly_record(
            year,
            month,
            agreements,
            units,
            include_trial_revenue=include_trial_revenue,
            is_projection=is_projection,
            calculated_at=self._clock.now(),
            quantum=self._config.rounding_quantum,
        )

    def calculate_monthly_revenue(
        self, year: int, month: int, include_trial_revenue: bool = False,
    ) -> MonthlyRevenueRecord:
        """Calculate a month and upsert its stored record."""
        try:
            record = self._compute(year, month, include_trial_revenue, is_projection=False)
            with store_access("monthly_revenue.upsert"):
                existing = self._session.execute(
                    select(MonthlyRevenueModel).where(MonthlyRevenueModel.month == record.month)
                ).scalar_one_or_none()
                if existing is None:
                    self._session.add(MonthlyRevenueModel.from_dto(record))
                else:
                    existing.apply(record)
                self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "monthly_revenue_rolled_back",
                extra={"year": year, "month": month},
                exc_info=True,
            )
            raise

        self._cache.invalidate_namespace(REVENUE_NAMESPACE)
        logger.info(
            "monthly_revenue_calculated",
            extra={
                "month": record.month_key,
                "total_revenue": str(record.total_revenue),
                "paid_agreements": record.paid_agreements,
                "trial_agreements": record.trial_agreements,
                "unit_count": record.occupied_units,
                "include_trial_revenue": include_trial_revenue,
            },
        )
        return record

    def calculate_future_revenue(
        self, year: int, month: int, include_trial_revenue: bool = False,
    ) -> MonthlyRevenueRecord:
        """Projection for a month; in-progress trials convert on their payment start."""
        record = self._compute(year, month, include_trial_revenue, is_projection=True)
        logger.info(
            "future_revenue_projected",
            extra={
                "month": record.month_key,
                "total_revenue": str(record.total_revenue),
                "paid_agreements": record.paid_agreements,
                "trial_agreements": record.trial_agreements,
            },
        )
        return record

    # =========================================================================
    # Stored records
    # =========================================================================

    def get_monthly_revenue(self, year: int, month: int) -> MonthlyRevenueRecord | None:
        month_start, _ = month_bounds(year, month)
        with store_access("monthly_revenue.get"):
            model = self._session.execute(
                select(MonthlyRevenueModel).where(MonthlyRevenueModel.month == month_start)
            ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def _records_between(self, first: date, last: date) -> list[MonthlyRevenueRecord]:
        with store_access("monthly_revenue.range"):
            models = self._session.execute(
                select(MonthlyRevenueModel)
                .where(MonthlyRevenueModel.month >= first)
                .where(MonthlyRevenueModel.month <= last)
                .order_by(MonthlyRevenueModel.month)
            ).scalars().all()
        return [m.to_dto() for m in models]

    def get_revenue_range(
        self, start_year: int, start_month: int, end_year: int, end_month: int,
    ) -> list[MonthlyRevenueRecord]:
        first, _ = month_bounds(start_year, start_month)
        last, _ = month_bounds(end_year, end_month)
        return self._records_between(first, last)

    def calculate_revenue_range(
        self, start_year: int, start_month: int, end_year: int, end_month: int,
    ) -> list[MonthlyRevenueRecord]:
        """Recalculate every month in the range, one after another."""
        return [
            self.calculate_monthly_revenue(year, month)
            for year, month in iter_months(start_year, start_month, end_year, end_month)
        ]

    def refresh_all_revenue_data(self) -> list[MonthlyRevenueRecord]:
        """Recalculate every month from the earliest agreement's creation to now."""
        earliest = self._agreements.earliest_created_at()
        if earliest is None:
            logger.info("revenue_refresh_skipped", extra={"reason": "no_agreements"})
            return []

        today = self._clock.today()
        logger.info(
            "revenue_refresh_started",
            extra={"from_month": f"{earliest.year:04d}-{earliest.month:02d}"},
        )
        records = self.calculate_revenue_range(earliest.year, earliest.month, today.year, today.month)
        logger.info("revenue_refresh_completed", extra={"months": len(records)})
        return records

    # =========================================================================
    # Projections
    # =========================================================================

    def get_future_revenue_range(
        self, start_year: int, start_month: int, end_year: int, end_month: int,
    ) -> list[MonthlyRevenueRecord]:
        return [
            self.calculate_future_revenue(year, month)
            for year, month in iter_months(start_year, start_month, end_year, end_month)
        ]

    def get_combined_revenue_range(
        self,
        start_year: int,
        start_month: int,
        end_year: int,
        end_month: int,
        include_trial_revenue: bool = False,
    ) -> list[MonthlyRevenueRecord]:
        """
        Stored months up to the current month, projections after it.

        A historical month missing from the store is calculated; with
        ``include_trial_revenue`` it is always recalculated.
        """
        today = self._clock.today()
        current = (today.year, today.month)
        results: list[MonthlyRevenueRecord] = []

        for year, month in iter_months(start_year, start_month, end_year, end_month):
            try:
                if (year, month) <= current:
                    record = self.get_monthly_revenue(year, month)
                    if record is None or include_trial_revenue:
                        record = self.calculate_monthly_revenue(year, month, include_trial_revenue)
                else:
                    record = self.calculate_future_revenue(year, month, include_trial_revenue)
            except RentalKernelError:
                logger.warning(
                    "combined_revenue_month_skipped",
                    extra={"month": f"{year:04d}-{month:02d}"},
                    exc_info=True,
                )
                continue
            results.append(record)

        return results

    # =========================================================================
    # Analytics
    # =========================================================================

    def get_revenue_statistics(self) -> RevenueStatistics:
        cached = self._cache.get(REVENUE_NAMESPACE, _STATISTICS_KEY)
        if cached is not None:
            return RevenueStatistics.from_dict(cached)

        with store_access("monthly_revenue.all"):
            models = self._session.execute(
                select(MonthlyRevenueModel).order_by(MonthlyRevenueModel.month)
            ).scalars().all()
        records = [m.to_dto() for m in models]

        total = sum((r.total_revenue for r in records), ZERO)
        stats = RevenueStatistics(
            total_revenue=total,
            total_paid_agreements=sum(r.paid_agreements for r in records),
            total_trial_agreements=sum(r.trial_agreements for r in records),
            average_monthly_revenue=round_money(total / len(records)) if records else ZERO,
            months_tracked=len(records),
        )
        self._cache.set(
            REVENUE_NAMESPACE, _STATISTICS_KEY, stats.to_dict(),
            ttl_seconds=self._config.cache_ttl_seconds,
        )
        return stats

    def get_revenue_trends(self, months: int | None = None) -> RevenueTrends:
        """Month-over-month growth over the ``months`` stored months ending with the current one."""
        months = months or self._config.trend_months
        today = self._clock.today()
        current_start = date(today.year, today.month, 1)
        records = self._records_between(add_months(current_start, -(months - 1)), current_start)
        return build_trends(records)

    def get_unit_analysis(self, year: int, month: int) -> UnitAnalysis:
        """Occupancy, top earners and vacant units for a stored month."""
        month_start, month_end = month_bounds(year, month)
        total_units = self._units.count(only_available=True)
        record = self.get_monthly_revenue(year, month)
        breakdown = record.unit_breakdown if record is not None else ()

        top = sorted(breakdown, key=lambda u: u.revenue, reverse=True)[: self._config.top_units]
        occupied_ids = {u.unit_id for u in breakdown}
        days_in_month = days_between_inclusive(month_start, month_end)
        vacant = [
            VacantUnit(unit_id=str(unit.id), label=unit.display_label, days_vacant=days_in_month)
            for unit in self._units.list_available()
            if str(unit.id) not in occupied_ids
        ][: self._config.vacant_units]

        return UnitAnalysis(
            month=month_start,
            total_units=total_units,
            occupied_units=len(breakdown),
            occupancy_rate=percentage(len(breakdown), total_units),
            top_units=tuple(
                UnitPerformance(
                    unit_id=u.unit_id,
                    label=u.label,
                    revenue=u.revenue,
                    agreement_count=u.agreement_count,
                )
                for u in top
            ),
            vacant_units=tuple(vacant),
        )

    def get_year_over_year(self, year: int) -> YearOverYear:
        def summarize(y: int) -> YearSummary:
            records = self.get_revenue_range(y, 1, y, 12)
            total = sum((r.total_revenue for r in records), ZERO)
            return YearSummary(
                year=y,
                total_revenue=total,
                average_monthly_revenue=round_money(total / len(records)) if records else ZERO,
                total_paid_agreements=sum(r.paid_agreements for r in records),
            )

        current = summarize(year)
        previous = summarize(year - 1)
        return YearOverYear(
            current=current,
            previous=previous,
            revenue_growth=growth_rate(previous.total_revenue, current.total_revenue),
            agreement_growth=growth_rate(
                Decimal(previous.total_paid_agreements), Decimal(current.total_paid_agreements),
            ),
        )

    def export_revenue_csv(
        self, start_year: int, start_month: int, end_year: int, end_month: int,
    ) -> str:
        records = self.get_revenue_range(start_year, start_month, end_year, end_month)
        logger.info("revenue_csv_exported", extra={"months": len(records)})
        return format_revenue_csv(records)

    def export_unit_revenue_csv(self, year: int, month: int) -> str:
        return format_unit_revenue_csv(self.get_monthly_revenue(year, month))

    def get_contract_pipeline(self, months: int | None = None) -> list[PipelineEntry]:
        """Agreements starting between today and ``months`` months from now."""
        months = months or self._config.pipeline_months
        today = self._clock.today()
        agreements = self._agreements.find_starting_between(
            today, add_months(today, months), self._config.revenue_statuses,
        )
        return [
            PipelineEntry(
                agreement_id=str(a.id),
                vendor_id=str(a.vendor_id),
                start_date=a.scheduled_start_date,
                end_date=a.impact_to,
                monthly_revenue=a.total_monthly_price,
                is_trial=a.is_trial,
                payment_start_date=a.payment_start_date,
                unit_ids=tuple(str(u) for u in a.unit_ids),
            )
            for a in agreements
        ]

    def get_projected_occupancy(self, months: int | None = None) -> list[OccupancyProjection]:
        """Distinct occupied units per month for the current and following months."""
        months = months or self._config.pipeline_months
        today = self._clock.today()
        current_start = date(today.year, today.month, 1)
        total_units = self._units.count(only_available=True)

        projections = []
        for offset in range(months):
            month_start = add_months(current_start, offset)
            _, month_end = month_bounds(month_start.year, month_start.month)
            agreements = self._agreements.find_for_period(
                month_start, month_end, self._config.revenue_statuses,
            )
            occupied = len(referenced_unit_ids(agreements))
            projections.append(OccupancyProjection(
                month=month_start,
                total_units=total_units,
                occupied_units=occupied,
                occupancy_rate=percentage(occupied, total_units),
            ))
        return projections
