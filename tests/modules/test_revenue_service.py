"""
Tests for the revenue engine service.

Validates:
- calculate_monthly_revenue: proration, trial partition, idempotent upsert
- Range recalculation and the full-history refresh
- Projections are flagged and never stored
- Combined historical and projected ranges around the current month
- Statistics (cached), trends, unit analysis, year-over-year
- CSV exports, contract pipeline, projected occupancy
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rental_kernel.cache import REVENUE_NAMESPACE, InMemoryQueryCache
from rental_kernel.domain.entities import AgreementStatus
from rental_modules.revenue import RevenueConfig, RevenueService
from rental_modules.revenue.calculations import NO_DATA_MESSAGE
from rental_modules.revenue.orm import MonthlyRevenueModel


@pytest.fixture
def revenue_service(session, deterministic_clock):
    return RevenueService(session, clock=deterministic_clock)


@pytest.fixture
def unit(create_unit):
    return create_unit(label="A-01")


@pytest.fixture
def vendor(create_vendor):
    return create_vendor(name="Maple Goods")


def _stored_months(session) -> int:
    return session.execute(select(func.count()).select_from(MonthlyRevenueModel)).scalar_one()


class TestCalculateMonthlyRevenue:
    def test_mid_month_start_prorated(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 10), price=Decimal("100"))

        record = revenue_service.calculate_monthly_revenue(2025, 1)

        assert record.month == date(2025, 1, 1)
        assert record.total_revenue == Decimal("70.97")
        assert record.paid_agreements == 1
        assert record.trial_agreements == 0
        assert not record.is_projection
        (row,) = record.unit_breakdown
        assert row.unit_id == str(unit.id)
        assert row.label == "A-01"
        assert row.revenue == Decimal("70.97")

    def test_trial_counted_before_payment_start(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(
            vendor, [unit], date(2025, 1, 1), price=Decimal("150"),
            is_trial=True, payment_start=date(2025, 2, 1),
        )

        january = revenue_service.calculate_monthly_revenue(2025, 1)
        february = revenue_service.calculate_monthly_revenue(2025, 2)

        assert (january.total_revenue, january.paid_agreements, january.trial_agreements) == (0, 0, 1)
        assert january.unit_breakdown[0].trial_count == 1
        assert (february.total_revenue, february.paid_agreements, february.trial_agreements) == (
            Decimal("150.00"), 1, 0,
        )

    def test_include_trial_revenue_still_respects_payment_start(
        self, revenue_service, unit, vendor, create_agreement,
    ):
        create_agreement(
            vendor, [unit], date(2025, 1, 1), price=Decimal("150"),
            is_trial=True, payment_start=date(2025, 2, 1),
        )
        record = revenue_service.calculate_monthly_revenue(2025, 1, include_trial_revenue=True)
        assert record.total_revenue == 0
        assert record.include_trial_revenue

    @pytest.mark.parametrize(
        "status", [AgreementStatus.CANCELLED, AgreementStatus.PENDING, AgreementStatus.EXPIRED],
    )
    def test_non_revenue_statuses_ignored(self, revenue_service, unit, vendor, create_agreement, status):
        create_agreement(vendor, [unit], date(2025, 1, 1), status=status)
        record = revenue_service.calculate_monthly_revenue(2025, 1)
        assert record.total_revenue == 0
        assert record.unit_breakdown == ()

    def test_upsert_is_idempotent(self, revenue_service, session, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 10))

        first = revenue_service.calculate_monthly_revenue(2025, 1)
        second = revenue_service.calculate_monthly_revenue(2025, 1)

        assert _stored_months(session) == 1
        assert first.total_revenue == second.total_revenue
        assert first.unit_breakdown == second.unit_breakdown

    def test_upsert_replaces_stored_figures(
        self, revenue_service, session, unit, create_unit, vendor, create_agreement,
    ):
        create_agreement(vendor, [unit], date(2025, 1, 1))
        revenue_service.calculate_monthly_revenue(2025, 1)

        create_agreement(vendor, [create_unit(label="B-01")], date(2025, 1, 1), price=Decimal("50"))
        revenue_service.calculate_monthly_revenue(2025, 1)

        stored = revenue_service.get_monthly_revenue(2025, 1)
        assert _stored_months(session) == 1
        assert stored.total_revenue == Decimal("150.00")
        assert stored.paid_agreements == 2
        assert stored.occupied_units == 2

    def test_stored_record_round_trips(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 10))
        record = revenue_service.calculate_monthly_revenue(2025, 1)

        stored = revenue_service.get_monthly_revenue(2025, 1)

        assert stored.month == record.month
        assert stored.total_revenue == record.total_revenue
        assert stored.unit_breakdown == record.unit_breakdown

    def test_missing_month_is_none(self, revenue_service):
        assert revenue_service.get_monthly_revenue(2025, 3) is None

    def test_invalid_month(self, revenue_service):
        with pytest.raises(ValueError):
            revenue_service.calculate_monthly_revenue(2025, 13)

    def test_logs_calculation(self, revenue_service, unit, vendor, create_agreement, captured_logs):
        create_agreement(vendor, [unit], date(2025, 1, 10))
        revenue_service.calculate_monthly_revenue(2025, 1)

        (entry,) = [r for r in captured_logs() if r["message"] == "monthly_revenue_calculated"]
        assert entry["month"] == "2025-01"
        assert entry["total_revenue"] == "70.97"
        assert entry["paid_agreements"] == 1


class TestRanges:
    def test_calculate_range_stores_each_month(self, revenue_service, session, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 1), duration_months=3)

        records = revenue_service.calculate_revenue_range(2024, 12, 2025, 3)

        assert [r.month_key for r in records] == ["2024-12", "2025-01", "2025-02", "2025-03"]
        assert [r.total_revenue for r in records] == [0, 100, 100, 100]
        assert _stored_months(session) == 4

    def test_get_range_returns_only_stored_months_in_order(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 1))
        revenue_service.calculate_monthly_revenue(2025, 3)
        revenue_service.calculate_monthly_revenue(2025, 1)

        records = revenue_service.get_revenue_range(2025, 1, 2025, 2)

        assert [r.month_key for r in records] == ["2025-01"]

    def test_refresh_without_agreements(self, revenue_service):
        assert revenue_service.refresh_all_revenue_data() == []

    def test_refresh_from_earliest_creation_to_now(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(
            vendor, [unit], date(2025, 4, 1),
            created_at=datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc),
        )

        records = revenue_service.refresh_all_revenue_data()

        assert [r.month_key for r in records] == ["2025-03", "2025-04", "2025-05", "2025-06"]
        assert records[1].total_revenue == Decimal("100.00")


class TestProjections:
    def test_future_month_is_flagged_and_not_stored(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 8, 1))

        projection = revenue_service.calculate_future_revenue(2025, 8)

        assert projection.is_projection
        assert projection.total_revenue == Decimal("100.00")
        assert revenue_service.get_monthly_revenue(2025, 8) is None

    def test_trial_converts_on_schedule(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(
            vendor, [unit], date(2025, 7, 1), price=Decimal("90"),
            is_trial=True, payment_start=date(2025, 8, 1),
        )
        july, august = revenue_service.get_future_revenue_range(2025, 7, 2025, 8)
        assert (july.total_revenue, july.trial_agreements) == (0, 1)
        assert (august.total_revenue, august.paid_agreements) == (Decimal("90.00"), 1)

    def test_combined_range_splits_at_current_month(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 5, 1), duration_months=4)

        records = revenue_service.get_combined_revenue_range(2025, 5, 2025, 8)

        assert [r.month_key for r in records] == ["2025-05", "2025-06", "2025-07", "2025-08"]
        assert [r.is_projection for r in records] == [False, False, True, True]
        assert revenue_service.get_monthly_revenue(2025, 6) is not None
        assert revenue_service.get_monthly_revenue(2025, 7) is None

    def test_combined_range_prefers_stored_record(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 5, 1), duration_months=2)
        revenue_service.calculate_monthly_revenue(2025, 5)
        # a second agreement lands after May was stored
        create_agreement(vendor, [unit], date(2025, 5, 1), price=Decimal("40"))

        (may,) = revenue_service.get_combined_revenue_range(2025, 5, 2025, 5)
        assert may.total_revenue == Decimal("100.00")

        (recalculated,) = revenue_service.get_combined_revenue_range(
            2025, 5, 2025, 5, include_trial_revenue=True,
        )
        assert recalculated.total_revenue == Decimal("140.00")


class TestAnalytics:
    def test_statistics(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 1), duration_months=2)
        create_agreement(vendor, [unit], date(2025, 2, 1), price=Decimal("50"))
        revenue_service.calculate_revenue_range(2025, 1, 2025, 2)

        stats = revenue_service.get_revenue_statistics()

        assert stats.months_tracked == 2
        assert stats.total_revenue == Decimal("250.00")
        assert stats.total_paid_agreements == 3
        assert stats.average_monthly_revenue == Decimal("125.00")

    def test_statistics_cached_until_recalculation(
        self, session, deterministic_clock, unit, vendor, create_agreement,
    ):
        cache = InMemoryQueryCache(clock=deterministic_clock)
        service = RevenueService(session, clock=deterministic_clock, cache=cache)
        create_agreement(vendor, [unit], date(2025, 1, 1), duration_months=2)
        service.calculate_monthly_revenue(2025, 1)

        assert service.get_revenue_statistics().months_tracked == 1
        assert cache.get(REVENUE_NAMESPACE, "statistics") is not None

        service.calculate_monthly_revenue(2025, 2)
        assert cache.get(REVENUE_NAMESPACE, "statistics") is None
        assert service.get_revenue_statistics().months_tracked == 2

    def test_empty_statistics(self, revenue_service):
        stats = revenue_service.get_revenue_statistics()
        assert (stats.months_tracked, stats.total_revenue, stats.average_monthly_revenue) == (0, 0, 0)

    def test_trends(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 4, 1), duration_months=3)
        create_agreement(vendor, [unit], date(2025, 5, 1), duration_months=2, price=Decimal("50"))
        revenue_service.calculate_revenue_range(2025, 4, 2025, 6)

        trends = revenue_service.get_revenue_trends()

        assert [p.revenue for p in trends.points] == [100, 150, 150]
        assert [p.growth_rate for p in trends.points] == [0, Decimal("50.00"), 0]
        assert trends.average_growth_rate == Decimal("25.00")
        assert trends.best_month.month == date(2025, 5, 1)
        assert trends.worst_month.month == date(2025, 4, 1)

    def test_trend_window_ends_with_current_month(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 4, 1), duration_months=3)
        revenue_service.calculate_revenue_range(2025, 4, 2025, 6)

        trends = revenue_service.get_revenue_trends(months=2)

        assert [p.month for p in trends.points] == [date(2025, 5, 1), date(2025, 6, 1)]

    def test_unit_analysis(self, revenue_service, unit, create_unit, vendor, create_agreement):
        vacant = create_unit(label="B-01")
        create_unit(label="C-01", is_available=False)
        create_agreement(vendor, [unit], date(2025, 6, 1))
        revenue_service.calculate_monthly_revenue(2025, 6)

        analysis = revenue_service.get_unit_analysis(2025, 6)

        assert analysis.total_units == 2
        assert analysis.occupied_units == 1
        assert analysis.occupancy_rate == Decimal("50.00")
        assert [u.label for u in analysis.top_units] == ["A-01"]
        assert [(v.unit_id, v.days_vacant) for v in analysis.vacant_units] == [(str(vacant.id), 30)]

    def test_unit_analysis_without_stored_month(self, revenue_service, unit):
        analysis = revenue_service.get_unit_analysis(2025, 2)
        assert analysis.occupied_units == 0
        assert analysis.occupancy_rate == 0
        assert [v.days_vacant for v in analysis.vacant_units] == [28]

    def test_top_units_limited_and_ranked(self, session, deterministic_clock, create_unit, vendor, create_agreement):
        service = RevenueService(session, clock=deterministic_clock, config=RevenueConfig(top_units=2))
        for i, price in enumerate(["10", "30", "20"]):
            create_agreement(vendor, [create_unit(label=f"U-{i}")], date(2025, 6, 1), price=Decimal(price))
        service.calculate_monthly_revenue(2025, 6)

        analysis = service.get_unit_analysis(2025, 6)

        assert [u.label for u in analysis.top_units] == ["U-1", "U-2"]

    def test_year_over_year(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2024, 11, 1))
        create_agreement(vendor, [unit], date(2025, 1, 1), price=Decimal("150"))
        revenue_service.calculate_monthly_revenue(2024, 11)
        revenue_service.calculate_monthly_revenue(2025, 1)

        yoy = revenue_service.get_year_over_year(2025)

        assert yoy.current.total_revenue == Decimal("150.00")
        assert yoy.previous.total_revenue == Decimal("100.00")
        assert yoy.revenue_growth == Decimal("50.00")
        assert yoy.agreement_growth == 0

    def test_year_over_year_without_previous_year(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 1))
        revenue_service.calculate_monthly_revenue(2025, 1)
        assert revenue_service.get_year_over_year(2025).revenue_growth == 0


class TestExports:
    def test_revenue_csv(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 10))
        revenue_service.calculate_revenue_range(2025, 1, 2025, 2)

        lines = revenue_service.export_revenue_csv(2025, 1, 2025, 2).splitlines()

        assert lines[0] == "Month,Total Revenue,Paid Agreements,Trial Agreements,Occupied Units"
        assert lines[1] == "January 2025,70.97,1,0,1"
        assert lines[2] == "February 2025,32.14,1,0,1"
        assert lines[3] == ""
        assert lines[4] == "Summary"
        assert "Total Revenue,103.11" in lines

    def test_unit_csv(self, revenue_service, unit, vendor, create_agreement):
        create_agreement(vendor, [unit], date(2025, 1, 10))
        revenue_service.calculate_monthly_revenue(2025, 1)

        lines = revenue_service.export_unit_revenue_csv(2025, 1).splitlines()

        assert lines[0] == "Unit,Revenue,Agreements,Trial Agreements"
        assert lines[1] == "A-01,70.97,1,0"
        assert "Occupied Units,1" in lines

    def test_unit_csv_for_missing_month(self, revenue_service):
        assert revenue_service.export_unit_revenue_csv(2025, 1) == NO_DATA_MESSAGE


class TestPipelineAndOccupancy:
    def test_pipeline_window(self, revenue_service, unit, vendor, create_agreement):
        upcoming = create_agreement(vendor, [unit], date(2025, 7, 1), status=AgreementStatus.SCHEDULED)
        create_agreement(vendor, [unit], date(2025, 5, 1))
        create_agreement(vendor, [unit], date(2026, 7, 1), status=AgreementStatus.SCHEDULED)
        create_agreement(vendor, [unit], date(2025, 8, 1), status=AgreementStatus.CANCELLED)

        pipeline = revenue_service.get_contract_pipeline()

        assert [p.agreement_id for p in pipeline] == [str(upcoming.id)]
        entry = pipeline[0]
        assert entry.start_date == date(2025, 7, 1)
        assert entry.end_date == date(2025, 8, 1)
        assert entry.unit_ids == (str(unit.id),)

    def test_projected_occupancy(self, revenue_service, unit, create_unit, vendor, create_agreement):
        create_unit(label="B-01")
        create_agreement(vendor, [unit], date(2025, 6, 10))

        june, july, august = revenue_service.get_projected_occupancy(months=3)

        assert [p.month for p in (june, july, august)] == [
            date(2025, 6, 1), date(2025, 7, 1), date(2025, 8, 1),
        ]
        assert (june.occupied_units, june.total_units, june.occupancy_rate) == (1, 2, Decimal("50.00"))
        assert july.occupied_units == 1
        assert august.occupied_units == 0
