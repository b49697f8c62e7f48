"""
Revenue Pure Calculation Functions.

Domain math for monthly revenue:
- Paid / still-in-trial partitioning of a month's agreements
- Day-fraction proration of an agreement or a service line
- Per-unit aggregation (keyed by agreement and unit, then merged)
- Monthly record assembly shared by historical and projected months
- Growth rates, trend summaries and CSV report formatting

A reporting period is the inclusive day range ``[period_start, period_end]``.
Agreement impact intervals are half-open, so an agreement's last active day
is ``impact_to - 1 day``.  Functions here return unrounded Decimals except
``build_monthly_record``, which rounds the figures it stores (unit figures
by largest remainder, so they never exceed the stored total).
"""

import csv
import io
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from uuid import UUID

from rental_kernel.domain.entities import Agreement, RentalUnit, ServiceLine
from rental_kernel.domain.intervals import days_between_inclusive, month_bounds
from rental_modules.revenue.models import (
    MonthlyRevenueRecord,
    RevenueTrends,
    TrendPoint,
    UnitRevenue,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
_ONE_DAY = timedelta(days=1)


def prorate_amount(
    monthly_amount: Decimal,
    active_from: date,
    active_to: date,
    period_start: date,
    period_end: date,
) -> Decimal:
    """
    Share of ``monthly_amount`` earned in the period.

    The amount is active on ``[active_from, active_to)``.  Revenue is
    ``amount * days_active / days_in_period``; no calendar weighting.
    """
    revenue_start = max(period_start, active_from)
    revenue_end = min(period_end, active_to - _ONE_DAY)
    if revenue_end < revenue_start:
        return ZERO
    days_active = days_between_inclusive(revenue_start, revenue_end)
    days_in_period = days_between_inclusive(period_start, period_end)
    return monthly_amount * Decimal(days_active) / Decimal(days_in_period)


def prorate_agreement(agreement: Agreement, period_start: date, period_end: date) -> Decimal:
    """Revenue an agreement earns in the period at its total monthly price."""
    if agreement.scheduled_start_date > period_end:
        return ZERO
    if agreement.impact_to <= period_start:
        return ZERO
    if agreement.is_trial and agreement.payment_start_date > period_end:
        return ZERO
    return prorate_amount(
        agreement.total_monthly_price,
        agreement.billing_start,
        agreement.impact_to,
        period_start,
        period_end,
    )


def prorate_line(
    agreement: Agreement,
    line: ServiceLine,
    period_start: date,
    period_end: date,
) -> Decimal:
    """
    Revenue one service line earns in the period.

    The line is billed on its own bounds clipped to the agreement's billing
    window, at its own price net of the agreement discount.
    """
    if agreement.is_trial and agreement.payment_start_date > period_end:
        return ZERO
    active_from = max(line.start_date, agreement.billing_start)
    active_to = min(line.end_date or agreement.impact_to, agreement.impact_to)
    if active_to <= active_from:
        return ZERO
    net_price = line.price * (Decimal("1") - agreement.discount)
    return prorate_amount(net_price, active_from, active_to, period_start, period_end)


def partition_agreements(
    agreements: Sequence[Agreement],
    period_end: date,
) -> tuple[list[Agreement], list[Agreement]]:
    """Split into (paid, trial): trial means payment has not started by ``period_end``."""
    paid: list[Agreement] = []
    trial: list[Agreement] = []
    for a in agreements:
        if a.is_trial and a.payment_start_date > period_end:
            trial.append(a)
        else:
            paid.append(a)
    return paid, trial


def referenced_unit_ids(agreements: Sequence[Agreement]) -> set[UUID]:
    return {line.unit_id for a in agreements for line in a.lines}


def aggregate_by_unit(
    paid: Sequence[Agreement],
    trial: Sequence[Agreement],
    units: Mapping[UUID, RentalUnit],
    period_start: date,
    period_end: date,
) -> list[UnitRevenue]:
    """
    Per-unit revenue and agreement counts for one period.

    Lines are first summed per (agreement, unit) pair, so an agreement with
    several lines on one unit counts once for that unit.  Trial agreements
    contribute only to ``trial_count``.  An agreement's line revenue is
    scaled down when it would exceed the agreement's own prorated revenue,
    keeping the per-unit total at or below the agreement total.  Lines on
    units missing from ``units`` are skipped.  Figures are unrounded.
    """
    paid_pairs: dict[tuple[UUID, UUID], Decimal] = {}
    for agreement in paid:
        agreement_pairs: dict[UUID, Decimal] = {}
        for line in agreement.lines:
            if line.unit_id not in units:
                continue
            agreement_pairs[line.unit_id] = agreement_pairs.get(line.unit_id, ZERO) + prorate_line(
                agreement, line, period_start, period_end,
            )
        line_total = sum(agreement_pairs.values(), ZERO)
        cap = prorate_agreement(agreement, period_start, period_end)
        if line_total > cap:
            factor = cap / line_total
            agreement_pairs = {uid: rev * factor for uid, rev in agreement_pairs.items()}
        for unit_id, revenue in agreement_pairs.items():
            paid_pairs[(agreement.id, unit_id)] = revenue

    trial_pairs = {
        (agreement.id, line.unit_id)
        for agreement in trial
        for line in agreement.lines
        if line.unit_id in units
    }

    merged: dict[UUID, dict] = {}

    def _slot(unit_id: UUID) -> dict:
        if unit_id not in merged:
            merged[unit_id] = {"revenue": ZERO, "agreements": 0, "trials": 0}
        return merged[unit_id]

    for (_, unit_id), revenue in paid_pairs.items():
        slot = _slot(unit_id)
        slot["revenue"] += revenue
        slot["agreements"] += 1
    for _, unit_id in trial_pairs:
        _slot(unit_id)["trials"] += 1

    return [
        UnitRevenue(
            unit_id=str(unit_id),
            label=units[unit_id].display_label,
            revenue=slot["revenue"],
            agreement_count=slot["agreements"],
            trial_count=slot["trials"],
        )
        for unit_id, slot in merged.items()
    ]


def round_money(amount: Decimal, quantum: Decimal = CENTS) -> Decimal:
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def allocate_rounded(
    amounts: Sequence[Decimal], ceiling: Decimal, quantum: Decimal = CENTS,
) -> list[Decimal]:
    """
    Round ``amounts`` to ``quantum`` so that their sum is the rounded sum of
    the inputs, but never more than ``ceiling``.

    Each amount is first rounded down; the leftover quanta go to the amounts
    with the largest remainders, earlier positions winning ties.
    """
    floors = [a.quantize(quantum, rounding=ROUND_DOWN) for a in amounts]
    target = min(round_money(sum(amounts, ZERO), quantum), ceiling)
    leftover = int((target - sum(floors, ZERO)) / quantum)
    by_remainder = sorted(
        range(len(amounts)), key=lambda i: (-(amounts[i] - floors[i]), i),
    )
    for i in by_remainder[: max(leftover, 0)]:
        floors[i] += quantum
    return floors


def build_monthly_record(
    year: int,
    month: int,
    agreements: Sequence[Agreement],
    units: Mapping[UUID, RentalUnit],
    include_trial_revenue: bool = False,
    is_projection: bool = False,
    calculated_at: datetime | None = None,
    quantum: Decimal = CENTS,
) -> MonthlyRevenueRecord:
    """Assemble a month's record from its selected agreements and resolved units."""
    period_start, period_end = month_bounds(year, month)
    paid, trial = partition_agreements(agreements, period_end)
    revenue_set = paid + trial if include_trial_revenue else paid

    total = round_money(
        sum((prorate_agreement(a, period_start, period_end) for a in revenue_set), ZERO), quantum,
    )
    breakdown = aggregate_by_unit(paid, trial, units, period_start, period_end)
    # stored unit figures must not add up to more than the stored total
    unit_revenues = allocate_rounded([u.revenue for u in breakdown], total, quantum)

    return MonthlyRevenueRecord(
        month=period_start,
        total_revenue=total,
        paid_agreements=len(paid),
        trial_agreements=len(trial),
        unit_breakdown=tuple(
            UnitRevenue(
                unit_id=u.unit_id,
                label=u.label,
                revenue=revenue,
                agreement_count=u.agreement_count,
                trial_count=u.trial_count,
            )
            for u, revenue in zip(breakdown, unit_revenues)
        ),
        is_projection=is_projection,
        include_trial_revenue=include_trial_revenue,
        calculated_at=calculated_at,
    )


# =============================================================================
# Analytics
# =============================================================================


def growth_rate(previous: Decimal, current: Decimal) -> Decimal:
    """Percent change from ``previous`` to ``current``; 0 when previous is 0."""
    if previous == 0:
        return ZERO
    return round_money((current - previous) / previous * HUNDRED)


def percentage(part: int | Decimal, whole: int | Decimal) -> Decimal:
    if not whole:
        return ZERO
    return round_money(Decimal(part) / Decimal(whole) * HUNDRED)


def build_trends(records: Sequence[MonthlyRevenueRecord]) -> RevenueTrends:
    points: list[TrendPoint] = []
    previous: MonthlyRevenueRecord | None = None
    for record in records:
        points.append(TrendPoint(
            month=record.month,
            revenue=record.total_revenue,
            growth_rate=growth_rate(previous.total_revenue, record.total_revenue) if previous else ZERO,
            paid_agreements=record.paid_agreements,
            trial_agreements=record.trial_agreements,
        ))
        previous = record

    rates = [p.growth_rate for p in points[1:]]
    average = round_money(sum(rates, ZERO) / len(rates)) if rates else ZERO
    return RevenueTrends(
        points=tuple(points),
        average_growth_rate=average,
        best_month=max(points, key=lambda p: p.revenue) if points else None,
        worst_month=min(points, key=lambda p: p.revenue) if points else None,
    )


# =============================================================================
# CSV reports
# =============================================================================


def _writer(buffer: io.StringIO):
    return csv.writer(buffer, lineterminator="\n")


def format_revenue_csv(records: Sequence[MonthlyRevenueRecord]) -> str:
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Month", "Total Revenue", "Paid Agreements", "Trial Agreements", "Occupied Units"])
    for r in records:
        writer.writerow([
            r.month.strftime("%B %Y"),
            f"{r.total_revenue:.2f}",
            r.paid_agreements,
            r.trial_agreements,
            r.occupied_units,
        ])

    total = sum((r.total_revenue for r in records), ZERO)
    average = total / len(records) if records else ZERO
    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Revenue", f"{total:.2f}"])
    writer.writerow(["Average Monthly Revenue", f"{average:.2f}"])
    writer.writerow(["Months", len(records)])
    return buffer.getvalue()


NO_DATA_MESSAGE = "No revenue data for the requested month.\n"


def format_unit_revenue_csv(record: MonthlyRevenueRecord | None) -> str:
    if record is None:
        return NO_DATA_MESSAGE

    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Unit", "Revenue", "Agreements", "Trial Agreements"])
    ranked = sorted(record.unit_breakdown, key=lambda u: u.revenue, reverse=True)
    for u in ranked:
        writer.writerow([u.label, f"{u.revenue:.2f}", u.agreement_count, u.trial_count])

    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Revenue", f"{record.total_revenue:.2f}"])
    writer.writerow(["Paid Agreements", record.paid_agreements])
    writer.writerow(["Trial Agreements", record.trial_agreements])
    writer.writerow(["Occupied Units", len(ranked)])
    return buffer.getvalue()
