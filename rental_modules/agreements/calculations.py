"""
Agreement Lifecycle Pure Calculation Functions.

The explicit factory for an agreement's derived fields:
- Trial classification from the vendor's trial window
- Payment-start date
- Impact interval (scheduled start + duration, one extra month for trials)
- Add-on resolution and total monthly price
- Draft validation (add-on rules, price bounds, discount, duration)

Nothing here touches the store; the service passes in the loaded vendor
and today's date.
"""

from collections.abc import Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from rental_kernel.domain.entities import (
    COMMISSION_RATES,
    AddOns,
    Agreement,
    AgreementStatus,
    CommissionTier,
    RentalUnit,
    ServiceLine,
    TrialStatus,
    Vendor,
)
from rental_kernel.domain.intervals import DateRange, range_from_duration
from rental_kernel.exceptions import (
    AddOnNotPermittedError,
    InvalidAgreementError,
    PriceOutOfRangeError,
)
from rental_modules.agreements.config import AgreementConfig
from rental_modules.agreements.models import AddOnRequest, AgreementDraft

CENTS = Decimal("0.01")


def is_trial_booking(vendor: Vendor, today: date) -> bool:
    """A booking is a trial booking while the vendor's trial window is open."""
    return (
        vendor.trial_status == TrialStatus.TRIAL_ACTIVE
        and vendor.trial_end_date is not None
        and vendor.trial_end_date > today
    )


def payment_start_date(is_trial: bool, scheduled_start: date, trial_end: date | None) -> date:
    """
    First day the agreement is billed.

    Trial bookings pay from the vendor's trial end, never earlier than the
    scheduled start.
    """
    if is_trial and trial_end is not None:
        return max(trial_end, scheduled_start)
    return scheduled_start


def impact_interval(scheduled_start: date, duration_months: int, is_trial: bool) -> DateRange:
    """Half-open range the agreement occupies its units."""
    return range_from_duration(scheduled_start, duration_months + (1 if is_trial else 0))


def resolve_add_ons(request: AddOnRequest, config: AgreementConfig) -> AddOns:
    return AddOns(
        storage_service=request.storage_service,
        shipping_service=request.shipping_service,
        storage_fee=(
            request.storage_fee if request.storage_fee is not None else config.storage_fee
        ) if request.storage_service else Decimal("0"),
        shipping_fee=(
            request.shipping_fee if request.shipping_fee is not None else config.shipping_fee
        ) if request.shipping_service else Decimal("0"),
    )


def total_monthly_price(
    line_prices: list[Decimal],
    add_ons: AddOns,
    discount: Decimal,
) -> Decimal:
    """``(sum(line prices) + add-on fees) * (1 - discount)``, rounded to cents."""
    gross = sum(line_prices, Decimal("0")) + add_ons.monthly_fees
    return (gross * (Decimal("1") - discount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _check_price(price: Decimal, config: AgreementConfig, field: str) -> None:
    if price < config.min_price or price > config.max_price:
        raise PriceOutOfRangeError(price, config.min_price, config.max_price, field)


def validate_draft(
    draft: AgreementDraft,
    units: Mapping[UUID, RentalUnit],
    config: AgreementConfig,
) -> None:
    """Raise the first validation error in ``draft``; ``units`` holds every line's unit."""
    if draft.duration_months < 1:
        raise InvalidAgreementError(f"duration must be at least 1 month, got {draft.duration_months}")
    if not Decimal("0") <= draft.discount <= Decimal("1"):
        raise InvalidAgreementError(f"discount must be within [0, 1], got {draft.discount}")

    if draft.add_ons.requested:
        if not draft.lines:
            raise AddOnNotPermittedError("add-on services require at least one service line")
        if CommissionTier(draft.commission_tier) != config.add_on_tier:
            raise AddOnNotPermittedError(
                f"add-on services require the {config.add_on_tier.value} tier, "
                f"got {CommissionTier(draft.commission_tier).value}"
            )

    for i, line in enumerate(draft.lines):
        _check_price(line.price, config, f"lines[{i}].price")
        start = line.start_date or draft.scheduled_start_date
        if line.end_date is not None and line.end_date <= start:
            raise InvalidAgreementError(f"lines[{i}] ends on or before its start")
    for unit in units.values():
        _check_price(unit.base_price, config, f"unit {unit.display_label} base_price")

    if draft.total_monthly_price is not None and draft.total_monthly_price < 0:
        raise InvalidAgreementError("total monthly price cannot be negative")


def build_agreement(
    draft: AgreementDraft,
    vendor: Vendor,
    unit_ids: list[UUID],
    today: date,
    config: AgreementConfig,
    created_at: datetime | None = None,
) -> Agreement:
    """
    Construct a fully derived agreement from a validated draft.

    ``unit_ids`` are the parsed unit ids of ``draft.lines``, in order.
    """
    is_trial = is_trial_booking(vendor, today)
    impact = impact_interval(draft.scheduled_start_date, draft.duration_months, is_trial)
    add_ons = resolve_add_ons(draft.add_ons, config)

    lines = tuple(
        ServiceLine(
            unit_id=unit_id,
            start_date=line.start_date or draft.scheduled_start_date,
            end_date=line.end_date,
            price=line.price,
        )
        for unit_id, line in zip(unit_ids, draft.lines)
    )
    price = (
        draft.total_monthly_price
        if draft.total_monthly_price is not None
        else total_monthly_price([line.price for line in lines], add_ons, draft.discount)
    )

    return Agreement(
        id=uuid4(),
        vendor_id=vendor.id,
        lines=lines,
        total_monthly_price=price,
        duration_months=draft.duration_months,
        status=AgreementStatus(draft.status),
        scheduled_start_date=draft.scheduled_start_date,
        impact_from=impact.start,
        impact_to=impact.end,
        payment_start_date=payment_start_date(
            is_trial, draft.scheduled_start_date, vendor.trial_end_date,
        ),
        is_trial=is_trial,
        discount=draft.discount,
        commission_rate=COMMISSION_RATES[CommissionTier(draft.commission_tier)],
        add_ons=add_ons,
        created_at=created_at,
    )
