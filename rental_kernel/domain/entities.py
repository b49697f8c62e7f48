"""
Entities -- frozen domain views of the marketplace records.

Responsibility:
    Immutable value objects for the records every engine reads: rental
    units, vendors, agreements with their service lines and add-on block.
    ORM models convert to these at the selector boundary, so the engines
    never touch a live ORM row.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants enforced:
    - Money fields are Decimal.
    - Agreement.impact_range is half-open ``[impact_from, impact_to)``.
    - A trial agreement's payment_start_date is never before its
      scheduled_start_date (checked in ``Agreement.__post_init__``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from rental_kernel.domain.intervals import DateRange


class AgreementStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class TrialStatus(str, Enum):
    """Vendor trial lifecycle: preregistered -> trial_active -> active | cancelled."""

    PREREGISTERED = "preregistered"
    TRIAL_ACTIVE = "trial_active"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class CommissionTier(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"


COMMISSION_RATES: dict[CommissionTier, Decimal] = {
    CommissionTier.BASIC: Decimal("4"),
    CommissionTier.PREMIUM: Decimal("7"),
}


@dataclass(frozen=True)
class RentalUnit:
    """A shelf, fixture or display slot that agreements occupy."""

    id: UUID
    label: str | None
    unit_type: str
    is_available: bool = True
    size: str | None = None
    location: str | None = None
    base_price: Decimal = Decimal("0")

    @property
    def display_label(self) -> str:
        return self.label or f"Unit-{str(self.id)[-6:]}"


@dataclass(frozen=True)
class Vendor:
    id: UUID
    name: str
    role: str = "vendor"
    company_name: str | None = None
    trial_status: TrialStatus = TrialStatus.PREREGISTERED
    trial_start_date: date | None = None
    trial_end_date: date | None = None

    @property
    def display_name(self) -> str:
        return self.company_name or self.name


@dataclass(frozen=True)
class AddOns:
    """Optional monthly services billed on top of the line prices."""

    storage_service: bool = False
    shipping_service: bool = False
    storage_fee: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")

    @property
    def requested(self) -> bool:
        return self.storage_service or self.shipping_service

    @property
    def monthly_fees(self) -> Decimal:
        total = Decimal("0")
        if self.storage_service:
            total += self.storage_fee
        if self.shipping_service:
            total += self.shipping_fee
        return total


@dataclass(frozen=True)
class ServiceLine:
    """One rental unit booked within an agreement, with its own bounds and price."""

    unit_id: UUID
    start_date: date
    price: Decimal
    end_date: date | None = None
    id: UUID | None = None


@dataclass(frozen=True)
class Agreement:
    id: UUID
    vendor_id: UUID
    lines: tuple[ServiceLine, ...]
    total_monthly_price: Decimal
    duration_months: int
    status: AgreementStatus
    scheduled_start_date: date
    impact_from: date
    impact_to: date
    payment_start_date: date
    is_trial: bool = False
    discount: Decimal = Decimal("0")
    commission_rate: Decimal = Decimal("4")
    actual_start_date: date | None = None
    cancelled_during_trial: bool = False
    trial_cancellation_date: date | None = None
    add_ons: AddOns = field(default_factory=AddOns)
    created_at: datetime | None = None

    def __post_init__(self):
        if self.is_trial and self.payment_start_date < self.scheduled_start_date:
            raise ValueError(
                f"Agreement {self.id}: payment start {self.payment_start_date} "
                f"precedes scheduled start {self.scheduled_start_date}"
            )

    @property
    def impact_range(self) -> DateRange:
        return DateRange(self.impact_from, self.impact_to)

    @property
    def billing_start(self) -> date:
        """First day revenue may accrue."""
        return self.payment_start_date if self.is_trial else self.scheduled_start_date

    @property
    def unit_ids(self) -> tuple[UUID, ...]:
        seen: dict[UUID, None] = {}
        for line in self.lines:
            seen.setdefault(line.unit_id, None)
        return tuple(seen)
