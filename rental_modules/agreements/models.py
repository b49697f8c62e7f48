"""
Agreement Lifecycle Domain Models (``rental_modules.agreements.models``).

Input drafts for agreement creation and the small result objects the
lifecycle coordinator returns.  The persisted agreement itself is the kernel
``Agreement`` entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from rental_kernel.domain.entities import AgreementStatus, CommissionTier


@dataclass(frozen=True)
class ServiceLineDraft:
    unit_id: UUID | str
    price: Decimal
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class AddOnRequest:
    """Requested add-on services; fees of None take the configured defaults."""

    storage_service: bool = False
    shipping_service: bool = False
    storage_fee: Decimal | None = None
    shipping_fee: Decimal | None = None

    @property
    def requested(self) -> bool:
        return self.storage_service or self.shipping_service


@dataclass(frozen=True)
class AgreementDraft:
    """Everything a caller supplies to create an agreement."""

    vendor_id: UUID | str
    scheduled_start_date: date
    lines: tuple[ServiceLineDraft, ...] = ()
    duration_months: int = 1
    discount: Decimal = Decimal("0")
    commission_tier: CommissionTier = CommissionTier.BASIC
    status: AgreementStatus = AgreementStatus.SCHEDULED
    total_monthly_price: Decimal | None = None
    add_ons: AddOnRequest = field(default_factory=AddOnRequest)


@dataclass(frozen=True)
class TrialEligibility:
    can_book: bool
    reason: str | None = None


@dataclass(frozen=True)
class TrialStatusUpdate:
    """Outcome of one ``update_trial_statuses`` sweep."""

    checked: int
    converted: int
