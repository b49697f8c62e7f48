"""
Module: rental_kernel.selectors.agreement_selector
Responsibility: Read-only queries over agreements for the availability,
    revenue and lifecycle engines.  Every query returns frozen Agreement
    entities with their service lines already attached.
Architecture position: Kernel > Selectors.

Query patterns:
    - find_overlapping: agreements in a status set whose impact interval
      overlaps a half-open range and that reference a given unit.  Overlap is
      ``impact_from < range.end AND impact_to > range.start``, so agreements
      that merely touch the range are excluded.
    - find_for_period: revenue selection for an inclusive period
      ``[period_start, period_end]``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select

from rental_kernel.domain.entities import Agreement, AgreementStatus
from rental_kernel.domain.intervals import DateRange
from rental_kernel.models.agreement import AgreementModel, ServiceLineModel
from rental_kernel.selectors.base import BaseSelector, store_access


def _status_values(statuses: Iterable[AgreementStatus | str]) -> list[str]:
    return [s.value if isinstance(s, AgreementStatus) else s for s in statuses]


class AgreementSelector(BaseSelector[AgreementModel]):
    """Read-only access to agreements."""

    def get(self, agreement_id: UUID) -> Agreement | None:
        with store_access("agreement.get"):
            model = self.session.get(AgreementModel, agreement_id)
        return model.to_dto() if model is not None else None

    def find_overlapping(
        self,
        unit_id: UUID,
        requested: DateRange,
        statuses: Iterable[AgreementStatus | str],
    ) -> list[Agreement]:
        """Agreements on ``unit_id`` whose impact interval overlaps ``requested``."""
        unit_agreements = (
            select(ServiceLineModel.agreement_id)
            .where(ServiceLineModel.unit_id == unit_id)
        )
        query = (
            select(AgreementModel)
            .where(AgreementModel.id.in_(unit_agreements))
            .where(AgreementModel.status.in_(_status_values(statuses)))
            .where(AgreementModel.impact_from < requested.end)
            .where(AgreementModel.impact_to > requested.start)
            .order_by(AgreementModel.impact_from)
        )
        with store_access("agreement.find_overlapping"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def find_for_period(
        self,
        period_start: date,
        period_end: date,
        statuses: Iterable[AgreementStatus | str],
    ) -> list[Agreement]:
        """Agreements that have started by ``period_end`` and not ended before ``period_start``."""
        query = (
            select(AgreementModel)
            .where(AgreementModel.status.in_(_status_values(statuses)))
            .where(AgreementModel.scheduled_start_date <= period_end)
            .where(AgreementModel.impact_to >= period_start)
            .order_by(AgreementModel.scheduled_start_date, AgreementModel.id)
        )
        with store_access("agreement.find_for_period"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def find_by_vendor(self, vendor_id: UUID) -> list[Agreement]:
        query = (
            select(AgreementModel)
            .where(AgreementModel.vendor_id == vendor_id)
            .order_by(AgreementModel.scheduled_start_date.desc())
        )
        with store_access("agreement.find_by_vendor"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def find_open_trial(
        self,
        vendor_id: UUID,
        statuses: Iterable[AgreementStatus | str],
    ) -> Agreement | None:
        """The vendor's earliest trial agreement in ``statuses`` not cancelled during the trial."""
        query = (
            select(AgreementModel)
            .where(AgreementModel.vendor_id == vendor_id)
            .where(AgreementModel.is_trial.is_(True))
            .where(AgreementModel.status.in_(_status_values(statuses)))
            .where(AgreementModel.cancelled_during_trial.is_(False))
            .order_by(AgreementModel.scheduled_start_date)
            .limit(1)
        )
        with store_access("agreement.find_open_trial"):
            model = self.session.execute(query).scalars().first()
        return model.to_dto() if model is not None else None

    def find_trials(self) -> list[Agreement]:
        query = (
            select(AgreementModel)
            .where(AgreementModel.is_trial.is_(True))
            .where(AgreementModel.status != AgreementStatus.CANCELLED.value)
            .order_by(AgreementModel.payment_start_date)
        )
        with store_access("agreement.find_trials"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def find_starting_between(
        self,
        start: date,
        end: date,
        statuses: Iterable[AgreementStatus | str],
    ) -> list[Agreement]:
        """Agreements whose scheduled start lies in ``[start, end]``, ordered by start."""
        query = (
            select(AgreementModel)
            .where(AgreementModel.status.in_(_status_values(statuses)))
            .where(AgreementModel.scheduled_start_date >= start)
            .where(AgreementModel.scheduled_start_date <= end)
            .order_by(AgreementModel.scheduled_start_date, AgreementModel.id)
        )
        with store_access("agreement.find_starting_between"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def earliest_created_at(self) -> datetime | None:
        with store_access("agreement.earliest_created_at"):
            return self.session.execute(
                select(func.min(AgreementModel.created_at))
            ).scalar_one_or_none()
