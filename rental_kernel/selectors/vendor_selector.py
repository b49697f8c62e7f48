"""
Module: rental_kernel.selectors.vendor_selector
Responsibility: Read-only queries over vendors and their trial window.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select

from rental_kernel.domain.entities import TrialStatus, Vendor
from rental_kernel.models.vendor import VendorModel
from rental_kernel.selectors.base import BaseSelector, store_access


class VendorSelector(BaseSelector[VendorModel]):
    """Read-only access to vendors."""

    def get(self, vendor_id: UUID) -> Vendor | None:
        with store_access("vendor.get"):
            model = self.session.get(VendorModel, vendor_id)
        return model.to_dto() if model is not None else None

    def get_many(self, vendor_ids: Iterable[UUID]) -> dict[UUID, Vendor]:
        ids = list(set(vendor_ids))
        if not ids:
            return {}
        with store_access("vendor.get_many"):
            models = self.session.execute(
                select(VendorModel).where(VendorModel.id.in_(ids))
            ).scalars().all()
        return {m.id: m.to_dto() for m in models}

    def find_expired_trials(self, today: date) -> list[Vendor]:
        """Trial-active vendors whose trial window closed on or before ``today``."""
        query = (
            select(VendorModel)
            .where(VendorModel.trial_status == TrialStatus.TRIAL_ACTIVE.value)
            .where(VendorModel.trial_end_date.is_not(None))
            .where(VendorModel.trial_end_date <= today)
            .order_by(VendorModel.trial_end_date)
        )
        with store_access("vendor.find_expired_trials"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]
