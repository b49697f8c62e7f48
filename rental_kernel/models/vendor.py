"""
Module: rental_kernel.models.vendor
Responsibility: ORM persistence for vendor accounts and their trial window.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - trial_status is one of TrialStatus values (stored as String(30)).
    - trial_end_date is only meaningful once trial_start_date is set.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from rental_kernel.domain.entities import Vendor


class VendorModel(TimestampedBase):
    """A vendor account that books rental units."""

    __tablename__ = "vendors"

    __table_args__ = (
        Index("idx_vendor_trial", "trial_status", "trial_end_date"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(30), default="vendor", nullable=False)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trial_status: Mapped[str] = mapped_column(
        String(30), default="preregistered", nullable=False,
    )
    trial_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    trial_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> Vendor:
        from rental_kernel.domain.entities import TrialStatus, Vendor

        return Vendor(
            id=self.id,
            name=self.name,
            role=self.role,
            company_name=self.company_name,
            trial_status=TrialStatus(self.trial_status),
            trial_start_date=self.trial_start_date,
            trial_end_date=self.trial_end_date,
        )

    @classmethod
    def from_dto(cls, dto: Vendor) -> VendorModel:
        return cls(
            id=dto.id,
            name=dto.name,
            role=dto.role,
            company_name=dto.company_name,
            trial_status=dto.trial_status.value,
            trial_start_date=dto.trial_start_date,
            trial_end_date=dto.trial_end_date,
        )

    def __repr__(self) -> str:
        return f"<VendorModel {self.name} ({self.trial_status})>"
