"""
Module: rental_modules.revenue.orm
Responsibility:
    SQLAlchemy ORM persistence for monthly revenue records and their per-unit
    breakdown.  Maps the frozen DTOs in ``rental_modules.revenue.models``.

Architecture position:
    **Modules layer** -- ORM models inheriting from ``TimestampedBase``.

Invariants enforced:
    - One record per month (uq_monthly_revenue_month); recalculation
      overwrites it in place.
    - Breakdown rows are owned by their record (cascade delete-orphan) and
      replaced wholesale on every recalculation.
    - unit_id is a plain UUID column, not a foreign key: a unit deleted
      after the month was calculated must not invalidate history.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TimestampedBase, UUIDString
from rental_modules.revenue.models import MonthlyRevenueRecord, UnitRevenue


class MonthlyRevenueModel(TimestampedBase):
    """Stored revenue figures for one calendar month."""

    __tablename__ = "monthly_revenue"

    __table_args__ = (
        UniqueConstraint("month", name="uq_monthly_revenue_month"),
    )

    month: Mapped[date] = mapped_column(Date, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    paid_agreements: Mapped[int] = mapped_column(Integer, default=0)
    trial_agreements: Mapped[int] = mapped_column(Integer, default=0)
    include_trial_revenue: Mapped[bool] = mapped_column(Boolean, default=False)
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    units: Mapped[list[UnitRevenueModel]] = relationship(
        "UnitRevenueModel",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="UnitRevenueModel.position",
        lazy="selectin",
    )

    def to_dto(self) -> MonthlyRevenueRecord:
        return MonthlyRevenueRecord(
            month=self.month,
            total_revenue=self.total_revenue,
            paid_agreements=self.paid_agreements,
            trial_agreements=self.trial_agreements,
            unit_breakdown=tuple(u.to_dto() for u in self.units),
            is_projection=False,
            include_trial_revenue=bool(self.include_trial_revenue),
            calculated_at=self.calculated_at,
        )

    def apply(self, dto: MonthlyRevenueRecord) -> None:
        """Overwrite this row (and its breakdown) with ``dto``."""
        self.total_revenue = dto.total_revenue
        self.paid_agreements = dto.paid_agreements
        self.trial_agreements = dto.trial_agreements
        self.include_trial_revenue = dto.include_trial_revenue
        self.calculated_at = dto.calculated_at
        self.units = [
            UnitRevenueModel.from_dto(u, position=i)
            for i, u in enumerate(dto.unit_breakdown)
        ]

    @classmethod
    def from_dto(cls, dto: MonthlyRevenueRecord) -> MonthlyRevenueModel:
        model = cls(month=dto.month)
        model.apply(dto)
        return model

    def __repr__(self) -> str:
        return f"<MonthlyRevenueModel {self.month:%Y-%m} total={self.total_revenue}>"


class UnitRevenueModel(TimestampedBase):
    """One unit's share of a stored month."""

    __tablename__ = "monthly_revenue_units"

    __table_args__ = (
        Index("idx_monthly_revenue_unit_record", "record_id"),
        Index("idx_monthly_revenue_unit_unit", "unit_id"),
    )

    record_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("monthly_revenue.id"),
        nullable=False,
    )
    unit_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    revenue: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    agreement_count: Mapped[int] = mapped_column(Integer, default=0)
    trial_count: Mapped[int] = mapped_column(Integer, default=0)

    record: Mapped[MonthlyRevenueModel] = relationship(
        "MonthlyRevenueModel",
        back_populates="units",
    )

    def to_dto(self) -> UnitRevenue:
        return UnitRevenue(
            unit_id=str(self.unit_id),
            label=self.label,
            revenue=self.revenue,
            agreement_count=self.agreement_count,
            trial_count=self.trial_count,
        )

    @classmethod
    def from_dto(cls, dto: UnitRevenue, position: int = 0) -> UnitRevenueModel:
        return cls(
            unit_id=UUID(dto.unit_id),
            position=position,
            label=dto.label,
            revenue=dto.revenue,
            agreement_count=dto.agreement_count,
            trial_count=dto.trial_count,
        )
