"""
Module: rental_kernel.models.agreement
Responsibility: ORM persistence for rental agreements and their service lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - impact_from/impact_to and payment_start_date are written once by the
      agreement factory before the row exists.  Only trial cancellation
      changes an agreement's lifecycle fields afterwards.
    - Service lines belong to exactly one agreement (cascade delete-orphan)
      and are loaded eagerly with ``selectin`` so the revenue engine never
      issues per-agreement line queries.

Indexes mirror the engine's query patterns:
    - idx_agreement_status_impact: availability and revenue selection.
    - idx_agreement_vendor_status: vendor history and trial eligibility.
    - idx_agreement_scheduled_start: contract pipeline.
    - idx_agreement_trial_payment: trial partitioning.
    - idx_service_line_unit: conflict lookup by unit.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from rental_kernel.domain.entities import Agreement, ServiceLine


class AgreementModel(TimestampedBase):
    """A vendor's lease of one or more rental units."""

    __tablename__ = "agreements"

    __table_args__ = (
        Index("idx_agreement_status_impact", "status", "impact_from", "impact_to"),
        Index("idx_agreement_vendor_status", "vendor_id", "status"),
        Index("idx_agreement_scheduled_start", "scheduled_start_date"),
        Index("idx_agreement_trial_payment", "is_trial", "payment_start_date"),
    )

    vendor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vendors.id"),
        nullable=False,
    )
    total_monthly_price: Mapped[Decimal] = mapped_column(nullable=False)
    duration_months: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    discount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    commission_rate: Mapped[Decimal] = mapped_column(default=Decimal("4"))
    status: Mapped[str] = mapped_column(String(30), default="scheduled", nullable=False)
    scheduled_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    actual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    impact_from: Mapped[date] = mapped_column(Date, nullable=False)
    impact_to: Mapped[date] = mapped_column(Date, nullable=False)
    is_trial: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    cancelled_during_trial: Mapped[bool] = mapped_column(Boolean, default=False)
    trial_cancellation_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    storage_service: Mapped[bool] = mapped_column(Boolean, default=False)
    shipping_service: Mapped[bool] = mapped_column(Boolean, default=False)
    storage_fee: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    shipping_fee: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    lines: Mapped[list[ServiceLineModel]] = relationship(
        "ServiceLineModel",
        back_populates="agreement",
        cascade="all, delete-orphan",
        order_by="ServiceLineModel.position",
        lazy="selectin",
    )

    def to_dto(self) -> Agreement:
        from rental_kernel.domain.entities import AddOns, Agreement, AgreementStatus

        return Agreement(
            id=self.id,
            vendor_id=self.vendor_id,
            lines=tuple(line.to_dto() for line in self.lines),
            total_monthly_price=self.total_monthly_price,
            duration_months=self.duration_months,
            status=AgreementStatus(self.status),
            scheduled_start_date=self.scheduled_start_date,
            impact_from=self.impact_from,
            impact_to=self.impact_to,
            payment_start_date=self.payment_start_date,
            is_trial=self.is_trial,
            discount=self.discount,
            commission_rate=self.commission_rate,
            actual_start_date=self.actual_start_date,
            cancelled_during_trial=bool(self.cancelled_during_trial),
            trial_cancellation_date=self.trial_cancellation_date,
            add_ons=AddOns(
                storage_service=bool(self.storage_service),
                shipping_service=bool(self.shipping_service),
                storage_fee=self.storage_fee,
                shipping_fee=self.shipping_fee,
            ),
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: Agreement) -> AgreementModel:
        model = cls(
            id=dto.id,
            vendor_id=dto.vendor_id,
            total_monthly_price=dto.total_monthly_price,
            duration_months=dto.duration_months,
            discount=dto.discount,
            commission_rate=dto.commission_rate,
            status=dto.status.value,
            scheduled_start_date=dto.scheduled_start_date,
            actual_start_date=dto.actual_start_date,
            impact_from=dto.impact_from,
            impact_to=dto.impact_to,
            is_trial=dto.is_trial,
            payment_start_date=dto.payment_start_date,
            cancelled_during_trial=dto.cancelled_during_trial,
            trial_cancellation_date=dto.trial_cancellation_date,
            storage_service=dto.add_ons.storage_service,
            shipping_service=dto.add_ons.shipping_service,
            storage_fee=dto.add_ons.storage_fee,
            shipping_fee=dto.add_ons.shipping_fee,
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
        model.lines = [
            ServiceLineModel.from_dto(line, position=i)
            for i, line in enumerate(dto.lines)
        ]
        return model

    def __repr__(self) -> str:
        return (
            f"<AgreementModel {self.id} ({self.status}) "
            f"[{self.impact_from}, {self.impact_to})>"
        )


class ServiceLineModel(TimestampedBase):
    """One rental unit booked within an agreement."""

    __tablename__ = "agreement_service_lines"

    __table_args__ = (
        Index("idx_service_line_unit", "unit_id"),
        Index("idx_service_line_agreement", "agreement_id"),
    )

    agreement_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("agreements.id"),
        nullable=False,
    )
    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rental_units.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    price: Mapped[Decimal] = mapped_column(nullable=False)

    agreement: Mapped[AgreementModel] = relationship(
        "AgreementModel",
        back_populates="lines",
    )

    def to_dto(self) -> ServiceLine:
        from rental_kernel.domain.entities import ServiceLine

        return ServiceLine(
            id=self.id,
            unit_id=self.unit_id,
            start_date=self.start_date,
            end_date=self.end_date,
            price=self.price,
        )

    @classmethod
    def from_dto(cls, dto: ServiceLine, position: int = 0) -> ServiceLineModel:
        kwargs = {}
        if dto.id is not None:
            kwargs["id"] = dto.id
        return cls(
            unit_id=dto.unit_id,
            position=position,
            start_date=dto.start_date,
            end_date=dto.end_date,
            price=dto.price,
            **kwargs,
        )
