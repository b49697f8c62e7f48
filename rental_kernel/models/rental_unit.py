"""
Module: rental_kernel.models.rental_unit
Responsibility: ORM persistence for rental units (shelves, fixtures, display
    slots).  Agreements reference units through their service lines; the
    unit row itself is never owned by an agreement.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - label is unique when present (uq_rental_unit_label).
    - is_available is the manual availability flag toggled by trial
      cancellation and administrators; conflict detection does not read it.

Failure modes:
    - IntegrityError on duplicate label.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from rental_kernel.domain.entities import RentalUnit


class RentalUnitModel(TimestampedBase):
    """A rentable shelf or storage slot."""

    __tablename__ = "rental_units"

    __table_args__ = (
        UniqueConstraint("label", name="uq_rental_unit_label"),
        Index("idx_rental_unit_type_available", "unit_type", "is_available"),
    )

    label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    unit_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    base_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    def to_dto(self) -> RentalUnit:
        from rental_kernel.domain.entities import RentalUnit

        return RentalUnit(
            id=self.id,
            label=self.label,
            unit_type=self.unit_type,
            is_available=self.is_available,
            size=self.size,
            location=self.location,
            base_price=self.base_price,
        )

    @classmethod
    def from_dto(cls, dto: RentalUnit) -> RentalUnitModel:
        return cls(
            id=dto.id,
            label=dto.label,
            unit_type=dto.unit_type,
            is_available=dto.is_available,
            size=dto.size,
            location=dto.location,
            base_price=dto.base_price,
        )

    def __repr__(self) -> str:
        return f"<RentalUnitModel {self.label or self.id} ({self.unit_type})>"
