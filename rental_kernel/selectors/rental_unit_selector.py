"""
Module: rental_kernel.selectors.rental_unit_selector
Responsibility: Read-only queries over rental units.  ``get_many`` is the
    single batched lookup the revenue engine uses to resolve every unit a
    month's agreements reference.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import func, select

from rental_kernel.domain.entities import RentalUnit
from rental_kernel.models.rental_unit import RentalUnitModel
from rental_kernel.selectors.base import BaseSelector, store_access

ALL_TYPES = "all"


class RentalUnitSelector(BaseSelector[RentalUnitModel]):
    """Read-only access to rental units."""

    def get(self, unit_id: UUID) -> RentalUnit | None:
        with store_access("rental_unit.get"):
            model = self.session.get(RentalUnitModel, unit_id)
        return model.to_dto() if model is not None else None

    def get_many(self, unit_ids: Iterable[UUID]) -> dict[UUID, RentalUnit]:
        ids = list(set(unit_ids))
        if not ids:
            return {}
        with store_access("rental_unit.get_many"):
            models = self.session.execute(
                select(RentalUnitModel).where(RentalUnitModel.id.in_(ids))
            ).scalars().all()
        return {m.id: m.to_dto() for m in models}

    def find_by_types(
        self,
        unit_types: Sequence[str],
        limit: int,
        only_available: bool = True,
    ) -> list[RentalUnit]:
        """Units of the given types; ``"all"`` in ``unit_types`` disables the filter."""
        query = select(RentalUnitModel)
        if unit_types and ALL_TYPES not in unit_types:
            query = query.where(RentalUnitModel.unit_type.in_(list(unit_types)))
        if only_available:
            query = query.where(RentalUnitModel.is_available.is_(True))
        query = query.order_by(RentalUnitModel.label, RentalUnitModel.id).limit(limit)
        with store_access("rental_unit.find_by_types"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def list_available(self, limit: int | None = None) -> list[RentalUnit]:
        query = (
            select(RentalUnitModel)
            .where(RentalUnitModel.is_available.is_(True))
            .order_by(RentalUnitModel.label, RentalUnitModel.id)
        )
        if limit is not None:
            query = query.limit(limit)
        with store_access("rental_unit.list_available"):
            models = self.session.execute(query).scalars().all()
        return [m.to_dto() for m in models]

    def count(self, only_available: bool = True) -> int:
        query = select(func.count(RentalUnitModel.id))
        if only_available:
            query = query.where(RentalUnitModel.is_available.is_(True))
        with store_access("rental_unit.count"):
            return self.session.execute(query).scalar_one()
