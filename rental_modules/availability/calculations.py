"""
Availability Pure Calculation Functions.

Conflict assembly and next-free-date search over agreements that have
already been selected as overlapping the requested range.
"""

from collections.abc import Mapping, Sequence
from datetime import date
from uuid import UUID

from rental_kernel.domain.entities import Agreement, Vendor
from rental_kernel.domain.intervals import find_latest_end
from rental_modules.availability.models import BookingConflict

UNKNOWN_VENDOR = "Unknown vendor"


def build_conflicts(
    agreements: Sequence[Agreement],
    vendors: Mapping[UUID, Vendor],
) -> tuple[BookingConflict, ...]:
    return tuple(
        BookingConflict(
            agreement_id=str(a.id),
            vendor_name=(
                vendors[a.vendor_id].display_name if a.vendor_id in vendors else UNKNOWN_VENDOR
            ),
            status=a.status.value,
            start_date=a.impact_from,
            end_date=a.impact_to,
        )
        for a in agreements
    )


def next_available_date(
    agreements: Sequence[Agreement],
    max_search_date: date | None = None,
) -> date | None:
    """
    First day the unit is free of every conflicting agreement.

    Impact intervals are half-open, so the latest ``impact_to`` is itself
    free.  Returns None when there are no conflicts or the date falls after
    ``max_search_date``.
    """
    latest = find_latest_end(a.impact_range for a in agreements)
    if latest is None:
        return None
    if max_search_date is not None and latest > max_search_date:
        return None
    return latest
