"""
Availability Engine Service (``rental_modules.availability.service``).

Responsibility
--------------
Answers "can this unit be booked for this range?" by finding agreements in a
blocking status whose impact interval overlaps the requested range, and
reports the conflicts plus the first date the unit is free again.

Architecture position
---------------------
**Modules layer** -- read-only orchestration.  Opens one session per unit
lookup from the injected session factory so that batch requests can fan out
across a thread pool without sharing a session between threads.

Failure modes
-------------
* Malformed unit id  -> ``MalformedIdError`` (propagates).
* Store failure on a single-unit call  -> ``AvailabilityCalculationError``
  carrying the unit id (propagates).
* Any failure on one unit of a batch  -> that unit's result carries
  ``available=False`` and ``error``; sibling units are unaffected.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.cache import AVAILABILITY_NAMESPACE, NullQueryCache, QueryCache
from rental_kernel.domain.intervals import DateRange
from rental_kernel.exceptions import AvailabilityCalculationError, InfrastructureError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.selectors import AgreementSelector, RentalUnitSelector, VendorSelector, parse_id
from rental_modules.availability.calculations import build_conflicts, next_available_date
from rental_modules.availability.config import AvailabilityConfig
from rental_modules.availability.models import (
    AvailabilityMetrics,
    AvailabilityOptions,
    AvailabilityResult,
    UnitAvailability,
)

logger = get_logger("modules.availability.service")


class AvailabilityService:
    """
    Conflict detection and next-available search for rental units.

    Contract
    --------
    * ``available`` is True exactly when no blocking agreement overlaps the
      requested range; touching ranges do not conflict.
    * ``next_available`` is computed only when there are conflicts and
      ``calculate_next_available`` is set.
    * Never writes to the store.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: AvailabilityConfig | None = None,
        cache: QueryCache | None = None,
    ):
        self._session_factory = session_factory
        self._config = config or AvailabilityConfig.with_defaults()
        self._cache = cache or NullQueryCache()
        self._metrics_lock = threading.Lock()
        self._queries = 0
        self._units_checked = 0
        self._conflicts_found = 0
        self._cache_hits = 0
        self._query_seconds = 0.0

    # =========================================================================
    # Single unit
    # =========================================================================

    def calculate_availability(
        self,
        unit_id: UUID | str,
        requested: DateRange,
        options: AvailabilityOptions | None = None,
    ) -> AvailabilityResult:
        options = options or AvailabilityOptions()
        uid = parse_id(unit_id, "rental_unit")
        cache_key = f"{uid}:{requested.start.isoformat()}:{requested.end.isoformat()}:{options.cache_token()}"

        cached = self._cache.get(AVAILABILITY_NAMESPACE, cache_key)
        if cached is not None:
            self._record(cache_hit=True)
            return AvailabilityResult.from_dict(cached)

        started = time.perf_counter()
        with LogContext.bind(unit_id=str(uid)):
            try:
                with self._session_factory() as session:
                    agreements = AgreementSelector(session).find_overlapping(
                        uid, requested, self._config.blocking_statuses,
                    )
                    vendors = (
                        VendorSelector(session).get_many(a.vendor_id for a in agreements)
                        if agreements and options.include_conflicts
                        else {}
                    )
            except InfrastructureError as exc:
                logger.error(
                    "availability_calculation_failed",
                    extra={"unit_id": str(uid), "detail": str(exc)},
                )
                raise AvailabilityCalculationError(str(uid), str(exc)) from exc

            result = AvailabilityResult(
                unit_id=str(uid),
                available=not agreements,
                conflicts=build_conflicts(agreements, vendors) if options.include_conflicts else (),
                next_available=(
                    next_available_date(agreements, options.max_search_date)
                    if agreements and options.calculate_next_available
                    else None
                ),
            )
            elapsed = time.perf_counter() - started
            self._record(conflicts=len(agreements), seconds=elapsed)

            logger.info(
                "availability_calculated",
                extra={
                    "requested_start": requested.start,
                    "requested_end": requested.end,
                    "available": result.available,
                    "conflict_count": len(agreements),
                    "next_available": result.next_available,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )

        self._cache.set(
            AVAILABILITY_NAMESPACE, cache_key, result.to_dict(),
            ttl_seconds=self._config.cache_ttl_seconds,
        )
        return result

    # =========================================================================
    # Batch
    # =========================================================================

    def calculate_batch_availability(
        self,
        unit_ids: Sequence[UUID | str],
        requested: DateRange,
        options: AvailabilityOptions | None = None,
    ) -> dict[str, AvailabilityResult]:
        """
        Availability for many units, computed concurrently.

        Results are keyed by the requested id string in request order.  A
        failing unit yields ``AvailabilityResult.failed`` instead of aborting
        the batch.
        """
        if not unit_ids:
            return {}

        keys = [str(u) for u in unit_ids]
        workers = min(self._config.batch_max_workers, len(keys))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="availability") as pool:
            futures = [
                pool.submit(self.calculate_availability, unit_id, requested, options)
                for unit_id in unit_ids
            ]

        results: dict[str, AvailabilityResult] = {}
        failed = 0
        for key, future in zip(keys, futures):
            try:
                results[key] = future.result()
            except Exception as exc:
                failed += 1
                logger.warning(
                    "batch_availability_item_failed",
                    extra={"unit_id": key, "error_type": type(exc).__name__, "detail": str(exc)},
                )
                results[key] = AvailabilityResult.failed(key, str(exc))

        logger.info(
            "batch_availability_calculated",
            extra={"unit_count": len(keys), "failed_count": failed},
        )
        return results

    # =========================================================================
    # Type search
    # =========================================================================

    def find_available_units(
        self,
        unit_types: Sequence[str],
        requested: DateRange,
        limit: int | None = None,
    ) -> list[UnitAvailability]:
        """
        Units of the given types that are free for the whole requested range.

        Loads up to ``limit`` flagged-available units, then filters by
        interval conflicts; the store cannot express the overlap test on
        units directly.
        """
        limit = limit or self._config.find_limit
        with self._session_factory() as session:
            units = RentalUnitSelector(session).find_by_types(unit_types, limit)

        options = AvailabilityOptions(include_conflicts=False, calculate_next_available=False)
        results = self.calculate_batch_availability([u.id for u in units], requested, options)

        found = [
            UnitAvailability(unit=unit, availability=results[str(unit.id)])
            for unit in units
            if results[str(unit.id)].available
        ]
        logger.info(
            "available_units_found",
            extra={
                "unit_types": list(unit_types),
                "candidates": len(units),
                "available_count": len(found),
            },
        )
        return found

    # =========================================================================
    # Metrics
    # =========================================================================

    def get_metrics(self) -> AvailabilityMetrics:
        with self._metrics_lock:
            return AvailabilityMetrics(
                queries_executed=self._queries,
                units_checked=self._units_checked,
                conflicts_found=self._conflicts_found,
                cache_hits=self._cache_hits,
                total_query_seconds=self._query_seconds,
            )

    def reset_metrics(self) -> None:
        with self._metrics_lock:
            self._queries = 0
            self._units_checked = 0
            self._conflicts_found = 0
            self._cache_hits = 0
            self._query_seconds = 0.0

    def _record(self, conflicts: int = 0, seconds: float = 0.0, cache_hit: bool = False) -> None:
        with self._metrics_lock:
            self._units_checked += 1
            if cache_hit:
                self._cache_hits += 1
                return
            self._queries += 1
            self._conflicts_found += conflicts
            self._query_seconds += seconds
