"""
Agreement Lifecycle Service (``rental_modules.agreements.service``).

Responsibility
--------------
Creates agreements with their derived fields (trial classification,
payment-start date, impact interval) computed before the row exists,
cancels trial bookings and frees their units, answers trial-eligibility
questions, and moves agreements and vendor trials through their
lifecycles.

Architecture position
---------------------
**Modules layer** -- orchestration.  Derived-field math lives in
``calculations.py``; status rules live in ``workflows.py``.

Invariants enforced
-------------------
* Each public method that writes owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on failure).
* Every agreement mutation invalidates the ``availability`` and ``revenue``
  cache namespaces after commit.
* Status changes follow ``AGREEMENT_LIFECYCLE_WORKFLOW``.

Failure modes
-------------
* Missing vendor / agreement / unit  -> ``*NotFoundError``.
* Bad draft  -> ``RentalValidationError`` subclasses, nothing written.
* Trial rules  -> ``NotATrialBookingError``, ``TrialExpiredError`` or
  ``TrialBookingConflictError``.
* Store failure  -> ``StoreUnavailableError`` after rollback.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from rental_kernel.cache import AVAILABILITY_NAMESPACE, REVENUE_NAMESPACE, NullQueryCache, QueryCache
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.entities import Agreement, AgreementStatus, TrialStatus
from rental_kernel.exceptions import (
    AgreementNotFoundError,
    InvalidAgreementError,
    InvalidStatusTransitionError,
    MalformedIdError,
    NotATrialBookingError,
    RentalUnitNotFoundError,
    TrialBookingConflictError,
    TrialExpiredError,
    VendorNotFoundError,
)
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.models import AgreementModel, RentalUnitModel, VendorModel
from rental_kernel.selectors import (
    AgreementSelector,
    RentalUnitSelector,
    VendorSelector,
    parse_id,
    store_access,
)
from rental_modules.agreements.calculations import build_agreement, is_trial_booking, validate_draft
from rental_modules.agreements.config import AgreementConfig
from rental_modules.agreements.models import AgreementDraft, TrialEligibility, TrialStatusUpdate
from rental_modules.agreements.workflows import AGREEMENT_LIFECYCLE_WORKFLOW

logger = get_logger("modules.agreements.service")

# Statuses in which an existing trial booking blocks a new one
_OPEN_TRIAL_STATUSES = (
    AgreementStatus.PENDING,
    AgreementStatus.SCHEDULED,
    AgreementStatus.ACTIVE,
)


class AgreementService:
    """
    Lifecycle coordinator for agreements and vendor trials.

    Contract
    --------
    * ``create_agreement`` returns the persisted agreement with
      ``impact_to = scheduled_start + duration (+1 month for trials)``.
    * ``can_make_trial_booking`` never raises for domain reasons; it fails
      closed with a reason.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: AgreementConfig | None = None,
        cache: QueryCache | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or AgreementConfig.with_defaults()
        self._cache = cache or NullQueryCache()
        self._agreements = AgreementSelector(session)
        self._units = RentalUnitSelector(session)
        self._vendors = VendorSelector(session)

    def _invalidate(self) -> None:
        self._cache.invalidate_namespace(AVAILABILITY_NAMESPACE)
        self._cache.invalidate_namespace(REVENUE_NAMESPACE)

    def _commit(self, operation: str) -> None:
        with store_access(operation):
            self._session.commit()

    # =========================================================================
    # Creation
    # =========================================================================

    def create_agreement(self, draft: AgreementDraft) -> Agreement:
        """
        Validate a draft, derive its trial and interval fields, and persist it.

        A preregistered vendor is promoted to an active trial by their first
        booking; the booking itself is classified from the vendor's state
        before promotion.
        """
        vendor_id = parse_id(draft.vendor_id, "vendor")
        unit_ids = [parse_id(line.unit_id, "rental_unit") for line in draft.lines]
        today = self._clock.today()

        with LogContext.bind(vendor_id=str(vendor_id)):
            try:
                vendor = self._vendors.get(vendor_id)
                if vendor is None:
                    raise VendorNotFoundError(str(vendor_id))

                units = self._units.get_many(unit_ids)
                missing = [u for u in unit_ids if u not in units]
                if missing:
                    raise RentalUnitNotFoundError(str(missing[0]))

                validate_draft(draft, units, self._config)
                if is_trial_booking(vendor, today):
                    existing = self._agreements.find_open_trial(vendor_id, _OPEN_TRIAL_STATUSES)
                    if existing is not None:
                        raise TrialBookingConflictError(str(vendor_id), str(existing.id))
                agreement = build_agreement(
                    draft, vendor, unit_ids, today, self._config, created_at=self._clock.now(),
                )
                self._session.add(AgreementModel.from_dto(agreement))

                promoted = False
                if vendor.trial_status == TrialStatus.PREREGISTERED:
                    vendor_model = self._session.get(VendorModel, vendor_id)
                    self._start_trial(vendor_model, today)
                    promoted = True

                self._commit("agreement.create")
            except Exception:
                self._session.rollback()
                logger.warning("agreement_create_rolled_back", exc_info=True)
                raise

            self._invalidate()
            logger.info(
                "agreement_created",
                extra={
                    "agreement_id": str(agreement.id),
                    "is_trial": agreement.is_trial,
                    "scheduled_start_date": agreement.scheduled_start_date,
                    "payment_start_date": agreement.payment_start_date,
                    "impact_to": agreement.impact_to,
                    "total_monthly_price": str(agreement.total_monthly_price),
                    "unit_count": len(agreement.unit_ids),
                    "vendor_promoted": promoted,
                },
            )
        return agreement

    # =========================================================================
    # Trial bookings
    # =========================================================================

    def cancel_trial_booking(self, agreement_id: UUID | str, vendor_id: UUID | str) -> Agreement:
        """Cancel a trial booking while the vendor's trial is running and free its units."""
        aid = parse_id(agreement_id, "agreement")
        vid = parse_id(vendor_id, "vendor")
        today = self._clock.today()

        try:
            with store_access("agreement.cancel_trial.load"):
                model = self._session.get(AgreementModel, aid)
                vendor_model = self._session.get(VendorModel, vid)
            if model is None:
                raise AgreementNotFoundError(str(aid))
            if vendor_model is None:
                raise VendorNotFoundError(str(vid))
            if model.vendor_id != vid:
                raise InvalidAgreementError(f"agreement {aid} does not belong to vendor {vid}")
            if not model.is_trial:
                raise NotATrialBookingError(str(aid))
            trial_over = (
                vendor_model.trial_end_date is not None and vendor_model.trial_end_date <= today
            )
            if vendor_model.trial_status != TrialStatus.TRIAL_ACTIVE.value or trial_over:
                raise TrialExpiredError(str(vid), vendor_model.trial_status, vendor_model.trial_end_date)

            model.cancelled_during_trial = True
            model.trial_cancellation_date = today
            model.status = AgreementStatus.CANCELLED.value

            unit_ids = [line.unit_id for line in model.lines]
            if unit_ids:
                with store_access("agreement.cancel_trial.free_units"):
                    self._session.execute(
                        update(RentalUnitModel)
                        .where(RentalUnitModel.id.in_(unit_ids))
                        .values(is_available=True)
                    )
            self._commit("agreement.cancel_trial")
        except Exception:
            self._session.rollback()
            logger.warning(
                "trial_cancel_rolled_back",
                extra={"agreement_id": str(aid), "vendor_id": str(vid)},
                exc_info=True,
            )
            raise

        self._invalidate()
        logger.info(
            "trial_booking_cancelled",
            extra={
                "agreement_id": str(aid),
                "vendor_id": str(vid),
                "units_freed": len(unit_ids),
            },
        )
        return model.to_dto()

    def can_make_trial_booking(self, vendor_id: UUID | str) -> TrialEligibility:
        try:
            vid = parse_id(vendor_id, "vendor")
        except MalformedIdError:
            return TrialEligibility(False, "Vendor not found")

        vendor = self._vendors.get(vid)
        if vendor is None:
            return TrialEligibility(False, "Vendor not found")
        if vendor.role != "vendor":
            return TrialEligibility(False, "Only vendors can make trial bookings")
        if vendor.trial_status not in (TrialStatus.TRIAL_ACTIVE, TrialStatus.PREREGISTERED):
            return TrialEligibility(False, "Vendor is not in a trial period")
        if (
            vendor.trial_status == TrialStatus.TRIAL_ACTIVE
            and vendor.trial_end_date is not None
            and vendor.trial_end_date <= self._clock.today()
        ):
            return TrialEligibility(False, "Trial period has expired")
        if self._agreements.find_open_trial(vid, _OPEN_TRIAL_STATUSES) is not None:
            return TrialEligibility(False, "Vendor already has an active trial booking")
        return TrialEligibility(True)

    # =========================================================================
    # Status
    # =========================================================================

    def update_status(self, agreement_id: UUID | str, new_status: AgreementStatus | str) -> Agreement:
        aid = parse_id(agreement_id, "agreement")
        target = AgreementStatus(new_status)

        try:
            with store_access("agreement.update_status.load"):
                model = self._session.get(AgreementModel, aid)
            if model is None:
                raise AgreementNotFoundError(str(aid))
            current = model.status
            if not AGREEMENT_LIFECYCLE_WORKFLOW.can_transition(current, target.value):
                raise InvalidStatusTransitionError(str(aid), current, target.value)

            model.status = target.value
            if target == AgreementStatus.ACTIVE and model.actual_start_date is None:
                model.actual_start_date = self._clock.today()
            self._commit("agreement.update_status")
        except Exception:
            self._session.rollback()
            logger.warning(
                "agreement_status_rolled_back",
                extra={"agreement_id": str(aid), "to_status": target.value},
                exc_info=True,
            )
            raise

        self._invalidate()
        logger.info(
            "agreement_status_updated",
            extra={"agreement_id": str(aid), "from_status": current, "to_status": target.value},
        )
        return model.to_dto()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_agreement(self, agreement_id: UUID | str) -> Agreement:
        aid = parse_id(agreement_id, "agreement")
        agreement = self._agreements.get(aid)
        if agreement is None:
            raise AgreementNotFoundError(str(aid))
        return agreement

    def get_agreements_by_vendor(self, vendor_id: UUID | str) -> list[Agreement]:
        return self._agreements.find_by_vendor(parse_id(vendor_id, "vendor"))

    def get_trial_agreements(self) -> list[Agreement]:
        return self._agreements.find_trials()

    # =========================================================================
    # Vendor trials
    # =========================================================================

    def _start_trial(self, vendor_model: VendorModel, start: date) -> None:
        vendor_model.trial_status = TrialStatus.TRIAL_ACTIVE.value
        vendor_model.trial_start_date = start
        if vendor_model.trial_end_date is None:
            vendor_model.trial_end_date = start + timedelta(days=self._config.trial_days)

    def activate_vendor_trial(self, vendor_id: UUID | str, start: date | None = None):
        """Start a preregistered vendor's trial window."""
        vid = parse_id(vendor_id, "vendor")
        try:
            with store_access("vendor.activate_trial.load"):
                vendor_model = self._session.get(VendorModel, vid)
            if vendor_model is None:
                raise VendorNotFoundError(str(vid))
            if vendor_model.trial_status != TrialStatus.PREREGISTERED.value:
                raise TrialExpiredError(str(vid), vendor_model.trial_status, vendor_model.trial_end_date)
            self._start_trial(vendor_model, start or self._clock.today())
            self._commit("vendor.activate_trial")
        except Exception:
            self._session.rollback()
            logger.warning("vendor_trial_activation_rolled_back", extra={"vendor_id": str(vid)}, exc_info=True)
            raise

        logger.info(
            "vendor_trial_activated",
            extra={
                "vendor_id": str(vid),
                "trial_start_date": vendor_model.trial_start_date,
                "trial_end_date": vendor_model.trial_end_date,
            },
        )
        return vendor_model.to_dto()

    def update_trial_statuses(self) -> TrialStatusUpdate:
        """Convert vendors whose trial window has closed to regular active vendors."""
        today = self._clock.today()
        expired = self._vendors.find_expired_trials(today)
        try:
            if expired:
                with store_access("vendor.update_trial_statuses"):
                    self._session.execute(
                        update(VendorModel)
                        .where(VendorModel.id.in_([v.id for v in expired]))
                        .values(trial_status=TrialStatus.ACTIVE.value)
                    )
            self._commit("vendor.update_trial_statuses")
        except Exception:
            self._session.rollback()
            logger.warning("trial_status_update_rolled_back", exc_info=True)
            raise

        result = TrialStatusUpdate(checked=len(expired), converted=len(expired))
        logger.info(
            "trial_statuses_updated",
            extra={"checked": result.checked, "converted": result.converted},
        )
        return result
