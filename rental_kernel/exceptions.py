"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (admin API, vendor portal, the monthly job) react differently to a
missing vendor, a rejected booking and an unreachable database.  Parsing
message strings for that is fragile, so every error here:
  1. Has its own class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores structured DATA as attributes (not just a message string)

Example:
    try:
        service.cancel_trial_booking(agreement_id, vendor_id)
    except NotATrialBookingError as e:
        api_response(code=e.code, agreement=str(e.agreement_id))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RentalKernelError (base)
    |
    +-- NotFoundError
    |   +-- VendorNotFoundError
    |   +-- AgreementNotFoundError
    |   +-- RentalUnitNotFoundError
    |
    +-- RentalValidationError
    |   +-- InvalidStatusTransitionError
    |   +-- AddOnNotPermittedError
    |   +-- PriceOutOfRangeError
    |   +-- MalformedIdError
    |   +-- InvalidAgreementError
    |   +-- NotATrialBookingError
    |
    +-- ConflictError
    |   +-- TrialBookingConflictError
    |   +-- TrialExpiredError
    |
    +-- InfrastructureError
        +-- StoreUnavailableError
        +-- AvailabilityCalculationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | VENDOR_NOT_FOUND            | Vendor ID doesn't exist
                | AGREEMENT_NOT_FOUND         | Agreement ID doesn't exist
                | RENTAL_UNIT_NOT_FOUND       | Rental unit ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_STATUS_TRANSITION   | Status change not in agreement workflow
                | ADD_ON_NOT_PERMITTED        | Add-ons without premium tier / unit line
                | PRICE_OUT_OF_RANGE          | Price outside the allowed bounds
                | MALFORMED_ID                | ID is not a valid UUID
                | INVALID_AGREEMENT           | Other malformed agreement input
                | NOT_A_TRIAL_BOOKING         | Trial cancel on a paid agreement
----------------|-----------------------------|-----------------------------------------
Conflict        | TRIAL_BOOKING_CONFLICT      | Vendor already holds a trial booking
                | TRIAL_EXPIRED               | Trial window already over
----------------|-----------------------------|-----------------------------------------
Infrastructure  | STORE_UNAVAILABLE           | Database unreachable / driver error
                | AVAILABILITY_CALCULATION    | Store failure while checking one unit

===============================================================================
HANDLING PATTERNS
===============================================================================

NotFoundError, RentalValidationError and ConflictError are deterministic:
surface them verbatim and never retry.  InfrastructureError on a single
entity propagates to the caller; batch availability catches it per item and
degrades only that item.  The monthly revenue job retries once on anything
it did not expect.
"""

from datetime import date
from decimal import Decimal


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(RentalKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class VendorNotFoundError(NotFoundError):
    """Vendor with given ID was not found."""

    code: str = "VENDOR_NOT_FOUND"

    def __init__(self, vendor_id: str):
        self.vendor_id = vendor_id
        super().__init__(f"Vendor not found: {vendor_id}")


class AgreementNotFoundError(NotFoundError):
    """Agreement with given ID was not found."""

    code: str = "AGREEMENT_NOT_FOUND"

    def __init__(self, agreement_id: str):
        self.agreement_id = agreement_id
        super().__init__(f"Agreement not found: {agreement_id}")


class RentalUnitNotFoundError(NotFoundError):
    """Rental unit with given ID was not found."""

    code: str = "RENTAL_UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Rental unit not found: {unit_id}")


# Validation exceptions


class RentalValidationError(RentalKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidStatusTransitionError(RentalValidationError):
    """Agreement status change is not allowed by the agreement workflow."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, agreement_id: str, from_status: str, to_status: str):
        self.agreement_id = agreement_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Agreement {agreement_id} cannot move from {from_status} to {to_status}"
        )


class AddOnNotPermittedError(RentalValidationError):
    """Add-on services requested where they are not allowed."""

    code: str = "ADD_ON_NOT_PERMITTED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Add-on services not permitted: {reason}")


class PriceOutOfRangeError(RentalValidationError):
    """A price lies outside the configured bounds."""

    code: str = "PRICE_OUT_OF_RANGE"

    def __init__(self, price: Decimal, minimum: Decimal, maximum: Decimal, field: str = "price"):
        self.price = price
        self.minimum = minimum
        self.maximum = maximum
        self.field = field
        super().__init__(
            f"{field} {price} outside allowed range [{minimum}, {maximum}]"
        )


class MalformedIdError(RentalValidationError):
    """Identifier is not a valid UUID."""

    code: str = "MALFORMED_ID"

    def __init__(self, raw_id: str, kind: str = "id"):
        self.raw_id = raw_id
        self.kind = kind
        super().__init__(f"Malformed {kind}: {raw_id!r}")


class InvalidAgreementError(RentalValidationError):
    """Agreement draft is malformed (duration, discount, dates)."""

    code: str = "INVALID_AGREEMENT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid agreement: {reason}")


class NotATrialBookingError(RentalValidationError):
    """Trial-only operation attempted on a regular agreement."""

    code: str = "NOT_A_TRIAL_BOOKING"

    def __init__(self, agreement_id: str):
        self.agreement_id = agreement_id
        super().__init__(f"Agreement {agreement_id} is not a trial booking")


# Conflict exceptions


class ConflictError(RentalKernelError):
    """Base exception for requests that clash with existing state."""

    code: str = "CONFLICT"


class TrialBookingConflictError(ConflictError):
    """Vendor already holds a live trial booking."""

    code: str = "TRIAL_BOOKING_CONFLICT"

    def __init__(self, vendor_id: str, existing_agreement_id: str):
        self.vendor_id = vendor_id
        self.existing_agreement_id = existing_agreement_id
        super().__init__(
            f"Vendor {vendor_id} already has trial booking {existing_agreement_id}"
        )


class TrialExpiredError(ConflictError):
    """Vendor's trial window is over (or was never active)."""

    code: str = "TRIAL_EXPIRED"

    def __init__(self, vendor_id: str, trial_status: str, trial_end: date | None = None):
        self.vendor_id = vendor_id
        self.trial_status = trial_status
        self.trial_end = trial_end
        super().__init__(
            f"Vendor {vendor_id} is not in an active trial (status={trial_status}, "
            f"trial_end={trial_end})"
        )


# Infrastructure exceptions


class InfrastructureError(RentalKernelError):
    """Base exception for store/driver failures."""

    code: str = "INFRASTRUCTURE_ERROR"


class StoreUnavailableError(InfrastructureError):
    """The backing store could not be reached or rejected the statement."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store unavailable during {operation}: {detail}")


class AvailabilityCalculationError(InfrastructureError):
    """Availability for a single rental unit could not be computed."""

    code: str = "AVAILABILITY_CALCULATION"

    def __init__(self, unit_id: str, detail: str):
        self.unit_id = unit_id
        self.detail = detail
        super().__init__(
            f"Failed to calculate availability for rental unit {unit_id}: {detail}"
        )
