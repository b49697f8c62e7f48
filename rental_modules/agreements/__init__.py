"""
Agreement Lifecycle (``rental_modules.agreements``).

Agreement creation with trial classification, payment-start date and impact
interval derived up front; trial cancellation; trial eligibility; status
workflow; vendor trial activation and expiry.
"""

from rental_modules.agreements.config import AgreementConfig
from rental_modules.agreements.models import (
    AddOnRequest,
    AgreementDraft,
    ServiceLineDraft,
    TrialEligibility,
    TrialStatusUpdate,
)
from rental_modules.agreements.service import AgreementService
from rental_modules.agreements.workflows import AGREEMENT_LIFECYCLE_WORKFLOW

__all__ = [
    "AGREEMENT_LIFECYCLE_WORKFLOW",
    "AddOnRequest",
    "AgreementConfig",
    "AgreementDraft",
    "AgreementService",
    "ServiceLineDraft",
    "TrialEligibility",
    "TrialStatusUpdate",
]
