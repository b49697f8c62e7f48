"""Read-only selectors returning frozen domain entities."""

from rental_kernel.selectors.agreement_selector import AgreementSelector
from rental_kernel.selectors.base import BaseSelector, parse_id, store_access
from rental_kernel.selectors.rental_unit_selector import ALL_TYPES, RentalUnitSelector
from rental_kernel.selectors.vendor_selector import VendorSelector

__all__ = [
    "ALL_TYPES",
    "AgreementSelector",
    "BaseSelector",
    "RentalUnitSelector",
    "VendorSelector",
    "parse_id",
    "store_access",
]
