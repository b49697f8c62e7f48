"""Kernel ORM models. Importing this package registers their tables on Base.metadata."""

from rental_kernel.models.agreement import AgreementModel, ServiceLineModel
from rental_kernel.models.rental_unit import RentalUnitModel
from rental_kernel.models.vendor import VendorModel

__all__ = [
    "AgreementModel",
    "ServiceLineModel",
    "RentalUnitModel",
    "VendorModel",
]
