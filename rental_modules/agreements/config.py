"""
Agreement Lifecycle Configuration Schema.

Trial window length, default add-on fees, price bounds and the commission
tier that may book add-on services.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from rental_kernel.domain.entities import CommissionTier
from rental_kernel.logging_config import get_logger

logger = get_logger("modules.agreements.config")


@dataclass
class AgreementConfig:
    """Configuration schema for the lifecycle coordinator."""

    # Length of a vendor trial when no end date was set
    trial_days: int = 30

    # Monthly add-on fees unless overridden per agreement
    storage_fee: Decimal = Decimal("20.00")
    shipping_fee: Decimal = Decimal("5.00")

    # Inclusive bounds for line prices and unit base prices
    min_price: Decimal = Decimal("0")
    max_price: Decimal = Decimal("1000")

    # Only this tier may book add-on services
    add_on_tier: CommissionTier = CommissionTier.PREMIUM

    def __post_init__(self):
        self.add_on_tier = CommissionTier(self.add_on_tier)
        if self.trial_days <= 0:
            raise ValueError("trial_days must be positive")
        if self.storage_fee < 0 or self.shipping_fee < 0:
            raise ValueError("add-on fees cannot be negative")
        if self.min_price < 0 or self.max_price < self.min_price:
            raise ValueError("price bounds must satisfy 0 <= min_price <= max_price")

        logger.info(
            "agreement_config_initialized",
            extra={
                "trial_days": self.trial_days,
                "storage_fee": str(self.storage_fee),
                "shipping_fee": str(self.shipping_fee),
                "max_price": str(self.max_price),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
