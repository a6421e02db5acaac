"""
Purpose: Core data models for job pricing.
What it does:
Defines the urgency classes a seller can post a job under and the immutable
fee breakdown produced by the pricing engine.

Money is carried as Decimal, quantized to cents, so the settlement identities
(payout + platform fee == total fee, total fee + tax == customer total) hold
exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from tiers.models import Tier


class PricingConfigError(ValueError):
    """Raised for invalid fees, percentages or unknown pricing identifiers."""
    pass


class Urgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"
    SAME_DAY = "same_day"

    @classmethod
    def parse(cls, value: Any) -> Urgency:
        if isinstance(value, Urgency):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            raise PricingConfigError(f"Unknown urgency: {value!r}") from None


@dataclass(frozen=True)
class PriceBreakdown:
    base_fee: Decimal
    discount_percent: float
    discount_amount: Decimal

    urgency: Urgency
    tier: Tier
    elapsed_minutes: float
    # Before the tier discount.
    urgency_base_percent: float
    escalated_percent: float
    tier_discount_percent: float
    # After the tier discount, never negative.
    urgency_percent: float
    urgency_fee: Decimal

    total_fee: Decimal
    platform_fee_percent: float
    platform_fee: Decimal
    payout: Decimal
    tax_percent: float
    tax: Decimal
    customer_total: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "base_fee": str(self.base_fee),
            "discount_amount": str(self.discount_amount),
            "urgency": self.urgency.value,
            "tier": self.tier.name.lower(),
            "urgency_percent": self.urgency_percent,
            "urgency_fee": str(self.urgency_fee),
            "total_fee": str(self.total_fee),
            "platform_fee": str(self.platform_fee),
            "payout": str(self.payout),
            "tax": str(self.tax),
            "customer_total": str(self.customer_total),
        }
