"""
Purpose: Job price computation.
What it does:
Escalates the urgency surcharge with the time a job has been waiting, takes
the contractor's tier discount off that surcharge, and settles the total into
platform fee, contractor payout, tax and customer total.

Tier benefits apply once, on the urgency side. The platform fee percentage
is the same for every tier.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional

from tiers.models import Tier
from tiers.policy import TierProfile, default_tier_profile

from .models import PriceBreakdown, PricingConfigError, Urgency
from .policy import PricingPolicy, default_pricing_policy

if TYPE_CHECKING:
    from jobs.models import Job

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def urgency_percent(urgency: Any, elapsed_minutes: float, policy: Optional[PricingPolicy] = None) -> float:
    """
    min(base + floor(elapsed / interval) * step, cap).
    `normal` never escalates; negative elapsed time (clock skew) counts as zero.
    """
    policy = policy or default_pricing_policy()
    rule = policy.rule_for(Urgency.parse(urgency))

    if not rule.escalates:
        return rule.base_percent

    elapsed = max(0.0, float(elapsed_minutes))
    steps = math.floor(elapsed / rule.interval_minutes)
    return min(rule.base_percent + steps * rule.step_percent, rule.cap_percent)


def elapsed_minutes_between(created_at: Optional[datetime], now: datetime) -> float:
    if created_at is None:
        return 0.0
    return max(0.0, (now - created_at).total_seconds() / 60.0)


class PricingEngine:
    """
    Stateless apart from its configuration; safe to share between threads.
    """
    def __init__(self, policy: Optional[PricingPolicy] = None, tier_profile: Optional[TierProfile] = None):
        self.policy = policy or default_pricing_policy()
        self.tier_profile = tier_profile or default_tier_profile()
        self.policy.validate()
        self.tier_profile.validate()

    def price(self, job: "Job", tier: Any, now: Optional[datetime] = None) -> PriceBreakdown:
        """
        Prices a job for a contractor of the given tier at time `now`.
        """
        now = now or datetime.now(timezone.utc)
        return self.price_fee(
            base_fee=job.effective_base_fee,
            urgency=job.urgency,
            tier=tier,
            elapsed_minutes=elapsed_minutes_between(job.created_at, now),
        )

    def price_fee(self, base_fee: Any, urgency: Any, tier: Any, elapsed_minutes: float = 0.0) -> PriceBreakdown:
        base = _money(base_fee)
        if base <= 0:
            raise PricingConfigError(f"base fee must be > 0, got {base_fee!r}")

        urgency = Urgency.parse(urgency)
        tier = Tier.parse(tier)
        rule = self.policy.rule_for(urgency)

        escalated = urgency_percent(urgency, elapsed_minutes, self.policy)
        tier_discount = self.tier_profile.for_tier(tier).urgency_discount_percent
        applied = max(0.0, escalated - tier_discount)

        discount_amount = quantize_money(base * _pct(self.policy.discount_percent))
        urgency_fee = quantize_money(base * _pct(applied))
        total_fee = (base - discount_amount) + urgency_fee
        platform_fee = quantize_money(total_fee * _pct(self.policy.platform_fee_percent))
        payout = total_fee - platform_fee
        tax = quantize_money(total_fee * _pct(self.policy.tax_percent))
        customer_total = total_fee + tax

        logger.debug(
            "Priced %s/%s: urgency %.1f%% -> %.1f%%, total %s",
            urgency.value, tier.name, escalated, applied, total_fee,
        )

        return PriceBreakdown(
            base_fee=base,
            discount_percent=self.policy.discount_percent,
            discount_amount=discount_amount,
            urgency=urgency,
            tier=tier,
            elapsed_minutes=max(0.0, float(elapsed_minutes)),
            urgency_base_percent=rule.base_percent,
            escalated_percent=escalated,
            tier_discount_percent=tier_discount,
            urgency_percent=applied,
            urgency_fee=urgency_fee,
            total_fee=total_fee,
            platform_fee_percent=self.policy.platform_fee_percent,
            platform_fee=platform_fee,
            payout=payout,
            tax_percent=self.policy.tax_percent,
            tax=tax,
            customer_total=customer_total,
        )


# ---- Internal helpers ----

def _money(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise PricingConfigError(f"fee must be a number, got {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PricingConfigError(f"fee must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise PricingConfigError(f"fee must be finite, got {value!r}")
    return quantize_money(amount)


def _pct(percent: float) -> Decimal:
    return Decimal(str(percent)) / Decimal(100)
