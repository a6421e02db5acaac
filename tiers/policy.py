"""
Purpose: Central configuration for contractor tiers.
What it does:

Stores the thresholds each tier requires, plus the per-tier knobs other
engines read: the urgency discount (pricing) and the match weight (matching).

Rule: No logic here beyond validation, just parameters so you can tune
without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .models import Tier, TierConfigError


@dataclass(frozen=True)
class TierCriteria:
    """
    Requirements to hold a tier. All are "at least" except max_response_minutes.
    """
    tier: Tier
    min_completed_jobs: int
    min_rating: float
    min_photo_quality: float
    max_response_minutes: float
    min_on_time_rate: float
    min_satisfaction_rate: float

    # Percentage points taken off the urgency surcharge for this tier.
    urgency_discount_percent: float = 0.0

    # 0-1, scaled to 0-100 for the tier sub-score in matching.
    match_weight: float = 0.0


@dataclass(frozen=True)
class TierProfile:
    """
    Ordered weakest -> strongest. determine_tier walks it from the top down.
    """
    criteria: List[TierCriteria] = field(default_factory=lambda: [
        TierCriteria(Tier.BRONZE, 0, 0.0, 0.0, 120, 0, 0,
                     urgency_discount_percent=0, match_weight=0.4),
        TierCriteria(Tier.SILVER, 10, 3.5, 3.0, 90, 70, 70,
                     urgency_discount_percent=5, match_weight=0.6),
        TierCriteria(Tier.GOLD, 25, 4.0, 4.0, 60, 80, 80,
                     urgency_discount_percent=10, match_weight=0.8),
        TierCriteria(Tier.PLATINUM, 50, 4.3, 4.5, 45, 90, 85,
                     urgency_discount_percent=15, match_weight=0.9),
        TierCriteria(Tier.DIAMOND, 100, 4.5, 4.8, 30, 95, 90,
                     urgency_discount_percent=20, match_weight=1.0),
    ])

    def for_tier(self, tier: Tier) -> TierCriteria:
        tier = Tier.parse(tier)
        for c in self.criteria:
            if c.tier == tier:
                return c
        raise TierConfigError(f"Tier {tier.name} missing from profile")

    def by_tier(self) -> Dict[Tier, TierCriteria]:
        return {c.tier: c for c in self.criteria}

    def validate(self) -> None:
        """
        Every tier appears once, in ascending order, and no tier is easier
        to reach than the one below it.
        """
        tiers = [c.tier for c in self.criteria]
        if tiers != sorted(Tier):
            raise TierConfigError("Profile must list every tier exactly once, weakest first")

        for lower, upper in zip(self.criteria, self.criteria[1:]):
            if (
                upper.min_completed_jobs < lower.min_completed_jobs
                or upper.min_rating < lower.min_rating
                or upper.min_photo_quality < lower.min_photo_quality
                or upper.max_response_minutes > lower.max_response_minutes
                or upper.min_on_time_rate < lower.min_on_time_rate
                or upper.min_satisfaction_rate < lower.min_satisfaction_rate
            ):
                raise TierConfigError(
                    f"{upper.tier.name} thresholds must be at least as strict as {lower.tier.name}"
                )

        for c in self.criteria:
            if not 0 <= c.urgency_discount_percent <= 100:
                raise TierConfigError(f"{c.tier.name} urgency discount must be within [0, 100]")
            if not 0 <= c.match_weight <= 1:
                raise TierConfigError(f"{c.tier.name} match weight must be within [0, 1]")


def default_tier_profile() -> TierProfile:
    """
    Convenience factory for the default profile.
    """
    p = TierProfile()
    p.validate()
    return p
