"""
Purpose: Core data models for contractor performance tiers.
What it does:
Defines the single Tier ladder used everywhere (matching, pricing, analysis)
and the raw performance metrics a tier is computed from.

The marketplace historically had two ladders: a five-level named ladder
(Bronze..Diamond) and a four-letter grade (A..D). Both collapse into `Tier`
through the explicit mapping tables below.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict


class TierConfigError(ValueError):
    """Raised for unknown tier identifiers or an inconsistent tier profile."""
    pass


class Tier(IntEnum):
    BRONZE = 1
    SILVER = 2
    GOLD = 3
    PLATINUM = 4
    DIAMOND = 5

    @property
    def letter(self) -> str:
        return TIER_TO_LETTER[self]

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Any) -> Tier:
        """
        Accepts a Tier, its level (1-5), its name ("gold") or a legacy letter ("B").
        """
        if isinstance(value, Tier):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise TierConfigError(f"Unknown tier level: {value!r}") from None
        if isinstance(value, str):
            key = value.strip().upper()
            if key in LETTER_TO_TIER:
                return LETTER_TO_TIER[key]
            if key in cls.__members__:
                return cls[key]
        raise TierConfigError(f"Unknown tier: {value!r}")


# Letter grades are coarser than tiers: A covers the top two.
TIER_TO_LETTER: Dict[Tier, str] = {
    Tier.DIAMOND: "A",
    Tier.PLATINUM: "A",
    Tier.GOLD: "B",
    Tier.SILVER: "C",
    Tier.BRONZE: "D",
}

# A letter parses to the lowest tier carrying it.
LETTER_TO_TIER: Dict[str, Tier] = {
    "A": Tier.PLATINUM,
    "B": Tier.GOLD,
    "C": Tier.SILVER,
    "D": Tier.BRONZE,
}


@dataclass(frozen=True)
class TierMetrics:
    """
    Raw performance metrics for one contractor.
    response_minutes is "lower is better"; everything else is "higher is better".
    """
    completed_jobs: int = 0
    average_rating: float = 0.0       # 0-5
    photo_quality: float = 0.0        # 0-10
    response_minutes: float = 120.0   # mean minutes to respond to an offer
    on_time_rate: float = 0.0         # percent
    satisfaction_rate: float = 0.0    # percent

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TierMetrics:
        """
        Builds metrics from a loosely-typed mapping. Values are not validated here;
        the tier engine clamps them.
        """
        defaults = cls()
        return cls(
            completed_jobs=data.get("completed_jobs", defaults.completed_jobs),
            average_rating=data.get("average_rating", defaults.average_rating),
            photo_quality=data.get("photo_quality", defaults.photo_quality),
            response_minutes=data.get("response_minutes", defaults.response_minutes),
            on_time_rate=data.get("on_time_rate", defaults.on_time_rate),
            satisfaction_rate=data.get("satisfaction_rate", defaults.satisfaction_rate),
        )
