"""
Purpose: Central configuration for matching and dispatch.
What it does:

Stores the ranking weight profiles, the per-request match options and the
lifecycle retry budget:

max_distance_km = 50
max_candidates = 10
max_retries = 3

Rule: No logic here beyond validation, just parameters so you can tune
without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import MatchConfigError


class Priority(str, Enum):
    GRADE = "grade"
    DISTANCE = "distance"
    RATING = "rating"
    COMPOSITE = "composite"

    @classmethod
    def parse(cls, value: Any) -> Priority:
        if isinstance(value, Priority):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise MatchConfigError(f"Unknown match priority: {value!r}") from None


@dataclass(frozen=True)
class ScoreWeights:
    tier: float = 0.0
    rating: float = 0.0
    distance: float = 0.0
    availability: float = 0.0
    experience: float = 0.0
    cost: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "tier": self.tier,
            "rating": self.rating,
            "distance": self.distance,
            "availability": self.availability,
            "experience": self.experience,
            "cost": self.cost,
        }


PRIORITY_WEIGHTS: Dict[Priority, ScoreWeights] = {
    Priority.GRADE: ScoreWeights(tier=0.30, rating=0.25, distance=0.20, availability=0.15, experience=0.10),
    Priority.DISTANCE: ScoreWeights(distance=0.40, tier=0.20, rating=0.20, availability=0.15, experience=0.05),
    Priority.RATING: ScoreWeights(rating=0.40, tier=0.25, distance=0.20, availability=0.10, experience=0.05),
    Priority.COMPOSITE: ScoreWeights(tier=0.25, rating=0.25, distance=0.20, availability=0.15, experience=0.10, cost=0.05),
}

# Every priority must have exactly one weight record.
_missing = [p.value for p in Priority if p not in PRIORITY_WEIGHTS]
if _missing:
    raise MatchConfigError(f"No score weights for priorities: {', '.join(_missing)}")
for _p, _w in PRIORITY_WEIGHTS.items():
    if abs(sum(_w.as_dict().values()) - 1.0) > 1e-9:
        raise MatchConfigError(f"Score weights for {_p.value} must sum to 1")


@dataclass(frozen=True)
class MatchOptions:
    # None disables the distance gate.
    max_distance_km: Optional[float] = 50.0
    min_rating: float = 0.0
    require_experience: bool = False
    priority: Priority = Priority.COMPOSITE
    max_candidates: int = 10
    # Hand the top candidate straight to Dispatcher.accept.
    auto_assign: bool = False

    def validate(self) -> None:
        Priority.parse(self.priority)
        if self.max_distance_km is not None and self.max_distance_km < 0:
            raise MatchConfigError("max_distance_km must be >= 0 or None")
        if not 0 <= self.min_rating <= 5:
            raise MatchConfigError("min_rating must be within [0, 5]")
        if self.max_candidates <= 0:
            raise MatchConfigError("max_candidates must be > 0")


def default_match_options() -> MatchOptions:
    o = MatchOptions()
    o.validate()
    return o


@dataclass(frozen=True)
class DispatchPolicy:
    # Compare-and-swap attempts per transition before giving up.
    max_retries: int = 3

    def validate(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")


def default_dispatch_policy() -> DispatchPolicy:
    p = DispatchPolicy()
    p.validate()
    return p


def dispatch_policy_from_env() -> DispatchPolicy:
    """
    Reads DISPATCH_MAX_RETRIES from the environment (.env).
    """
    load_dotenv()
    raw = os.getenv("DISPATCH_MAX_RETRIES")
    if raw is None or raw.strip() == "":
        return default_dispatch_policy()
    try:
        p = DispatchPolicy(max_retries=int(raw))
    except ValueError:
        raise ValueError(f"DISPATCH_MAX_RETRIES must be an integer, got {raw!r}") from None
    p.validate()
    return p
