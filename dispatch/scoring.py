#Purpose: Ranking model (the "who is best" layer).
#Takes candidates that already passed candidate_filter and produces six
#0-100 sub-scores per contractor plus the weighted composite.
#Unknown distance scores 0 so it can never outrank a measured one.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from contractors.models import Contractor
from jobs.models import Job
from tiers.policy import TierProfile

from .policy import ScoreWeights

# Availability: the requested date itself, or a date close to it.
NEAR_DATE_DAYS = 3

# (upper bound km, score); anything farther scores DISTANCE_FLOOR_SCORE.
DISTANCE_BANDS = [(5, 100), (10, 90), (15, 80), (20, 70), (30, 60), (40, 50)]
DISTANCE_FLOOR_SCORE = 40

# (min jobs of this type, score)
EXPERIENCE_BANDS = [(5, 100), (3, 80), (1, 60)]
EXPERIENCE_FLOOR_SCORE = 40

# (max cost / budget ratio, score)
COST_BANDS = [(0.7, 100), (0.8, 90), (0.9, 80), (1.0, 70)]
COST_FLOOR_SCORE = 50


@dataclass(frozen=True)
class CandidateScore:
    tier: float
    rating: float
    distance: float
    availability: float
    experience: float
    cost: float
    composite: int

    def as_dict(self) -> Dict[str, float]:
        return {
            "tier": self.tier,
            "rating": self.rating,
            "distance": self.distance,
            "availability": self.availability,
            "experience": self.experience,
            "cost": self.cost,
            "composite": self.composite,
        }


def tier_score(contractor: Contractor, profile: TierProfile) -> float:
    return profile.for_tier(contractor.tier).match_weight * 100


def distance_score(distance_km: Optional[float]) -> float:
    if distance_km is None:
        return 0.0
    for limit, score in DISTANCE_BANDS:
        if distance_km <= limit:
            return float(score)
    return float(DISTANCE_FLOOR_SCORE)


def rating_score(rating: float) -> float:
    return min(rating * 20, 100.0)


def availability_score(contractor: Contractor, requested: date) -> float:
    if requested in contractor.available_dates:
        return 100.0
    if any(abs((d - requested).days) <= NEAR_DATE_DAYS for d in contractor.available_dates):
        return 80.0
    return 0.0


def experience_score(jobs_of_type: int) -> float:
    for minimum, score in EXPERIENCE_BANDS:
        if jobs_of_type >= minimum:
            return float(score)
    return float(EXPERIENCE_FLOOR_SCORE)


def cost_score(estimated_cost: float, budget: float) -> float:
    if budget <= 0:
        return float(COST_FLOOR_SCORE)
    ratio = estimated_cost / budget
    for limit, score in COST_BANDS:
        if ratio <= limit:
            return float(score)
    return float(COST_FLOOR_SCORE)


def score_candidate(
    contractor: Contractor,
    distance_km: Optional[float],
    job: Job,
    weights: ScoreWeights,
    profile: TierProfile,
) -> CandidateScore:
    parts = {
        "tier": tier_score(contractor, profile),
        "rating": rating_score(contractor.rating),
        "distance": distance_score(distance_km),
        "availability": availability_score(contractor, job.requested_start.date()),
        "experience": experience_score(contractor.experience_with(job.job_type)),
        "cost": cost_score(contractor.estimated_cost, job.budget),
    }
    weighted = sum(parts[name] * w for name, w in weights.as_dict().items())
    # Half-up, so 79.5 ranks as 80.
    composite = int(math.floor(round(weighted, 6) + 0.5))
    return CandidateScore(composite=composite, **parts)
