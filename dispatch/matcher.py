"""
Purpose: Contractor matching for a posted job.
What it does:
Filters contractors through the hard gates, scores the survivors, orders
them by the requested priority, truncates to max_candidates, and optionally
hands the top candidate to the Dispatcher.

Pure apart from the optional auto-assign hand-off: the same inputs always
produce the same ranking, and ties keep input order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from contractors.models import Contractor
from jobs.models import Job
from pricing.engine import PricingEngine
from pricing.models import PriceBreakdown
from routing.geo import distance_m
from tiers.models import Tier
from tiers.policy import TierProfile, default_tier_profile

from .candidate_filter import DistanceFn, Rejection, build_base_candidates
from .dispatcher import TransitionResult
from .errors import MatchConfigError
from .policy import PRIORITY_WEIGHTS, MatchOptions, Priority, default_match_options
from .scoring import CandidateScore, score_candidate

logger = logging.getLogger(__name__)


class MatchOutcome(str, Enum):
    MATCHED = "matched"
    NO_ELIGIBLE_CONTRACTOR = "no_eligible_contractor"


@dataclass(frozen=True)
class RankedCandidate:
    contractor: Contractor
    distance_km: Optional[float]
    score: CandidateScore
    quote: Optional[PriceBreakdown] = None


@dataclass(frozen=True)
class MatchStats:
    eligible: int
    rejected: int
    by_tier: Dict[Tier, int]
    average_rating: Optional[float]
    average_distance_km: Optional[float]
    average_cost: Optional[float]
    top_tier: Optional[Tier]


@dataclass(frozen=True)
class MatchResult:
    outcome: MatchOutcome
    candidates: List[RankedCandidate]
    stats: MatchStats
    rejections: List[Rejection] = field(default_factory=list)
    # Set only when auto_assign handed the top candidate to the dispatcher.
    assignment: Optional[TransitionResult] = None

    @property
    def top(self) -> Optional[RankedCandidate]:
        return self.candidates[0] if self.candidates else None


# Sort keys per priority. Unknown distance sorts after every known one.
SORT_KEYS: Dict[Priority, Callable[[RankedCandidate], tuple]] = {
    Priority.GRADE: lambda c: (-int(c.contractor.tier),),
    Priority.DISTANCE: lambda c: (c.distance_km is None, c.distance_km if c.distance_km is not None else 0.0),
    Priority.RATING: lambda c: (-c.contractor.rating,),
    Priority.COMPOSITE: lambda c: (-c.score.composite,),
}


def match(
    contractors: Sequence[Contractor],
    job: Job,
    options: Optional[MatchOptions] = None,
    *,
    pricing: Optional[PricingEngine] = None,
    dispatcher=None,
    tier_profile: Optional[TierProfile] = None,
    distance_fn: DistanceFn = distance_m,
    now: Optional[datetime] = None,
) -> MatchResult:
    options = options or default_match_options()
    options.validate()
    priority = Priority.parse(options.priority)
    if options.auto_assign and dispatcher is None:
        raise MatchConfigError("auto_assign requires a dispatcher")
    if pricing is not None and now is None:
        # Quotes are timed by the store clock, never the caller's wall clock.
        if dispatcher is None:
            raise MatchConfigError("pricing requires `now` or a dispatcher")
        now = dispatcher.store.now()

    profile = tier_profile or (pricing.tier_profile if pricing else None) or default_tier_profile()
    weights = PRIORITY_WEIGHTS[priority]

    filtered = build_base_candidates(contractors, job, options, distance_fn)

    ranked = []
    for candidate in filtered.eligible:
        quote = None
        if pricing is not None:
            quote = pricing.price(job, candidate.contractor.tier, now=now)
        ranked.append(RankedCandidate(
            contractor=candidate.contractor,
            distance_km=candidate.distance_km,
            score=score_candidate(candidate.contractor, candidate.distance_km, job, weights, profile),
            quote=quote,
        ))

    # sorted() is stable: ties keep input order.
    ranked = sorted(ranked, key=SORT_KEYS[priority])[:options.max_candidates]
    stats = _stats(ranked, len(filtered.eligible), len(filtered.rejections))

    if not ranked:
        logger.info("No eligible contractor for job %s (%d rejected)", job.id, len(filtered.rejections))
        return MatchResult(MatchOutcome.NO_ELIGIBLE_CONTRACTOR, [], stats, filtered.rejections)

    logger.info("Matched %d contractors for job %s by %s", len(ranked), job.id, priority.value)

    assignment = None
    if options.auto_assign:
        assignment = dispatcher.accept(job.id, ranked[0].contractor.id)

    return MatchResult(MatchOutcome.MATCHED, ranked, stats, filtered.rejections, assignment)


# ---- Internal helpers ----

def _stats(ranked: List[RankedCandidate], eligible: int, rejected: int) -> MatchStats:
    by_tier = {t: 0 for t in Tier}
    for c in ranked:
        by_tier[c.contractor.tier] += 1

    def avg(values: List[float]) -> Optional[float]:
        return sum(values) / len(values) if values else None

    return MatchStats(
        eligible=eligible,
        rejected=rejected,
        by_tier=by_tier,
        average_rating=avg([c.contractor.rating for c in ranked]),
        average_distance_km=avg([c.distance_km for c in ranked if c.distance_km is not None]),
        average_cost=avg([c.contractor.estimated_cost for c in ranked]),
        top_tier=max((c.contractor.tier for c in ranked), default=None),
    )
