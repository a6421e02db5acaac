#Purpose: Hard eligibility filtering (rule gates).
#Builds the base candidate set before scoring.
#Gates, in order:
#active (not inactive / suspended)
#available on the requested date, no overlap with reserved time
#job budget inside the contractor's cost bounds
#within max distance (unknown location fails when a max is set)
#rating at least the stricter of the request and job minimums
#has every required skill
#has done this job type before (only when require_experience)

#Output: "rule-qualified contractors" (still not ranked), plus why the rest were dropped.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from contractors.models import Contractor, ContractorStatus
from jobs.models import Job
from routing.geo import GeoPoint, distance_m

from .policy import MatchOptions

DistanceFn = Callable[[Optional[GeoPoint], Optional[GeoPoint]], Optional[float]]


class RejectionReason(str, Enum):
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    UNAVAILABLE = "unavailable"
    OUT_OF_BUDGET = "out_of_budget"
    UNKNOWN_LOCATION = "unknown_location"
    TOO_FAR = "too_far"
    LOW_RATING = "low_rating"
    MISSING_SKILLS = "missing_skills"
    NO_EXPERIENCE = "no_experience"


@dataclass(frozen=True)
class Rejection:
    contractor_id: str
    reason: RejectionReason
    detail: str = ""


@dataclass(frozen=True)
class EligibleCandidate:
    contractor: Contractor
    # None when either location is unknown.
    distance_km: Optional[float]


@dataclass(frozen=True)
class FilterResult:
    eligible: List[EligibleCandidate] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)


def build_base_candidates(
    contractors: Sequence[Contractor],
    job: Job,
    options: MatchOptions,
    distance_fn: DistanceFn = distance_m,
) -> FilterResult:
    """
    Applies every gate to every contractor. Input order is preserved in `eligible`.
    """
    result = FilterResult()
    for contractor in contractors:
        meters = distance_fn(contractor.location, job.location)
        distance_km = None if meters is None else meters / 1000.0

        rejection = _first_failed_gate(contractor, job, options, distance_km)
        if rejection is None:
            result.eligible.append(EligibleCandidate(contractor, distance_km))
        else:
            result.rejections.append(rejection)
    return result


def required_rating(job: Job, options: MatchOptions) -> float:
    return max(options.min_rating, job.min_rating or 0.0)


# ---- Internal helpers ----

def _first_failed_gate(
    contractor: Contractor,
    job: Job,
    options: MatchOptions,
    distance_km: Optional[float],
) -> Optional[Rejection]:
    cid = contractor.id

    if contractor.status == ContractorStatus.SUSPENDED:
        return Rejection(cid, RejectionReason.SUSPENDED)
    if contractor.status != ContractorStatus.ACTIVE:
        return Rejection(cid, RejectionReason.INACTIVE)

    if not contractor.is_available_for(job.requested_start, job.duration_hours):
        return Rejection(cid, RejectionReason.UNAVAILABLE, job.requested_start.isoformat())

    if contractor.min_cost is not None and job.budget < contractor.min_cost:
        return Rejection(cid, RejectionReason.OUT_OF_BUDGET, f"budget below minimum {contractor.min_cost}")
    if contractor.max_cost is not None and job.budget > contractor.max_cost:
        return Rejection(cid, RejectionReason.OUT_OF_BUDGET, f"budget above maximum {contractor.max_cost}")

    if options.max_distance_km is not None:
        if distance_km is None:
            return Rejection(cid, RejectionReason.UNKNOWN_LOCATION)
        if distance_km > options.max_distance_km:
            return Rejection(cid, RejectionReason.TOO_FAR, f"{distance_km:.1f} km")

    minimum = required_rating(job, options)
    if contractor.rating < minimum:
        return Rejection(cid, RejectionReason.LOW_RATING, f"{contractor.rating} < {minimum}")

    missing = job.required_skills - contractor.skills
    if missing:
        return Rejection(cid, RejectionReason.MISSING_SKILLS, ", ".join(sorted(missing)))

    if options.require_experience and contractor.experience_with(job.job_type) <= 0:
        return Rejection(cid, RejectionReason.NO_EXPERIENCE, job.job_type)

    return None
