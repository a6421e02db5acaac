"""
Purpose: Tier computation and analysis.
What it does:
Clamps raw metrics to their documented ranges, maps them to a Tier, computes
the 0-100 weighted performance score, and explains what a contractor needs
to reach the next tier.

Pure functions only. Malformed metrics never raise: they fall back to the
metric's default and are clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import Tier, TierMetrics
from .policy import TierCriteria, TierProfile, default_tier_profile

# (low, high) inclusive clamp ranges per metric.
METRIC_BOUNDS: Dict[str, Tuple[float, float]] = {
    "completed_jobs": (0, 1000),
    "average_rating": (0, 5),
    "photo_quality": (0, 10),
    "response_minutes": (1, 480),
    "on_time_rate": (0, 100),
    "satisfaction_rate": (0, 100),
}

# Weights of the 0-100 performance score. satisfaction_rate is not scored.
SCORE_WEIGHTS: Dict[str, float] = {
    "completed_jobs": 0.25,
    "average_rating": 0.30,
    "photo_quality": 0.20,
    "response_minutes": 0.15,
    "on_time_rate": 0.10,
}


@dataclass(frozen=True)
class TierAnalysis:
    tier: Tier
    next_tier: Optional[Tier]
    # Metric name -> how far the contractor is from the next tier. Never negative.
    # For response_minutes this is the number of minutes to shave off.
    gaps: Dict[str, float]
    strengths: List[str]
    weaknesses: List[str]
    weighted_score: float


@dataclass(frozen=True)
class UpgradeProjection:
    tier: Tier
    next_tier: Optional[Tier]
    projected_tier: Tier
    can_upgrade: bool
    gaps: Dict[str, float] = field(default_factory=dict)
    # None when no monthly improvement rates were supplied for an open gap.
    estimated_months: Optional[int] = None


@dataclass(frozen=True)
class TierStatistics:
    total: int
    by_tier: Dict[Tier, int]
    average_rating: Optional[float]
    average_photo_quality: Optional[float]
    average_completed_jobs: Optional[float]
    # Contractor ids, best weighted score first.
    top_performers: List[str]


def clamp_metrics(metrics: Any) -> TierMetrics:
    """
    Coerces every metric to a number inside its bounds.
    Accepts a TierMetrics or a mapping; missing or malformed values use the default.
    """
    if isinstance(metrics, Mapping):
        metrics = TierMetrics.from_dict(dict(metrics))
    elif not isinstance(metrics, TierMetrics):
        metrics = TierMetrics()

    defaults = TierMetrics()
    values = {}
    for f in fields(TierMetrics):
        low, high = METRIC_BOUNDS[f.name]
        value = _safe_number(getattr(metrics, f.name), getattr(defaults, f.name))
        values[f.name] = min(high, max(low, value))
    values["completed_jobs"] = int(values["completed_jobs"])
    return TierMetrics(**values)


def meets(metrics: TierMetrics, criteria: TierCriteria) -> bool:
    return (
        metrics.completed_jobs >= criteria.min_completed_jobs
        and metrics.average_rating >= criteria.min_rating
        and metrics.photo_quality >= criteria.min_photo_quality
        and metrics.response_minutes <= criteria.max_response_minutes
        and metrics.on_time_rate >= criteria.min_on_time_rate
        and metrics.satisfaction_rate >= criteria.min_satisfaction_rate
    )


def determine_tier(metrics: Any, profile: Optional[TierProfile] = None) -> Tier:
    """
    Strictest tier first; the first tier whose thresholds are all met wins.
    Falls back to the lowest tier.
    """
    profile = profile or default_tier_profile()
    m = clamp_metrics(metrics)
    for criteria in reversed(profile.criteria):
        if meets(m, criteria):
            return criteria.tier
    return profile.criteria[0].tier


def weighted_score(metrics: Any) -> float:
    """
    0-100 performance score, rounded to 2 decimals.
    """
    m = clamp_metrics(metrics)
    parts = {
        "completed_jobs": min(100.0, float(m.completed_jobs)),
        "average_rating": m.average_rating / 5 * 100,
        "photo_quality": m.photo_quality / 10 * 100,
        "response_minutes": max(0.0, 100 - m.response_minutes / 2),
        "on_time_rate": m.on_time_rate,
    }
    score = sum(parts[k] * w for k, w in SCORE_WEIGHTS.items())
    return round(score, 2)


def analyze(metrics: Any, profile: Optional[TierProfile] = None) -> TierAnalysis:
    profile = profile or default_tier_profile()
    m = clamp_metrics(metrics)
    tier = determine_tier(m, profile)
    next_tier = _next_tier(tier, profile)

    gaps: Dict[str, float] = {}
    if next_tier is not None:
        gaps = _gaps(m, profile.for_tier(next_tier))

    return TierAnalysis(
        tier=tier,
        next_tier=next_tier,
        gaps=gaps,
        strengths=_strengths(m),
        weaknesses=_weaknesses(m),
        weighted_score=weighted_score(m),
    )


def project_upgrade(
    metrics: Any,
    improvements: Optional[Mapping[str, float]] = None,
    monthly_rates: Optional[Mapping[str, float]] = None,
    profile: Optional[TierProfile] = None,
) -> UpgradeProjection:
    """
    Applies projected metric improvements and reports whether the next tier
    becomes reachable.

    improvements: metric name -> expected change. For response_minutes a positive
    value means minutes saved.
    monthly_rates: metric name -> improvement per month; when given, estimated_months
    is the slowest metric's ceil(gap / rate).
    """
    profile = profile or default_tier_profile()
    m = clamp_metrics(metrics)
    analysis = analyze(m, profile)

    if analysis.next_tier is None:
        return UpgradeProjection(
            tier=analysis.tier,
            next_tier=None,
            projected_tier=analysis.tier,
            can_upgrade=False,
        )

    improvements = improvements or {}
    changes = {}
    for name, delta in improvements.items():
        if name not in METRIC_BOUNDS:
            continue
        delta = _safe_number(delta, 0.0)
        if name == "response_minutes":
            delta = -delta
        changes[name] = getattr(m, name) + delta
    projected = clamp_metrics(replace(m, **changes))
    projected_tier = determine_tier(projected, profile)

    return UpgradeProjection(
        tier=analysis.tier,
        next_tier=analysis.next_tier,
        projected_tier=projected_tier,
        can_upgrade=projected_tier >= analysis.next_tier,
        gaps=analysis.gaps,
        estimated_months=_estimated_months(analysis.gaps, monthly_rates),
    )


def tier_distribution(metrics_list: List[Any], profile: Optional[TierProfile] = None) -> Dict[Tier, int]:
    profile = profile or default_tier_profile()
    counts = {t: 0 for t in Tier}
    for metrics in metrics_list:
        counts[determine_tier(metrics, profile)] += 1
    return counts


def tier_statistics(
    metrics_by_contractor: Mapping[str, Any],
    top_n: int = 10,
    profile: Optional[TierProfile] = None,
) -> TierStatistics:
    profile = profile or default_tier_profile()
    clamped = {cid: clamp_metrics(m) for cid, m in metrics_by_contractor.items()}
    values = list(clamped.values())

    def avg(attr: str) -> Optional[float]:
        if not values:
            return None
        return sum(getattr(v, attr) for v in values) / len(values)

    # sorted() is stable, so equal scores keep insertion order.
    ranked = sorted(clamped.items(), key=lambda item: weighted_score(item[1]), reverse=True)

    return TierStatistics(
        total=len(values),
        by_tier=tier_distribution(values, profile),
        average_rating=avg("average_rating"),
        average_photo_quality=avg("photo_quality"),
        average_completed_jobs=avg("completed_jobs"),
        top_performers=[cid for cid, _ in ranked[:top_n]],
    )


# ---- Internal helpers ----

def _safe_number(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _next_tier(tier: Tier, profile: TierProfile) -> Optional[Tier]:
    higher = [c.tier for c in profile.criteria if c.tier > tier]
    return min(higher) if higher else None


def _gaps(m: TierMetrics, target: TierCriteria) -> Dict[str, float]:
    return {
        "completed_jobs": max(0, target.min_completed_jobs - m.completed_jobs),
        "average_rating": round(max(0.0, target.min_rating - m.average_rating), 2),
        "photo_quality": round(max(0.0, target.min_photo_quality - m.photo_quality), 2),
        "response_minutes": round(max(0.0, m.response_minutes - target.max_response_minutes), 2),
        "on_time_rate": round(max(0.0, target.min_on_time_rate - m.on_time_rate), 2),
        "satisfaction_rate": round(max(0.0, target.min_satisfaction_rate - m.satisfaction_rate), 2),
    }


def _strengths(m: TierMetrics) -> List[str]:
    out = []
    if m.average_rating >= 4.5:
        out.append("average_rating")
    if m.photo_quality >= 4.5:
        out.append("photo_quality")
    if m.response_minutes <= 30:
        out.append("response_minutes")
    if m.on_time_rate >= 95:
        out.append("on_time_rate")
    if m.completed_jobs >= 50:
        out.append("completed_jobs")
    return out


def _weaknesses(m: TierMetrics) -> List[str]:
    out = []
    if m.average_rating < 4.0:
        out.append("average_rating")
    if m.photo_quality < 4.0:
        out.append("photo_quality")
    if m.response_minutes > 60:
        out.append("response_minutes")
    if m.on_time_rate < 80:
        out.append("on_time_rate")
    if m.completed_jobs < 25:
        out.append("completed_jobs")
    return out


def _estimated_months(gaps: Dict[str, float], monthly_rates: Optional[Mapping[str, float]]) -> Optional[int]:
    if not monthly_rates:
        return None
    estimates = []
    for name, gap in gaps.items():
        rate = _safe_number(monthly_rates.get(name), 0.0)
        if gap > 0 and rate > 0:
            estimates.append(math.ceil(gap / rate))
    return max(estimates) if estimates else None
