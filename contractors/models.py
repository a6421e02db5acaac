"""
Purpose: Core data models for the contractors domain.
What it does:
Defines a Contractor and their status without relying on any ORM. A
Contractor is a snapshot: transitions produce a new instance via
dataclasses.replace, they never mutate one in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from routing.geo import GeoPoint
from tiers.models import Tier, TierMetrics

DEFAULT_MAX_CONCURRENT_JOBS = 5


class ContractorStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class TimeRange:
    """Half-open [start, end)."""
    start: datetime
    end: datetime

    def overlaps(self, other: TimeRange) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Contractor:
    id: str
    name: str
    tier: Tier
    location: Optional[GeoPoint]
    status: ContractorStatus = ContractorStatus.ACTIVE

    # What this contractor usually charges, and the job budgets they take.
    estimated_cost: float = 0.0
    min_cost: Optional[float] = None
    max_cost: Optional[float] = None

    available_dates: FrozenSet[date] = frozenset()
    reserved: Tuple[TimeRange, ...] = ()
    skills: FrozenSet[str] = frozenset()
    # job type -> completed jobs of that type; left out of the hash
    experience: Dict[str, int] = field(default_factory=dict, hash=False)
    metrics: TierMetrics = field(default_factory=TierMetrics)

    active_jobs_count: int = 0
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS

    @property
    def rating(self) -> float:
        return self.metrics.average_rating

    @property
    def is_active(self) -> bool:
        return self.status == ContractorStatus.ACTIVE

    @property
    def has_capacity(self) -> bool:
        return self.active_jobs_count < self.max_concurrent_jobs

    def is_available_for(self, start: datetime, duration_hours: float) -> bool:
        """
        Every date the job window touches is one of the contractor's available
        dates and the window does not overlap any reserved range.
        """
        end = start + timedelta(hours=duration_hours)
        last = (end - timedelta(microseconds=1)).date() if end > start else start.date()
        day = start.date()
        while day <= last:
            if day not in self.available_dates:
                return False
            day += timedelta(days=1)
        window = TimeRange(start, end)
        return not any(window.overlaps(r) for r in self.reserved)

    def experience_with(self, job_type: Optional[str]) -> int:
        if not job_type:
            return 0
        return self.experience.get(job_type, 0)

    @classmethod
    def new(
        cls,
        contractor_id: str,
        name: str = "",
        tier: Any = Tier.BRONZE,
        location: Any = None,
        status: Any = ContractorStatus.ACTIVE,
        estimated_cost: float = 0.0,
        min_cost: Optional[float] = None,
        max_cost: Optional[float] = None,
        available_dates: Iterable[date] = (),
        reserved: Iterable[TimeRange] = (),
        skills: Iterable[str] = (),
        experience: Optional[Dict[str, int]] = None,
        metrics: Any = None,
        active_jobs_count: int = 0,
        max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS,
    ) -> Contractor:
        if isinstance(status, str):
            status = ContractorStatus(status)
        if isinstance(metrics, dict):
            metrics = TierMetrics.from_dict(metrics)

        return cls(
            id=contractor_id,
            name=name or contractor_id,
            tier=Tier.parse(tier),
            location=GeoPoint.parse(location),
            status=status,
            estimated_cost=estimated_cost,
            min_cost=min_cost,
            max_cost=max_cost,
            available_dates=frozenset(available_dates),
            reserved=tuple(reserved),
            skills=frozenset(skills),
            experience=dict(experience or {}),
            metrics=metrics or TierMetrics(),
            active_jobs_count=active_jobs_count,
            max_concurrent_jobs=max_concurrent_jobs,
        )
