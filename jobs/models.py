"""
Purpose: Domain models for installation jobs.
What it does:
- Job: what a seller posted (site, schedule, budget, skills, urgency) plus its
  lifecycle state (status, assignee, decline log, fee snapshot).
- Assignment: the job-contractor pairing created by a successful accept,
  with the fee breakdown frozen at acceptance and an append-only audit trail.

Defines enums:
- JobStatus = OPEN | ASSIGNED | IN_PROGRESS | COMPLETED | CANCELLED
- AssignmentStatus = ASSIGNED | IN_PROGRESS | COMPLETED | DECLINED

Rule: No matching, pricing or persistence logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple
import uuid

from pricing.models import PriceBreakdown, Urgency
from routing.geo import GeoPoint

DEFAULT_DURATION_HOURS = 8


class JobStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (AssignmentStatus.COMPLETED, AssignmentStatus.DECLINED)


class AssignmentClosedError(Exception):
    """Raised when changing the status of a completed or declined assignment."""
    pass


@dataclass(frozen=True)
class DeclineEntry:
    contractor_id: str
    at: datetime
    reason: str = ""


@dataclass(frozen=True)
class AuditEntry:
    at: datetime
    action: str
    actor_id: Optional[str] = None
    detail: str = ""


@dataclass(frozen=True)
class Job:
    id: str
    seller_id: str
    location: Optional[GeoPoint]
    requested_start: datetime
    budget: float

    title: str = ""
    job_type: str = ""
    duration_hours: float = DEFAULT_DURATION_HOURS
    # Fee the seller offers; the budget stands in when not set.
    base_fee: Optional[float] = None
    required_skills: FrozenSet[str] = frozenset()
    min_rating: Optional[float] = None
    urgency: Urgency = Urgency.NORMAL

    created_at: Optional[datetime] = None
    status: JobStatus = JobStatus.OPEN
    assigned_contractor_id: Optional[str] = None
    assignment_id: Optional[str] = None
    decline_log: Tuple[DeclineEntry, ...] = ()
    pricing_snapshot: Optional[PriceBreakdown] = None
    cancellation_reason: Optional[str] = None
    history: Tuple[AuditEntry, ...] = ()

    @property
    def effective_base_fee(self) -> float:
        return self.base_fee if self.base_fee is not None else self.budget

    def declined_by(self, contractor_id: str) -> bool:
        return any(entry.contractor_id == contractor_id for entry in self.decline_log)

    def with_history(self, action: str, at: datetime, actor_id: Optional[str] = None, detail: str = "") -> Job:
        entry = AuditEntry(at=at, action=action, actor_id=actor_id, detail=detail)
        return replace(self, history=self.history + (entry,))

    @staticmethod
    def new(
        seller_id: str,
        location: Any,
        requested_start: datetime,
        budget: float,
        job_id: Optional[str] = None,
        title: str = "",
        job_type: str = "",
        duration_hours: float = DEFAULT_DURATION_HOURS,
        base_fee: Optional[float] = None,
        required_skills: Iterable[str] = (),
        min_rating: Optional[float] = None,
        urgency: Any = Urgency.NORMAL,
        created_at: Optional[datetime] = None,
    ) -> Job:
        return Job(
            id=job_id or str(uuid.uuid4()),
            seller_id=seller_id,
            location=GeoPoint.parse(location),
            requested_start=requested_start,
            budget=budget,
            title=title,
            job_type=job_type,
            duration_hours=duration_hours,
            base_fee=base_fee,
            required_skills=frozenset(required_skills),
            min_rating=min_rating,
            urgency=Urgency.parse(urgency),
            created_at=created_at,
        )


@dataclass(frozen=True)
class Assignment:
    id: str
    job_id: str
    contractor_id: str
    status: AssignmentStatus
    fee: PriceBreakdown
    assigned_at: datetime
    audit: Tuple[AuditEntry, ...] = ()

    def with_status(self, status: AssignmentStatus, at: datetime, actor_id: Optional[str] = None, detail: str = "") -> Assignment:
        if self.status.is_terminal:
            raise AssignmentClosedError(
                f"Assignment {self.id} is {self.status.value}; only audit entries may be added"
            )
        entry = AuditEntry(at=at, action=status.value, actor_id=actor_id, detail=detail)
        return replace(self, status=status, audit=self.audit + (entry,))

    def with_audit(self, action: str, at: datetime, actor_id: Optional[str] = None, detail: str = "") -> Assignment:
        entry = AuditEntry(at=at, action=action, actor_id=actor_id, detail=detail)
        return replace(self, audit=self.audit + (entry,))

    @staticmethod
    def new(job_id: str, contractor_id: str, fee: PriceBreakdown, at: Optional[datetime] = None) -> Assignment:
        at = at or datetime.now(timezone.utc)
        return Assignment(
            id=str(uuid.uuid4()),
            job_id=job_id,
            contractor_id=contractor_id,
            status=AssignmentStatus.ASSIGNED,
            fee=fee,
            assigned_at=at,
            audit=(AuditEntry(at=at, action=AssignmentStatus.ASSIGNED.value, actor_id=contractor_id),),
        )
