"""
Purpose: Pure job lifecycle transitions.
What it does:
open -> assigned -> in_progress -> completed, plus open -> cancelled and
assigned -> open when the assignee declines.

Each handler takes the current snapshots and returns the new ones; it never
touches storage. An illegal transition raises JobStateException carrying
the DispatchOutcome the caller should report.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from contractors.models import Contractor
from jobs.models import Assignment, AssignmentStatus, DeclineEntry, Job, JobStatus
from pricing.models import PriceBreakdown


class DispatchOutcome(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    JOB_NOT_FOUND = "job_not_found"
    CONTRACTOR_NOT_FOUND = "contractor_not_found"
    CONTRACTOR_INACTIVE = "contractor_inactive"
    JOB_NO_LONGER_AVAILABLE = "job_no_longer_available"
    AT_CAPACITY = "at_capacity"
    ALREADY_ACCEPTED = "already_accepted"
    ALREADY_DECLINED = "already_declined"
    NOT_ASSIGNED_CONTRACTOR = "not_assigned_contractor"
    INVALID_TRANSITION = "invalid_transition"

    @property
    def ok(self) -> bool:
        return self in _SUCCESS


_SUCCESS = {
    DispatchOutcome.ACCEPTED,
    DispatchOutcome.DECLINED,
    DispatchOutcome.STARTED,
    DispatchOutcome.COMPLETED,
    DispatchOutcome.CANCELLED,
}


class JobStateException(Exception):
    """Raised when a transition is not allowed from the current snapshot."""
    def __init__(self, outcome: DispatchOutcome, message: str = ""):
        super().__init__(message or outcome.value)
        self.outcome = outcome


def check_acceptance(job: Job, contractor: Contractor) -> None:
    """
    Raises JobStateException if `contractor` cannot take `job` right now.
    """
    if job.status != JobStatus.OPEN:
        if job.assigned_contractor_id == contractor.id:
            raise JobStateException(DispatchOutcome.ALREADY_ACCEPTED)
        raise JobStateException(DispatchOutcome.JOB_NO_LONGER_AVAILABLE, f"job is {job.status.value}")

    if job.declined_by(contractor.id):
        raise JobStateException(DispatchOutcome.ALREADY_DECLINED)

    if not contractor.is_active:
        raise JobStateException(DispatchOutcome.CONTRACTOR_INACTIVE, f"contractor is {contractor.status.value}")

    if not contractor.has_capacity:
        raise JobStateException(
            DispatchOutcome.AT_CAPACITY,
            f"{contractor.active_jobs_count}/{contractor.max_concurrent_jobs} active jobs",
        )


def handle_acceptance(
    job: Job,
    contractor: Contractor,
    fee: PriceBreakdown,
    at: datetime,
) -> Tuple[Job, Contractor, Assignment]:
    check_acceptance(job, contractor)

    assignment = Assignment.new(job.id, contractor.id, fee, at=at)
    new_job = replace(
        job,
        status=JobStatus.ASSIGNED,
        assigned_contractor_id=contractor.id,
        assignment_id=assignment.id,
        pricing_snapshot=fee,
    ).with_history(JobStatus.ASSIGNED.value, at, contractor.id)
    new_contractor = replace(contractor, active_jobs_count=contractor.active_jobs_count + 1)
    return new_job, new_contractor, assignment


def handle_decline(
    job: Job,
    contractor: Contractor,
    assignment: Optional[Assignment],
    reason: str,
    at: datetime,
) -> Tuple[Job, Optional[Contractor], Optional[Assignment]]:
    """
    On an open job: logs the decline, the job stays open.
    By the assignee of an assigned job: the job reopens, the contractor frees
    a slot and the assignment closes as declined.
    Returns (job, contractor or None if unchanged, assignment or None if unchanged).
    """
    entry = DeclineEntry(contractor_id=contractor.id, at=at, reason=reason)

    if job.status == JobStatus.OPEN:
        if job.declined_by(contractor.id):
            raise JobStateException(DispatchOutcome.ALREADY_DECLINED)
        new_job = replace(job, decline_log=job.decline_log + (entry,))
        return new_job.with_history("declined", at, contractor.id, reason), None, None

    if job.status == JobStatus.ASSIGNED:
        _require_assignee(job, contractor.id)
        new_job = replace(
            job,
            status=JobStatus.OPEN,
            assigned_contractor_id=None,
            assignment_id=None,
            pricing_snapshot=None,
            decline_log=job.decline_log + (entry,),
        ).with_history("declined", at, contractor.id, reason)
        new_contractor = replace(contractor, active_jobs_count=max(0, contractor.active_jobs_count - 1))
        new_assignment = None
        if assignment is not None:
            new_assignment = assignment.with_status(AssignmentStatus.DECLINED, at, contractor.id, reason)
        return new_job, new_contractor, new_assignment

    raise JobStateException(DispatchOutcome.INVALID_TRANSITION, f"cannot decline a {job.status.value} job")


def handle_start(
    job: Job,
    contractor_id: str,
    assignment: Optional[Assignment],
    at: datetime,
) -> Tuple[Job, Optional[Assignment]]:
    if job.status != JobStatus.ASSIGNED:
        raise JobStateException(DispatchOutcome.INVALID_TRANSITION, f"cannot start a {job.status.value} job")
    _require_assignee(job, contractor_id)

    new_job = replace(job, status=JobStatus.IN_PROGRESS).with_history(JobStatus.IN_PROGRESS.value, at, contractor_id)
    new_assignment = None
    if assignment is not None:
        new_assignment = assignment.with_status(AssignmentStatus.IN_PROGRESS, at, contractor_id)
    return new_job, new_assignment


def handle_completion(
    job: Job,
    contractor: Contractor,
    assignment: Optional[Assignment],
    at: datetime,
) -> Tuple[Job, Contractor, Optional[Assignment]]:
    if job.status != JobStatus.IN_PROGRESS:
        raise JobStateException(DispatchOutcome.INVALID_TRANSITION, f"cannot complete a {job.status.value} job")
    _require_assignee(job, contractor.id)

    new_job = replace(job, status=JobStatus.COMPLETED).with_history(JobStatus.COMPLETED.value, at, contractor.id)

    experience = dict(contractor.experience)
    if job.job_type:
        experience[job.job_type] = experience.get(job.job_type, 0) + 1
    new_contractor = replace(
        contractor,
        active_jobs_count=max(0, contractor.active_jobs_count - 1),
        metrics=replace(contractor.metrics, completed_jobs=contractor.metrics.completed_jobs + 1),
        experience=experience,
    )

    new_assignment = None
    if assignment is not None:
        new_assignment = assignment.with_status(AssignmentStatus.COMPLETED, at, contractor.id)
    return new_job, new_contractor, new_assignment


def handle_cancellation(job: Job, reason: str, at: datetime, actor_id: Optional[str] = None) -> Job:
    if job.status != JobStatus.OPEN:
        raise JobStateException(DispatchOutcome.INVALID_TRANSITION, f"cannot cancel a {job.status.value} job")
    return replace(
        job,
        status=JobStatus.CANCELLED,
        cancellation_reason=reason,
    ).with_history(JobStatus.CANCELLED.value, at, actor_id, reason)


# ---- Internal helpers ----

def _require_assignee(job: Job, contractor_id: str) -> None:
    if job.assigned_contractor_id != contractor_id:
        raise JobStateException(DispatchOutcome.NOT_ASSIGNED_CONTRACTOR)
