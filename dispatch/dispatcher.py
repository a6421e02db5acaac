"""
Purpose: Job lifecycle orchestrator (the "glue").
What it does:
Runs accept / decline / start / complete / cancel against a DispatchStore.
Each call reads the current snapshots, applies a pure transition from
state_machines.job_state, and commits every touched record in one
compare-and-swap. A lost race re-reads and re-validates, up to
DispatchPolicy.max_retries attempts, then reports JOB_NO_LONGER_AVAILABLE.

Guarantees that two contractors cannot accept the same job, and that a
contractor's active-job count never passes their concurrency cap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from jobs.models import Assignment, Job, JobStatus
from pricing.engine import PricingEngine

from .errors import ConcurrencyConflict
from .events import DispatchEvent, EventKind, EventSink, safe_publish
from .policy import DispatchPolicy, default_dispatch_policy
from .state_machines.job_state import (
    DispatchOutcome,
    JobStateException,
    check_acceptance,
    handle_acceptance,
    handle_cancellation,
    handle_completion,
    handle_decline,
    handle_start,
)
from .store import ABSENT, DispatchStore, RecordKind, Write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    outcome: DispatchOutcome
    job: Optional[Job] = None
    assignment: Optional[Assignment] = None
    event: Optional[DispatchEvent] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome.ok


@dataclass(frozen=True)
class AcceptanceCheck:
    allowed: bool
    outcome: DispatchOutcome
    message: str = ""


class Dispatcher:
    """
    Coordinates the lifecycle of a Job. Safe to call from many threads at
    once; all cross-request coordination goes through the store's CAS.
    """
    def __init__(
        self,
        store: DispatchStore,
        pricing: Optional[PricingEngine] = None,
        event_sink: Optional[EventSink] = None,
        policy: Optional[DispatchPolicy] = None,
    ):
        self.store = store
        self.pricing = pricing or PricingEngine()
        self.event_sink = event_sink
        self.policy = policy or default_dispatch_policy()
        self.policy.validate()

    # ----------------
    # Public transitions
    # ----------------

    def accept(self, job_id: str, contractor_id: str) -> TransitionResult:
        def attempt() -> TransitionResult:
            job_rec = self.store.get_job(job_id)
            if job_rec is None:
                return TransitionResult(DispatchOutcome.JOB_NOT_FOUND)
            contractor_rec = self.store.get_contractor(contractor_id)
            if contractor_rec is None:
                return TransitionResult(DispatchOutcome.CONTRACTOR_NOT_FOUND, job_rec.value)

            job, contractor = job_rec.value, contractor_rec.value
            now = self.store.now()
            try:
                check_acceptance(job, contractor)
                # Price is frozen at the moment of acceptance.
                fee = self.pricing.price(job, contractor.tier, now=now)
                new_job, new_contractor, assignment = handle_acceptance(job, contractor, fee, now)
            except JobStateException as exc:
                return TransitionResult(exc.outcome, job, message=str(exc))

            self.store.compare_and_swap([
                Write(RecordKind.JOB, job.id, job_rec.version, new_job),
                Write(RecordKind.CONTRACTOR, contractor.id, contractor_rec.version, new_contractor),
                Write(RecordKind.ASSIGNMENT, assignment.id, ABSENT, assignment),
            ])

            event = DispatchEvent(
                kind=EventKind.JOB_ASSIGNED,
                job_id=job.id,
                at=now,
                contractor_id=contractor.id,
                seller_id=job.seller_id,
                detail={"assignment_id": assignment.id, "total_fee": str(fee.total_fee)},
            )
            return TransitionResult(DispatchOutcome.ACCEPTED, new_job, assignment, event)

        return self._run("accept", job_id, contractor_id, attempt)

    def decline(self, job_id: str, contractor_id: str, reason: str = "") -> TransitionResult:
        def attempt() -> TransitionResult:
            job_rec = self.store.get_job(job_id)
            if job_rec is None:
                return TransitionResult(DispatchOutcome.JOB_NOT_FOUND)
            contractor_rec = self.store.get_contractor(contractor_id)
            if contractor_rec is None:
                return TransitionResult(DispatchOutcome.CONTRACTOR_NOT_FOUND, job_rec.value)

            job = job_rec.value
            assignment_rec = self.store.get_assignment(job.assignment_id) if job.assignment_id else None
            now = self.store.now()
            try:
                new_job, new_contractor, new_assignment = handle_decline(
                    job,
                    contractor_rec.value,
                    assignment_rec.value if assignment_rec else None,
                    reason,
                    now,
                )
            except JobStateException as exc:
                return TransitionResult(exc.outcome, job, message=str(exc))

            writes = [Write(RecordKind.JOB, job.id, job_rec.version, new_job)]
            if new_contractor is not None:
                writes.append(Write(RecordKind.CONTRACTOR, contractor_id, contractor_rec.version, new_contractor))
            if new_assignment is not None:
                writes.append(Write(RecordKind.ASSIGNMENT, new_assignment.id, assignment_rec.version, new_assignment))
            self.store.compare_and_swap(writes)

            event = DispatchEvent(
                kind=EventKind.JOB_DECLINED,
                job_id=job.id,
                at=now,
                contractor_id=contractor_id,
                seller_id=job.seller_id,
                detail={"reason": reason, "reopened": str(new_contractor is not None).lower()},
            )
            return TransitionResult(DispatchOutcome.DECLINED, new_job, new_assignment, event)

        return self._run("decline", job_id, contractor_id, attempt)

    def start(self, job_id: str, contractor_id: str) -> TransitionResult:
        def attempt() -> TransitionResult:
            job_rec = self.store.get_job(job_id)
            if job_rec is None:
                return TransitionResult(DispatchOutcome.JOB_NOT_FOUND)

            job = job_rec.value
            assignment_rec = self.store.get_assignment(job.assignment_id) if job.assignment_id else None
            now = self.store.now()
            try:
                new_job, new_assignment = handle_start(
                    job, contractor_id, assignment_rec.value if assignment_rec else None, now
                )
            except JobStateException as exc:
                return TransitionResult(exc.outcome, job, message=str(exc))

            writes = [Write(RecordKind.JOB, job.id, job_rec.version, new_job)]
            if new_assignment is not None:
                writes.append(Write(RecordKind.ASSIGNMENT, new_assignment.id, assignment_rec.version, new_assignment))
            self.store.compare_and_swap(writes)

            event = DispatchEvent(EventKind.JOB_STARTED, job.id, now, contractor_id, job.seller_id)
            return TransitionResult(DispatchOutcome.STARTED, new_job, new_assignment, event)

        return self._run("start", job_id, contractor_id, attempt)

    def complete(self, job_id: str, contractor_id: str) -> TransitionResult:
        def attempt() -> TransitionResult:
            job_rec = self.store.get_job(job_id)
            if job_rec is None:
                return TransitionResult(DispatchOutcome.JOB_NOT_FOUND)
            contractor_rec = self.store.get_contractor(contractor_id)
            if contractor_rec is None:
                return TransitionResult(DispatchOutcome.CONTRACTOR_NOT_FOUND, job_rec.value)

            job = job_rec.value
            assignment_rec = self.store.get_assignment(job.assignment_id) if job.assignment_id else None
            now = self.store.now()
            try:
                new_job, new_contractor, new_assignment = handle_completion(
                    job, contractor_rec.value, assignment_rec.value if assignment_rec else None, now
                )
            except JobStateException as exc:
                return TransitionResult(exc.outcome, job, message=str(exc))

            writes = [
                Write(RecordKind.JOB, job.id, job_rec.version, new_job),
                Write(RecordKind.CONTRACTOR, contractor_id, contractor_rec.version, new_contractor),
            ]
            if new_assignment is not None:
                writes.append(Write(RecordKind.ASSIGNMENT, new_assignment.id, assignment_rec.version, new_assignment))
            self.store.compare_and_swap(writes)

            event = DispatchEvent(EventKind.JOB_COMPLETED, job.id, now, contractor_id, job.seller_id)
            return TransitionResult(DispatchOutcome.COMPLETED, new_job, new_assignment, event)

        return self._run("complete", job_id, contractor_id, attempt)

    def cancel(self, job_id: str, reason: str = "", actor_id: Optional[str] = None) -> TransitionResult:
        def attempt() -> TransitionResult:
            job_rec = self.store.get_job(job_id)
            if job_rec is None:
                return TransitionResult(DispatchOutcome.JOB_NOT_FOUND)

            job = job_rec.value
            now = self.store.now()
            try:
                new_job = handle_cancellation(job, reason, now, actor_id)
            except JobStateException as exc:
                return TransitionResult(exc.outcome, job, message=str(exc))

            self.store.compare_and_swap([Write(RecordKind.JOB, job.id, job_rec.version, new_job)])

            event = DispatchEvent(
                EventKind.JOB_CANCELLED, job.id, now, actor_id, job.seller_id, detail={"reason": reason}
            )
            return TransitionResult(DispatchOutcome.CANCELLED, new_job, None, event)

        return self._run("cancel", job_id, actor_id, attempt)

    def can_accept(self, job_id: str, contractor_id: str) -> AcceptanceCheck:
        """
        Read-only preview of accept(). A True answer can still lose a race.
        """
        job_rec = self.store.get_job(job_id)
        if job_rec is None:
            return AcceptanceCheck(False, DispatchOutcome.JOB_NOT_FOUND)
        contractor_rec = self.store.get_contractor(contractor_id)
        if contractor_rec is None:
            return AcceptanceCheck(False, DispatchOutcome.CONTRACTOR_NOT_FOUND)
        try:
            check_acceptance(job_rec.value, contractor_rec.value)
        except JobStateException as exc:
            return AcceptanceCheck(False, exc.outcome, str(exc))
        return AcceptanceCheck(True, DispatchOutcome.ACCEPTED)

    def open_jobs(self) -> List[Job]:
        return self.store.find_jobs(status=JobStatus.OPEN)

    # ---- Internal helpers ----

    def _run(
        self,
        action: str,
        job_id: str,
        actor_id: Optional[str],
        attempt: Callable[[], TransitionResult],
    ) -> TransitionResult:
        for n in range(1, self.policy.max_retries + 1):
            try:
                result = attempt()
            except ConcurrencyConflict as exc:
                logger.warning("%s on job %s by %s lost a race (attempt %d/%d): %s",
                               action, job_id, actor_id, n, self.policy.max_retries, exc)
                continue

            if result.ok:
                logger.info("%s job %s by %s -> %s", action, job_id, actor_id, result.outcome.value)
                safe_publish(self.event_sink, result.event)
            else:
                logger.info("%s job %s by %s rejected: %s", action, job_id, actor_id, result.outcome.value)
            return result

        logger.warning("%s on job %s by %s gave up after %d attempts",
                       action, job_id, actor_id, self.policy.max_retries)
        latest = self.store.get_job(job_id)
        return TransitionResult(
            DispatchOutcome.JOB_NO_LONGER_AVAILABLE,
            latest.value if latest else None,
            message=f"gave up after {self.policy.max_retries} conflicting attempts",
        )
