"""
Purpose: Persistence collaborator for the job lifecycle.
What it does:
Defines the interface the dispatcher needs from storage (point reads,
equality/range queries, a server clock, and one atomic multi-record
compare-and-swap), and an in-memory implementation for tests and simulations.

Every record carries a version. A write names the version it read; if any
stored version moved in the meantime the whole write is rejected with
ConcurrencyConflict and nothing is applied.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from contractors.models import Contractor
from jobs.models import Assignment, Job, JobStatus

from .errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Version of a record that does not exist yet.
ABSENT = 0


class RecordKind(str, Enum):
    JOB = "job"
    CONTRACTOR = "contractor"
    ASSIGNMENT = "assignment"


@dataclass(frozen=True)
class Versioned(Generic[T]):
    value: T
    version: int


@dataclass(frozen=True)
class Write:
    kind: RecordKind
    key: str
    expected_version: int
    value: Any


class DispatchStore(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Server-side clock. Every lifecycle timestamp comes from here."""

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Versioned[Job]]:
        ...

    @abstractmethod
    def get_contractor(self, contractor_id: str) -> Optional[Versioned[Contractor]]:
        ...

    @abstractmethod
    def get_assignment(self, assignment_id: str) -> Optional[Versioned[Assignment]]:
        ...

    @abstractmethod
    def find_jobs(
        self,
        status: Optional[JobStatus] = None,
        seller_id: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> List[Job]:
        """Equality filters on status/seller, half-open [from, to) range on created_at."""

    @abstractmethod
    def list_contractors(self) -> List[Contractor]:
        ...

    @abstractmethod
    def compare_and_swap(self, writes: Sequence[Write]) -> None:
        """
        Applies all writes atomically or none of them.
        Raises ConcurrencyConflict if any record's version differs from expected_version.
        """

    # ---- Convenience inserts ----

    def add_contractor(self, contractor: Contractor) -> None:
        self.compare_and_swap([Write(RecordKind.CONTRACTOR, contractor.id, ABSENT, contractor)])

    def add_job(self, job: Job) -> Job:
        """
        Inserts a job, stamping created_at from the server clock when missing.
        """
        if job.created_at is None:
            job = replace(job, created_at=self.now())
        self.compare_and_swap([Write(RecordKind.JOB, job.id, ABSENT, job)])
        return job


class InMemoryDispatchStore(DispatchStore):
    """
    Thread-safe dict-backed store. One lock guards every table, so a
    compare_and_swap spanning several records is atomic.
    """
    def __init__(self, clock=None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._tables = {kind: {} for kind in RecordKind}  # type: Dict[RecordKind, Dict[str, Tuple[Any, int]]]

    def now(self) -> datetime:
        return self._clock()

    def get_job(self, job_id: str) -> Optional[Versioned[Job]]:
        return self._get(RecordKind.JOB, job_id)

    def get_contractor(self, contractor_id: str) -> Optional[Versioned[Contractor]]:
        return self._get(RecordKind.CONTRACTOR, contractor_id)

    def get_assignment(self, assignment_id: str) -> Optional[Versioned[Assignment]]:
        return self._get(RecordKind.ASSIGNMENT, assignment_id)

    def find_jobs(
        self,
        status: Optional[JobStatus] = None,
        seller_id: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> List[Job]:
        with self._lock:
            jobs = [value for value, _ in self._tables[RecordKind.JOB].values()]

        out = []
        for job in jobs:
            if status is not None and job.status != status:
                continue
            if seller_id is not None and job.seller_id != seller_id:
                continue
            if created_from is not None and (job.created_at is None or job.created_at < created_from):
                continue
            if created_to is not None and (job.created_at is None or job.created_at >= created_to):
                continue
            out.append(job)
        return out

    def list_contractors(self) -> List[Contractor]:
        with self._lock:
            return [value for value, _ in self._tables[RecordKind.CONTRACTOR].values()]

    def compare_and_swap(self, writes: Sequence[Write]) -> None:
        with self._lock:
            for w in writes:
                current = self._tables[w.kind].get(w.key)
                current_version = current[1] if current else ABSENT
                if current_version != w.expected_version:
                    logger.debug(
                        "CAS conflict on %s %s: expected v%d, found v%d",
                        w.kind.value, w.key, w.expected_version, current_version,
                    )
                    raise ConcurrencyConflict(
                        f"{w.kind.value} {w.key} changed (expected v{w.expected_version}, found v{current_version})"
                    )
            for w in writes:
                self._tables[w.kind][w.key] = (w.value, w.expected_version + 1)

    # ---- Internal helpers ----

    def _get(self, kind: RecordKind, key: str) -> Optional[Versioned]:
        with self._lock:
            entry = self._tables[kind].get(key)
        if entry is None:
            return None
        return Versioned(entry[0], entry[1])
