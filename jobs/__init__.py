"""
Jobs domain package.

Public API:
- Domain models: Job, JobStatus, Assignment, AssignmentStatus, DeclineEntry, AuditEntry
"""
from .models import (
    Job,
    JobStatus,
    Assignment,
    AssignmentStatus,
    AssignmentClosedError,
    DeclineEntry,
    AuditEntry,
)

__all__ = [
    "Job",
    "JobStatus",
    "Assignment",
    "AssignmentStatus",
    "AssignmentClosedError",
    "DeclineEntry",
    "AuditEntry",
]
