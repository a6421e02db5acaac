"""
Contractors domain package.

Public API:
- Domain models: Contractor, ContractorStatus, TimeRange
- Loading: load_contractors_csv, contractors_from_frame
"""
from .models import Contractor, ContractorStatus, TimeRange, DEFAULT_MAX_CONCURRENT_JOBS
from .loader import load_contractors_csv, contractors_from_frame, contractors_to_frame

__all__ = [
    "Contractor",
    "ContractorStatus",
    "TimeRange",
    "DEFAULT_MAX_CONCURRENT_JOBS",
    "load_contractors_csv",
    "contractors_from_frame",
    "contractors_to_frame",
]
