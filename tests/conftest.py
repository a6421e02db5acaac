import pytest
from datetime import datetime, timedelta, timezone

from contractors.models import Contractor
from dispatch.store import InMemoryDispatchStore
from jobs.models import Job
from tiers.models import TierMetrics


@pytest.fixture
def job_site():
    # Seoul City Hall
    return (37.5665, 126.9780)


@pytest.fixture
def requested_start():
    return datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_contractor(job_site, requested_start):
    """
    Factory for an active, available contractor ~1km north of the job site.
    Any field can be overridden.
    """
    def _make(contractor_id, **overrides):
        fields = dict(
            contractor_id=contractor_id,
            tier="gold",
            location=(job_site[0] + 0.009, job_site[1]),
            estimated_cost=400000,
            min_cost=100000,
            max_cost=1000000,
            available_dates=[requested_start.date()],
            skills=["curtain"],
            experience={"curtain": 3},
            metrics=TierMetrics(completed_jobs=30, average_rating=4.5),
        )
        rating = overrides.pop("rating", None)
        fields.update(overrides)
        if rating is not None:
            fields["metrics"] = TierMetrics(completed_jobs=30, average_rating=rating)
        return Contractor.new(**fields)
    return _make


@pytest.fixture
def make_job(job_site, requested_start):
    def _make(job_id="JOB-1", **overrides):
        fields = dict(
            job_id=job_id,
            seller_id="SELLER-1",
            location=job_site,
            requested_start=requested_start,
            budget=500000,
            job_type="curtain",
            required_skills=["curtain"],
        )
        fields.update(overrides)
        return Job.new(**fields)
    return _make


class ManualClock:
    """Server clock the test can move forward."""
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return ManualClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return InMemoryDispatchStore(clock=clock)
