import threading
from datetime import timedelta

import pytest

from dispatch.dispatcher import Dispatcher
from dispatch.errors import ConcurrencyConflict
from dispatch.events import EventKind, EventSink, InMemoryEventSink, QueueEventSink
from dispatch.policy import DispatchPolicy, dispatch_policy_from_env
from dispatch.state_machines.job_state import DispatchOutcome
from dispatch.store import InMemoryDispatchStore, RecordKind, Write
from jobs.models import AssignmentClosedError, AssignmentStatus, JobStatus


@pytest.fixture
def sink():
    return InMemoryEventSink()


@pytest.fixture
def dispatcher(store, sink):
    return Dispatcher(store, event_sink=sink)


@pytest.fixture
def seeded(store, make_contractor, make_job):
    """One open job and two contractors in the store."""
    store.add_contractor(make_contractor("alice"))
    store.add_contractor(make_contractor("bob"))
    return store.add_job(make_job(urgency="urgent", base_fee=100000))


class ExplodingSink(EventSink):
    def publish(self, event):
        raise RuntimeError("push gateway down")


class AlwaysConflictingStore(InMemoryDispatchStore):
    def __init__(self, clock=None):
        super().__init__(clock)
        self.cas_calls = 0
        self.armed = False

    def compare_and_swap(self, writes):
        if self.armed:
            self.cas_calls += 1
            raise ConcurrencyConflict("someone else got there first")
        super().compare_and_swap(writes)


def test_full_lifecycle(dispatcher, store, seeded, sink):
    accepted = dispatcher.accept(seeded.id, "alice")
    assert accepted.outcome == DispatchOutcome.ACCEPTED
    assert accepted.job.status == JobStatus.ASSIGNED
    assert store.get_contractor("alice").value.active_jobs_count == 1

    started = dispatcher.start(seeded.id, "alice")
    assert started.outcome == DispatchOutcome.STARTED
    assert started.assignment.status == AssignmentStatus.IN_PROGRESS

    completed = dispatcher.complete(seeded.id, "alice")
    assert completed.outcome == DispatchOutcome.COMPLETED
    assert completed.job.status == JobStatus.COMPLETED
    assert completed.assignment.status == AssignmentStatus.COMPLETED

    alice = store.get_contractor("alice").value
    assert alice.active_jobs_count == 0
    assert alice.experience["curtain"] == 4
    assert alice.metrics.completed_jobs == 31

    assert [e.kind for e in sink.events] == [
        EventKind.JOB_ASSIGNED, EventKind.JOB_STARTED, EventKind.JOB_COMPLETED,
    ]
    assert [h.action for h in completed.job.history] == ["assigned", "in_progress", "completed"]


def test_price_is_frozen_at_acceptance(dispatcher, store, seeded, clock):
    # 25 minutes after posting: 15 + 2 * 5 = 25%, minus 10% for gold
    clock.advance(minutes=25)
    accepted = dispatcher.accept(seeded.id, "alice")

    fee = accepted.assignment.fee
    assert fee.urgency_percent == 15
    assert fee.total_fee == 115000
    assert store.get_job(seeded.id).value.pricing_snapshot == fee

    clock.advance(hours=5)
    started = dispatcher.start(seeded.id, "alice")
    assert started.assignment.fee == fee


def test_second_accept_is_rejected(dispatcher, seeded):
    assert dispatcher.accept(seeded.id, "alice").ok

    assert dispatcher.accept(seeded.id, "bob").outcome == DispatchOutcome.JOB_NO_LONGER_AVAILABLE
    assert dispatcher.accept(seeded.id, "alice").outcome == DispatchOutcome.ALREADY_ACCEPTED


def test_unknown_records(dispatcher, seeded):
    assert dispatcher.accept("nope", "alice").outcome == DispatchOutcome.JOB_NOT_FOUND
    assert dispatcher.accept(seeded.id, "nobody").outcome == DispatchOutcome.CONTRACTOR_NOT_FOUND
    assert dispatcher.cancel("nope").outcome == DispatchOutcome.JOB_NOT_FOUND


def test_inactive_contractor_cannot_accept(dispatcher, store, seeded, make_contractor):
    store.add_contractor(make_contractor("carol", status="inactive"))

    result = dispatcher.accept(seeded.id, "carol")

    assert result.outcome == DispatchOutcome.CONTRACTOR_INACTIVE
    assert store.get_job(seeded.id).value.status == JobStatus.OPEN


def test_at_capacity(dispatcher, store, seeded, make_contractor):
    store.add_contractor(make_contractor("dave", active_jobs_count=2, max_concurrent_jobs=2))

    assert dispatcher.accept(seeded.id, "dave").outcome == DispatchOutcome.AT_CAPACITY
    check = dispatcher.can_accept(seeded.id, "dave")
    assert not check.allowed
    assert check.outcome == DispatchOutcome.AT_CAPACITY


def test_decline_on_open_job_is_logged_once(dispatcher, store, seeded, sink):
    result = dispatcher.decline(seeded.id, "bob", reason="too far")

    assert result.outcome == DispatchOutcome.DECLINED
    assert result.job.status == JobStatus.OPEN
    assert [d.contractor_id for d in result.job.decline_log] == ["bob"]
    assert sink.events[-1].detail["reopened"] == "false"

    assert dispatcher.decline(seeded.id, "bob").outcome == DispatchOutcome.ALREADY_DECLINED
    assert dispatcher.accept(seeded.id, "bob").outcome == DispatchOutcome.ALREADY_DECLINED
    assert dispatcher.accept(seeded.id, "alice").ok


def test_decline_by_assignee_reopens_the_job(dispatcher, store, seeded, sink):
    accepted = dispatcher.accept(seeded.id, "alice")

    result = dispatcher.decline(seeded.id, "alice", reason="sick")

    assert result.outcome == DispatchOutcome.DECLINED
    assert result.job.status == JobStatus.OPEN
    assert result.job.assigned_contractor_id is None
    assert result.job.pricing_snapshot is None
    assert result.assignment.status == AssignmentStatus.DECLINED
    assert store.get_contractor("alice").value.active_jobs_count == 0
    assert sink.events[-1].detail["reopened"] == "true"

    closed = store.get_assignment(accepted.assignment.id).value
    with pytest.raises(AssignmentClosedError):
        closed.with_status(AssignmentStatus.IN_PROGRESS, store.now())
    assert len(closed.with_audit("note", store.now()).audit) == len(closed.audit) + 1

    assert dispatcher.accept(seeded.id, "bob").ok


def test_only_the_assignee_moves_the_job(dispatcher, seeded):
    dispatcher.accept(seeded.id, "alice")

    assert dispatcher.start(seeded.id, "bob").outcome == DispatchOutcome.NOT_ASSIGNED_CONTRACTOR
    assert dispatcher.decline(seeded.id, "bob").outcome == DispatchOutcome.NOT_ASSIGNED_CONTRACTOR
    assert dispatcher.complete(seeded.id, "alice").outcome == DispatchOutcome.INVALID_TRANSITION


def test_cancel_only_while_open(dispatcher, store, seeded, make_job, sink):
    cancelled = dispatcher.cancel(seeded.id, reason="changed my mind", actor_id="SELLER-1")

    assert cancelled.outcome == DispatchOutcome.CANCELLED
    assert cancelled.job.cancellation_reason == "changed my mind"
    assert sink.events[-1].kind == EventKind.JOB_CANCELLED
    assert dispatcher.accept(seeded.id, "alice").outcome == DispatchOutcome.JOB_NO_LONGER_AVAILABLE

    other = store.add_job(make_job("JOB-2"))
    dispatcher.accept(other.id, "alice")
    assert dispatcher.cancel(other.id).outcome == DispatchOutcome.INVALID_TRANSITION


def test_concurrent_accepts_have_one_winner(store, make_contractor, make_job):
    contractors = [make_contractor(f"c{i}") for i in range(10)]
    for c in contractors:
        store.add_contractor(c)
    job = store.add_job(make_job())
    dispatcher = Dispatcher(store)

    barrier = threading.Barrier(len(contractors))
    results = {}

    def worker(contractor_id):
        barrier.wait()
        results[contractor_id] = dispatcher.accept(job.id, contractor_id).outcome

    threads = [threading.Thread(target=worker, args=(c.id,)) for c in contractors]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [cid for cid, outcome in results.items() if outcome == DispatchOutcome.ACCEPTED]
    assert len(winners) == 1
    assert all(
        outcome == DispatchOutcome.JOB_NO_LONGER_AVAILABLE
        for cid, outcome in results.items() if cid not in winners
    )
    assert store.get_job(job.id).value.assigned_contractor_id == winners[0]


def test_concurrent_accepts_respect_capacity(store, make_contractor, make_job):
    store.add_contractor(make_contractor("busy", max_concurrent_jobs=2))
    jobs = [store.add_job(make_job(f"JOB-{i}")) for i in range(6)]
    dispatcher = Dispatcher(store, policy=DispatchPolicy(max_retries=10))

    barrier = threading.Barrier(len(jobs))
    outcomes = []
    lock = threading.Lock()

    def worker(job_id):
        barrier.wait()
        outcome = dispatcher.accept(job_id, "busy").outcome
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=(j.id,)) for j in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(DispatchOutcome.ACCEPTED) == 2
    assert store.get_contractor("busy").value.active_jobs_count == 2
    assert len(store.find_jobs(status=JobStatus.ASSIGNED)) == 2


def test_gives_up_after_max_retries(make_contractor, make_job, clock):
    store = AlwaysConflictingStore(clock=clock)
    store.add_contractor(make_contractor("alice"))
    job = store.add_job(make_job())
    store.armed = True

    result = Dispatcher(store).accept(job.id, "alice")

    assert result.outcome == DispatchOutcome.JOB_NO_LONGER_AVAILABLE
    assert store.cas_calls == 3
    assert result.job.status == JobStatus.OPEN


def test_failing_sink_does_not_undo_the_transition(store, seeded):
    dispatcher = Dispatcher(store, event_sink=ExplodingSink())

    result = dispatcher.accept(seeded.id, "alice")

    assert result.outcome == DispatchOutcome.ACCEPTED
    assert store.get_job(seeded.id).value.status == JobStatus.ASSIGNED


def test_find_jobs(store, make_job, clock):
    first = store.add_job(make_job("JOB-A"))
    clock.advance(hours=1)
    second = store.add_job(make_job("JOB-B", seller_id="SELLER-2"))
    dispatcher = Dispatcher(store)

    assert {j.id for j in dispatcher.open_jobs()} == {"JOB-A", "JOB-B"}
    assert [j.id for j in store.find_jobs(seller_id="SELLER-2")] == ["JOB-B"]
    window = store.find_jobs(created_from=first.created_at, created_to=second.created_at)
    assert [j.id for j in window] == ["JOB-A"]
    assert store.find_jobs(created_from=second.created_at + timedelta(seconds=1)) == []


def test_cas_is_all_or_nothing(store, make_contractor, make_job):
    store.add_contractor(make_contractor("alice"))
    job = store.add_job(make_job())
    alice = store.get_contractor("alice")

    with pytest.raises(ConcurrencyConflict):
        store.compare_and_swap([
            Write(RecordKind.CONTRACTOR, "alice", alice.version, alice.value),
            Write(RecordKind.JOB, job.id, 99, job),
        ])
    assert store.get_contractor("alice").version == alice.version


def test_queue_sink_drops_when_full(store, seeded, make_job):
    sink = QueueEventSink(maxsize=1)
    dispatcher = Dispatcher(store, event_sink=sink)
    other = store.add_job(make_job("JOB-2"))

    assert dispatcher.accept(seeded.id, "alice").ok
    assert dispatcher.accept(other.id, "bob").ok

    assert sink.queue.qsize() == 1
    assert sink.queue.get_nowait().job_id == seeded.id


def test_dispatch_policy_from_env(monkeypatch):
    monkeypatch.setenv("DISPATCH_MAX_RETRIES", "5")
    assert dispatch_policy_from_env().max_retries == 5

    monkeypatch.setenv("DISPATCH_MAX_RETRIES", "0")
    with pytest.raises(ValueError):
        dispatch_policy_from_env()
