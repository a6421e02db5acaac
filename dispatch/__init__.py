#Expose the high-level pipeline pieces:
#Candidate filtering (hard rules)
#Scoring / ranking
#Matcher (the "one call" entry point for finding contractors)
#Dispatcher (the job lifecycle)

from .candidate_filter import build_base_candidates, Rejection, RejectionReason
from .scoring import score_candidate, CandidateScore
from .policy import Priority, ScoreWeights, MatchOptions, DispatchPolicy, dispatch_policy_from_env
from .errors import MatchConfigError, ConcurrencyConflict
from .matcher import match, MatchOutcome, MatchResult, RankedCandidate
from .store import DispatchStore, InMemoryDispatchStore
from .events import DispatchEvent, EventKind, EventSink, InMemoryEventSink, QueueEventSink
from .dispatcher import Dispatcher, TransitionResult, AcceptanceCheck
from .state_machines.job_state import DispatchOutcome

__all__ = [
    "build_base_candidates",
    "Rejection",
    "RejectionReason",
    "score_candidate",
    "CandidateScore",
    "Priority",
    "ScoreWeights",
    "MatchOptions",
    "DispatchPolicy",
    "dispatch_policy_from_env",
    "MatchConfigError",
    "ConcurrencyConflict",
    "match",
    "MatchOutcome",
    "MatchResult",
    "RankedCandidate",
    "DispatchStore",
    "InMemoryDispatchStore",
    "DispatchEvent",
    "EventKind",
    "EventSink",
    "InMemoryEventSink",
    "QueueEventSink",
    "Dispatcher",
    "TransitionResult",
    "AcceptanceCheck",
    "DispatchOutcome",
]
