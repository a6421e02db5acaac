"""
Purpose: Lifecycle notifications.
What it does:
Each successful transition emits one DispatchEvent to an EventSink. Delivery
(push, SMS, chat) is someone else's job; a sink only has to accept the event
without blocking. A failing sink is logged and never undoes a transition.
"""

from __future__ import annotations

import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    JOB_ASSIGNED = "job_assigned"
    JOB_DECLINED = "job_declined"
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    JOB_CANCELLED = "job_cancelled"


@dataclass(frozen=True)
class DispatchEvent:
    kind: EventKind
    job_id: str
    at: datetime
    contractor_id: Optional[str] = None
    seller_id: Optional[str] = None
    detail: Dict[str, str] = field(default_factory=dict)


class EventSink(ABC):
    @abstractmethod
    def publish(self, event: DispatchEvent) -> None:
        """Must return promptly; never block the caller on delivery."""


class InMemoryEventSink(EventSink):
    def __init__(self):
        self._lock = threading.Lock()
        self._events = []  # type: List[DispatchEvent]

    def publish(self, event: DispatchEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[DispatchEvent]:
        with self._lock:
            return list(self._events)


class QueueEventSink(EventSink):
    """
    Hands events to a bounded queue for a separate delivery worker.
    When the queue is full the event is dropped and logged.
    """
    def __init__(self, maxsize: int = 1000):
        self.queue = queue.Queue(maxsize=maxsize)

    def publish(self, event: DispatchEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except queue.Full:
            logger.warning("Event queue full, dropping %s for job %s", event.kind.value, event.job_id)


def safe_publish(sink: Optional[EventSink], event: DispatchEvent) -> None:
    if sink is None:
        return
    try:
        sink.publish(event)
    except Exception:
        logger.exception("Event sink failed for %s on job %s", event.kind.value, event.job_id)
