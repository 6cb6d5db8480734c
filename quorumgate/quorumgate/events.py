"""
QuorumGate Lifecycle Notifications

Every proposal emits exactly one NEW_PROPOSAL when created and, if it is
executed, exactly one terminal notification: EXECUTED when the executor
reports success, CANCELLED when it reports failure.

Sinks are pluggable. InMemoryEventLog is the default; the HTTP service
persists events to a hash-chained SQLite log instead.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    NEW_PROPOSAL = "NewProposal"
    EXECUTED = "Executed"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class LifecycleEvent:
    """A single notification. CANCELLED events carry the fingerprint only."""
    event_type: EventType
    fingerprint: str
    value: Optional[int] = None
    target: Optional[str] = None
    payload: Optional[bytes] = None
    sequence: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "fingerprint": self.fingerprint,
            "value": self.value,
            "target": self.target,
            "payload": self.payload.hex() if self.payload is not None else None,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
        }


class EventSink(ABC):
    """
    Abstract notification sink.

    emit() is called after the state change it describes has been applied.
    NEW_PROPOSAL is emitted while the proposal's slot lock is still held, so
    sinks must not call back into the queue.
    """

    @abstractmethod
    def emit(self, event: LifecycleEvent) -> None:
        """Record a lifecycle event."""
        pass

    @abstractmethod
    def query(
        self,
        event_type: Optional[EventType] = None,
        fingerprint: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[LifecycleEvent]:
        """Query recorded events, oldest first."""
        pass


class InMemoryEventLog(EventSink):
    """
    In-memory event log for development and testing.

    Not persistent. Oldest records are dropped beyond max_records.
    """

    def __init__(self, max_records: int = 10000):
        self._records: List[LifecycleEvent] = []
        self._lock = threading.Lock()
        self._max_records = max_records

    def emit(self, event: LifecycleEvent) -> None:
        with self._lock:
            self._records.append(event)
            if len(self._records) > self._max_records:
                self._records = self._records[-self._max_records:]

    def query(
        self,
        event_type: Optional[EventType] = None,
        fingerprint: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[LifecycleEvent]:
        with self._lock:
            records = self._records[:]

        if event_type:
            records = [r for r in records if r.event_type == event_type]
        if fingerprint:
            records = [r for r in records if r.fingerprint == fingerprint]
        if start_time:
            records = [r for r in records if r.timestamp >= start_time]
        if end_time:
            records = [r for r in records if r.timestamp <= end_time]

        return records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class CompositeEventSink(EventSink):
    """Fans each event out to several sinks; queries go to the first."""

    def __init__(self, *sinks: EventSink):
        if not sinks:
            raise ValueError("CompositeEventSink needs at least one sink")
        self.sinks = list(sinks)

    def emit(self, event: LifecycleEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)

    def query(
        self,
        event_type: Optional[EventType] = None,
        fingerprint: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[LifecycleEvent]:
        return self.sinks[0].query(event_type, fingerprint, start_time, end_time)
