"""
QuorumGate Proposal Queue

Pending operations keyed by fingerprint. Each slot holds the proposal
content and an explicit lifecycle state:

    PROPOSED --(executor success)--> EXECUTED
    PROPOSED --(executor failure)--> CANCELLED

Absence of a slot means "never proposed". A zero value is an ordinary,
active proposal. Both terminal states retire the slot: its stored fields
are cleared, while the captured content moves to history(). Proposing the
same content again recreates a fresh PROPOSED entry in the same slot.

Per-fingerprint mutual exclusion is exposed through slot(); approvals and
execution hold it for their check-then-mutate sequences. Slot locks are
only created by propose(), so unknown fingerprints never add entries.
"""

import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import NotFoundError
from .events import EventSink, EventType, InMemoryEventLog, LifecycleEvent
from .fingerprint import BytesLike, FingerprintGenerator

logger = logging.getLogger(__name__)


class ProposalState(str, Enum):
    PROPOSED = "Proposed"
    EXECUTED = "Executed"
    CANCELLED = "Cancelled"


@dataclass
class Proposal:
    """
    A queued operation.

    generation distinguishes successive occupants of the same slot;
    sequence is only set when fingerprints fold in a sequence number.
    """
    fingerprint: str
    value: int
    target: str
    payload: bytes
    state: ProposalState = ProposalState.PROPOSED
    generation: int = 0
    sequence: Optional[int] = None
    proposed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finalized_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.state == ProposalState.PROPOSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "value": self.value,
            "target": self.target,
            "payload": self.payload.hex(),
            "state": self.state.value,
            "generation": self.generation,
            "sequence": self.sequence,
            "proposed_at": self.proposed_at.isoformat().replace("+00:00", "Z"),
            "finalized_at": (
                self.finalized_at.isoformat().replace("+00:00", "Z") if self.finalized_at else None
            ),
        }


class ProposalQueue:
    """
    Fingerprint-keyed proposal slots.

    Usage:
        queue = ProposalQueue()
        fp = queue.propose(10, "treasury", b"")
        queue.get(fp).state      # ProposalState.PROPOSED
    """

    def __init__(
        self,
        generator: Optional[FingerprintGenerator] = None,
        events: Optional[EventSink] = None,
        max_history: int = 10000
    ):
        self.generator = generator or FingerprintGenerator()
        self.events = events or InMemoryEventLog()
        self._slots: Dict[str, Proposal] = {}
        self._history: List[Proposal] = []
        self._max_history = max_history
        self._slot_locks: Dict[str, threading.Lock] = {}
        self._table_lock = threading.Lock()
        self._generations = itertools.count(1)
        self._listeners: List[Callable[[Proposal], None]] = []

    @contextmanager
    def slot(self, fingerprint: str, create: bool = False) -> Iterator[None]:
        """
        Hold the mutual-exclusion lock for one fingerprint.

        Raises:
            NotFoundError: the fingerprint was never proposed and create is False.
        """
        with self._table_lock:
            lock = self._slot_locks.get(fingerprint)
            if lock is None:
                if not create:
                    raise NotFoundError("proposal not found", {"fingerprint": fingerprint})
                lock = self._slot_locks[fingerprint] = threading.Lock()
        with lock:
            yield

    def subscribe(self, callback: Callable[[Proposal], None]) -> None:
        """Register a callback run, under the slot lock, whenever a slot is (re-)created."""
        self._listeners.append(callback)

    def propose(self, value: int, target: str, payload: BytesLike = b"") -> str:
        """
        Queue an operation and return its fingerprint.

        Overwrites any existing slot for the same fingerprint; approvals
        accumulated for the previous occupant are discarded.

        Raises:
            InvalidProposalError: malformed value, target or payload.
        """
        fp, sequence = self.generator.derive(value, target, payload)
        payload = bytes(payload)

        with self.slot(fp, create=True):
            proposal = Proposal(
                fingerprint=fp,
                value=value,
                target=target,
                payload=payload,
                generation=next(self._generations),
                sequence=sequence,
            )
            with self._table_lock:
                previous = self._slots.get(fp)
                self._slots[fp] = proposal
            for listener in self._listeners:
                listener(proposal)

            if previous is not None and previous.is_active():
                logger.warning("re-proposed %s; prior approvals discarded", fp)
            logger.info("proposed %s: value=%d target=%r payload=%d bytes", fp, value, target, len(payload))

            self.events.emit(LifecycleEvent(
                event_type=EventType.NEW_PROPOSAL,
                fingerprint=fp,
                value=value,
                target=target,
                payload=payload,
                sequence=sequence,
            ))
        return fp

    def get(self, fingerprint: str) -> Proposal:
        """
        Return a copy of the slot, retired or not.

        Raises:
            NotFoundError: the fingerprint was never proposed.
        """
        with self._table_lock:
            proposal = self._slots.get(fingerprint)
            if proposal is None:
                raise NotFoundError("proposal not found", {"fingerprint": fingerprint})
            return replace(proposal)

    def get_active(self, fingerprint: str) -> Proposal:
        """
        Return a copy of the slot if it is PROPOSED.

        Raises:
            NotFoundError: never proposed or already finalized.
        """
        proposal = self.get(fingerprint)
        if not proposal.is_active():
            raise NotFoundError(
                "proposal already finalized",
                {"fingerprint": fingerprint, "state": proposal.state.value}
            )
        return proposal

    def is_active(self, fingerprint: str) -> bool:
        with self._table_lock:
            proposal = self._slots.get(fingerprint)
            return proposal is not None and proposal.is_active()

    def pending(self) -> List[Proposal]:
        """Active proposals in creation order."""
        with self._table_lock:
            active = [replace(p) for p in self._slots.values() if p.is_active()]
        return sorted(active, key=lambda p: p.generation)

    def history(self) -> List[Proposal]:
        """Retired proposals with the content captured at retirement, oldest first (capped at max_history)."""
        with self._table_lock:
            return [replace(p) for p in self._history]

    def retire(self, fingerprint: str) -> Proposal:
        """
        Finalize an active slot as EXECUTED and clear its stored fields.

        The caller must hold slot(fingerprint).

        Returns:
            The captured proposal content.

        Raises:
            NotFoundError: never proposed or already finalized.
        """
        now = datetime.now(timezone.utc)
        with self._table_lock:
            proposal = self._slots.get(fingerprint)
            if proposal is None or not proposal.is_active():
                raise NotFoundError("proposal not found or already finalized", {"fingerprint": fingerprint})

            captured = replace(proposal, state=ProposalState.EXECUTED, finalized_at=now)
            self._history.append(captured)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

            proposal.state = ProposalState.EXECUTED
            proposal.value = 0
            proposal.target = ""
            proposal.payload = b""
            proposal.finalized_at = now
            return replace(captured)

    def mark_cancelled(self, fingerprint: str, generation: int) -> bool:
        """
        Move a retired proposal from EXECUTED to CANCELLED.

        The slot itself is only touched if it still holds the same
        generation; a re-proposal made in the meantime is left alone.

        Returns:
            True if the live slot was updated.
        """
        updated = False
        with self._table_lock:
            for entry in reversed(self._history):
                if entry.fingerprint == fingerprint and entry.generation == generation:
                    entry.state = ProposalState.CANCELLED
                    break
            proposal = self._slots.get(fingerprint)
            if (
                proposal is not None
                and proposal.generation == generation
                and proposal.state == ProposalState.EXECUTED
            ):
                proposal.state = ProposalState.CANCELLED
                updated = True
        return updated

    def __contains__(self, fingerprint: str) -> bool:
        with self._table_lock:
            return fingerprint in self._slots

    def __len__(self) -> int:
        with self._table_lock:
            return sum(1 for p in self._slots.values() if p.is_active())
