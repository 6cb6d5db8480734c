"""
QuorumGate Execution Engine

The final enforcement point between approval and effect:

    NO OPERATION REACHES THE EXECUTOR WITHOUT QUORUM, AND NONE REACHES IT TWICE

execute(fingerprint):
1. Takes the fingerprint's slot lock
2. Requires the proposal to be active (NotFoundError)
3. Requires approved weight >= threshold (InsufficientApprovalsError)
4. Captures the content, retires the slot as EXECUTED, zeroes the approvals
5. Releases the slot lock and invokes the executor
6. Emits Executed on success, or marks the proposal CANCELLED and emits
   Cancelled on failure

Steps 2-4 happen before the executor runs, so a re-entrant or concurrent
execute() of the same fingerprint finds nothing to execute. A failing
executor does not restore the proposal: it is finalized as cancelled and
must be proposed again to be retried.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .approvals import ApprovalTracker
from .errors import InsufficientApprovalsError
from .events import EventSink, EventType, LifecycleEvent
from .executor import Executor
from .proposals import ProposalQueue, ProposalState
from .registry import SignatoryRegistry

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """Record of one execution that passed its precondition checks."""
    fingerprint: str
    success: bool
    state: ProposalState
    target: str
    value: int
    payload: bytes
    approved_weight: int
    duration_ms: int = 0
    error: Optional[str] = None
    executed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "success": self.success,
            "state": self.state.value,
            "target": self.target,
            "value": self.value,
            "payload": self.payload.hex(),
            "approved_weight": self.approved_weight,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "executed_at": self.executed_at.isoformat().replace("+00:00", "Z"),
        }


class ExecutionEngine:
    """
    Checks quorum, retires the proposal and calls the executor.

    Usage:
        engine = ExecutionEngine(registry, queue, tracker, executor, events)
        outcome = engine.execute(fp)
        if not outcome.success:
            ...  # proposal is CANCELLED; propose again to retry
    """

    def __init__(
        self,
        registry: SignatoryRegistry,
        queue: ProposalQueue,
        approvals: ApprovalTracker,
        executor: Executor,
        events: EventSink,
        max_outcomes: int = 10000
    ):
        self.registry = registry
        self.queue = queue
        self.approvals = approvals
        self.executor = executor
        self.events = events
        self._outcomes: List[ExecutionOutcome] = []
        self._max_outcomes = max_outcomes
        self._lock = threading.Lock()

    def execute(self, fingerprint: str) -> ExecutionOutcome:
        """
        Execute an approved proposal.

        Returns:
            ExecutionOutcome; success=False means the executor failed and the
            proposal was cancelled.

        Raises:
            NotFoundError: proposal never proposed or already finalized.
            InsufficientApprovalsError: approved weight below threshold.
        """
        with self.queue.slot(fingerprint):
            self.queue.get_active(fingerprint)

            weight = self.approvals.weight_locked(fingerprint)
            threshold = self.registry.threshold
            if weight < threshold:
                logger.warning(
                    "execution of %s rejected: approved weight %d below threshold %d",
                    fingerprint, weight, threshold
                )
                raise InsufficientApprovalsError(
                    "approved weight below threshold",
                    {"fingerprint": fingerprint, "approved_weight": weight, "threshold": threshold}
                )

            proposal = self.queue.retire(fingerprint)
            self.approvals.reset(fingerprint)

        started = time.monotonic()
        error = None
        try:
            success = bool(self.executor.invoke(proposal.target, proposal.value, proposal.payload))
        except Exception as e:
            # The proposal is already retired; an executor crash finalizes it as cancelled.
            logger.exception("executor raised while executing %s", fingerprint)
            success = False
            error = f"{type(e).__name__}: {e}"
        duration_ms = int((time.monotonic() - started) * 1000)

        if success:
            state = ProposalState.EXECUTED
            logger.info("executed %s: target=%r value=%d", fingerprint, proposal.target, proposal.value)
            self.events.emit(LifecycleEvent(
                event_type=EventType.EXECUTED,
                fingerprint=fingerprint,
                value=proposal.value,
                target=proposal.target,
                payload=proposal.payload,
                sequence=proposal.sequence,
            ))
        else:
            state = ProposalState.CANCELLED
            with self.queue.slot(fingerprint):
                self.queue.mark_cancelled(fingerprint, proposal.generation)
            logger.warning("executor failed for %s; proposal cancelled", fingerprint)
            self.events.emit(LifecycleEvent(
                event_type=EventType.CANCELLED,
                fingerprint=fingerprint,
                sequence=proposal.sequence,
            ))

        outcome = ExecutionOutcome(
            fingerprint=fingerprint,
            success=success,
            state=state,
            target=proposal.target,
            value=proposal.value,
            payload=proposal.payload,
            approved_weight=weight,
            duration_ms=duration_ms,
            error=error,
        )
        with self._lock:
            self._outcomes.append(outcome)
            if len(self._outcomes) > self._max_outcomes:
                self._outcomes = self._outcomes[-self._max_outcomes:]
        return outcome

    def outcomes(self) -> List[ExecutionOutcome]:
        """Recent execution outcomes, oldest first (capped at max_outcomes)."""
        with self._lock:
            return list(self._outcomes)
