"""
QuorumGate Approval Tracker

Accumulates weighted approval per fingerprint. Approvals sum signatory
weights, not headcounts.

Policies:
- CUMULATIVE (default): every approve() call adds the caller's weight,
  including repeat calls from the same signatory.
- DISTINCT: each identity counts at most once per proposal; a repeat
  approval is a no-op that returns the current total.

Accumulated weight resets to zero whenever the fingerprint's slot is
(re-)created and when the proposal is executed. Revoking a signatory does
not reduce weight it already contributed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from .errors import UnauthorizedError
from .proposals import Proposal, ProposalQueue
from .registry import SignatoryRegistry

logger = logging.getLogger(__name__)


class ApprovalPolicy(str, Enum):
    CUMULATIVE = "cumulative"
    DISTINCT = "distinct"


@dataclass(frozen=True)
class Approval:
    """One recorded approval."""
    identity: str
    weight: int
    approved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "weight": self.weight,
            "approved_at": self.approved_at.isoformat().replace("+00:00", "Z"),
        }


class ApprovalTracker:
    """
    Per-fingerprint approval accounting.

    Lock order is slot lock, then registry lock. revoke() only takes the
    registry lock, so a revocation either lands before an approval reads the
    caller's weight or after the weight has been applied.
    """

    def __init__(
        self,
        registry: SignatoryRegistry,
        queue: ProposalQueue,
        policy: ApprovalPolicy = ApprovalPolicy.CUMULATIVE
    ):
        self.registry = registry
        self.queue = queue
        self.policy = ApprovalPolicy(policy)
        self._weights: Dict[str, int] = {}
        self._approvals: Dict[str, List[Approval]] = {}
        queue.subscribe(self._on_proposal_created)

    def approve(self, fingerprint: str, caller: str) -> int:
        """
        Add the caller's weight to a proposal.

        Returns:
            The accumulated weight after this approval.

        Raises:
            NotFoundError: proposal never proposed or already finalized.
            UnauthorizedError: caller has no weight.
        """
        with self.queue.slot(fingerprint):
            self.queue.get_active(fingerprint)

            with self.registry.locked():
                weight = self.registry.weight_of(caller)
                if weight <= 0:
                    logger.warning("approval of %s rejected: %r has no weight", fingerprint, caller)
                    raise UnauthorizedError(
                        "caller is not an active signatory",
                        {"caller": caller, "fingerprint": fingerprint}
                    )

                records = self._approvals.setdefault(fingerprint, [])
                if self.policy == ApprovalPolicy.DISTINCT and any(a.identity == caller for a in records):
                    logger.info("repeat approval of %s by %r ignored", fingerprint, caller)
                    return self._weights.get(fingerprint, 0)

                total = self._weights.get(fingerprint, 0) + weight
                self._weights[fingerprint] = total
                records.append(Approval(caller, weight))

        logger.info(
            "approved %s by %r (+%d); accumulated %d of %d",
            fingerprint, caller, weight, total, self.registry.threshold
        )
        return total

    def approved_weight(self, fingerprint: str) -> int:
        if fingerprint not in self.queue:
            return 0
        with self.queue.slot(fingerprint):
            return self._weights.get(fingerprint, 0)

    def approvals(self, fingerprint: str) -> List[Approval]:
        """Approvals recorded for the current occupant of the slot."""
        if fingerprint not in self.queue:
            return []
        with self.queue.slot(fingerprint):
            return list(self._approvals.get(fingerprint, []))

    def has_quorum(self, fingerprint: str) -> bool:
        return self.approved_weight(fingerprint) >= self.registry.threshold

    def weight_locked(self, fingerprint: str) -> int:
        """Accumulated weight; the caller must hold slot(fingerprint)."""
        return self._weights.get(fingerprint, 0)

    def reset(self, fingerprint: str) -> None:
        """Zero a fingerprint's approvals; the caller must hold slot(fingerprint)."""
        self._weights[fingerprint] = 0
        self._approvals[fingerprint] = []

    def _on_proposal_created(self, proposal: Proposal) -> None:
        self.reset(proposal.fingerprint)
