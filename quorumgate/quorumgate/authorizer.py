"""
QuorumGate Authorizer

Wires one registry, queue, approval tracker and execution engine together
and exposes the caller-facing operations. All state lives on the
Authorizer instance; nothing is module-global.
"""

from typing import Any, Dict, List, Optional, Sequence

from .approvals import Approval, ApprovalPolicy, ApprovalTracker
from .engine import ExecutionEngine, ExecutionOutcome
from .errors import InvalidConfigurationError
from .events import EventSink, InMemoryEventLog
from .executor import Executor, RejectingExecutor
from .fingerprint import BytesLike, FingerprintGenerator
from .proposals import Proposal, ProposalQueue
from .registry import Signatory, SignatoryRegistry


class Authorizer:
    """
    Weighted multi-party authorization.

    Usage:
        auth = Authorizer(2, ["alice", "bob", "carol"], executor=CallableExecutor(send))
        fp = auth.propose(10, "vendor-x", b"")
        auth.approve(fp, "alice")
        auth.approve(fp, "bob")
        outcome = auth.execute(fp)

    Without an executor every execution fails closed: approved proposals
    are cancelled rather than carried out.
    """

    def __init__(
        self,
        threshold: int,
        signatories: Sequence[str],
        executor: Optional[Executor] = None,
        events: Optional[EventSink] = None,
        approval_policy: ApprovalPolicy = ApprovalPolicy.CUMULATIVE,
        unique_fingerprints: bool = False
    ):
        self.events = events or InMemoryEventLog()
        self.registry = SignatoryRegistry(threshold, signatories)
        self.queue = ProposalQueue(FingerprintGenerator(unique=unique_fingerprints), self.events)
        self.approvals = ApprovalTracker(self.registry, self.queue, approval_policy)
        self.engine = ExecutionEngine(
            self.registry,
            self.queue,
            self.approvals,
            executor or RejectingExecutor(),
            self.events,
        )

    # Operations

    def propose(self, value: int, target: str, payload: BytesLike = b"") -> str:
        return self.queue.propose(value, target, payload)

    def approve(self, fingerprint: str, caller: str) -> int:
        return self.approvals.approve(fingerprint, caller)

    def execute(self, fingerprint: str) -> ExecutionOutcome:
        return self.engine.execute(fingerprint)

    def revoke(self, identity: str, caller: str) -> Signatory:
        return self.registry.revoke(identity, caller=caller)

    def transfer_admin(self, new_admin: str, caller: str) -> str:
        return self.registry.transfer_admin(new_admin, caller=caller)

    # Reads

    def is_admin(self, identity: str) -> bool:
        return self.registry.is_admin(identity)

    def weight_of(self, identity: str) -> int:
        return self.registry.weight_of(identity)

    @property
    def admin(self) -> str:
        return self.registry.admin

    @property
    def threshold(self) -> int:
        return self.registry.threshold

    @property
    def total_weight(self) -> int:
        return self.registry.total_weight

    @property
    def signatories(self) -> List[Signatory]:
        return self.registry.signatories

    def get_proposal(self, fingerprint: str) -> Proposal:
        return self.queue.get(fingerprint)

    def approved_weight(self, fingerprint: str) -> int:
        return self.approvals.approved_weight(fingerprint)

    def approvals_for(self, fingerprint: str) -> List[Approval]:
        return self.approvals.approvals(fingerprint)

    def pending(self) -> List[Proposal]:
        return self.queue.pending()

    def outcomes(self) -> List[ExecutionOutcome]:
        return self.engine.outcomes()


def create_authorizer(
    config: Dict[str, Any],
    executor: Optional[Executor] = None,
    events: Optional[EventSink] = None
) -> Authorizer:
    """
    Build an Authorizer from a roster dict.

    Keys: threshold, signatories, and optionally approval_policy
    ("cumulative" | "distinct") and unique_fingerprints (bool).
    """
    if not isinstance(config, dict):
        raise InvalidConfigurationError("roster must be an object")
    for key in ("threshold", "signatories"):
        if key not in config:
            raise InvalidConfigurationError(f"roster missing '{key}'")

    policy = config.get("approval_policy", ApprovalPolicy.CUMULATIVE.value)
    try:
        policy = ApprovalPolicy(policy)
    except ValueError:
        raise InvalidConfigurationError(
            "unknown approval policy", {"approval_policy": policy}
        ) from None

    return Authorizer(
        threshold=config["threshold"],
        signatories=config["signatories"],
        executor=executor,
        events=events,
        approval_policy=policy,
        unique_fingerprints=bool(config.get("unique_fingerprints", False)),
    )
