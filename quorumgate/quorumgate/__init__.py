"""
QuorumGate

Weighted multi-party authorization for operations that must not run on a
single say-so.

Registered signatories jointly approve proposed operations. Each approval
adds the signatory's weight; once the accumulated weight reaches the
threshold the operation may be executed, exactly once, through a pluggable
executor.

    propose -> approve (0..n) -> execute -> Executed | Cancelled

Usage:
    from quorumgate import Authorizer, CallableExecutor

    auth = Authorizer(
        threshold=2,
        signatories=["alice", "bob", "carol"],
        executor=CallableExecutor(lambda target, value, payload: True),
    )

    fp = auth.propose(10, "vendor-x", b"")
    auth.approve(fp, "alice")
    auth.approve(fp, "bob")

    outcome = auth.execute(fp)
    if outcome.success:
        # Executed notification emitted
        ...
    else:
        # executor failed; proposal is Cancelled
        ...

    # The admin (initially the first listed signatory) may revoke weight
    auth.revoke("carol", caller="alice")
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    ErrorCode,
    QuorumGateError,
    NotFoundError,
    UnauthorizedError,
    InsufficientApprovalsError,
    InvalidConfigurationError,
    InvalidProposalError,
)

# Canonicalization and fingerprints
from .canonicalization import canonicalize, canonicalize_str
from .fingerprint import (
    FingerprintGenerator,
    fingerprint,
    encode_content,
    sha256_hash,
    verify_fingerprint,
)

# Registry
from .registry import Signatory, SignatoryRegistry, AdminRole
from .guard import admin_only

# Notifications
from .events import (
    EventType,
    LifecycleEvent,
    EventSink,
    InMemoryEventLog,
    CompositeEventSink,
)

# Proposals and approvals
from .proposals import Proposal, ProposalQueue, ProposalState
from .approvals import Approval, ApprovalPolicy, ApprovalTracker

# Execution
from .executor import Executor, CallableExecutor, RejectingExecutor
from .engine import ExecutionEngine, ExecutionOutcome

# Facade
from .authorizer import Authorizer, create_authorizer


__all__ = [
    # Version
    "__version__",

    # Errors
    "ErrorCode",
    "QuorumGateError",
    "NotFoundError",
    "UnauthorizedError",
    "InsufficientApprovalsError",
    "InvalidConfigurationError",
    "InvalidProposalError",

    # Canonicalization
    "canonicalize",
    "canonicalize_str",

    # Fingerprints
    "FingerprintGenerator",
    "fingerprint",
    "encode_content",
    "sha256_hash",
    "verify_fingerprint",

    # Registry
    "Signatory",
    "SignatoryRegistry",
    "AdminRole",
    "admin_only",

    # Notifications
    "EventType",
    "LifecycleEvent",
    "EventSink",
    "InMemoryEventLog",
    "CompositeEventSink",

    # Proposals and approvals
    "Proposal",
    "ProposalQueue",
    "ProposalState",
    "Approval",
    "ApprovalPolicy",
    "ApprovalTracker",

    # Execution
    "Executor",
    "CallableExecutor",
    "RejectingExecutor",
    "ExecutionEngine",
    "ExecutionOutcome",

    # Facade
    "Authorizer",
    "create_authorizer",
]
