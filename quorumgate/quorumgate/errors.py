"""
QuorumGate Error Taxonomy

Every rejected operation raises a subclass of QuorumGateError carrying a
stable ErrorCode. Rejections never leave partial state behind.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable failure codes exposed to callers."""
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_APPROVALS = "INSUFFICIENT_APPROVALS"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    INVALID_PROPOSAL = "INVALID_PROPOSAL"


class QuorumGateError(Exception):
    """Base class for all QuorumGate failures."""

    code: ErrorCode = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"{self.code.value}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(QuorumGateError):
    """Proposal absent or already finalized, or identity has no weight."""
    code = ErrorCode.NOT_FOUND


class UnauthorizedError(QuorumGateError):
    """Caller lacks the weight or role the operation requires."""
    code = ErrorCode.UNAUTHORIZED


class InsufficientApprovalsError(QuorumGateError):
    """Execution attempted before the approved weight reached the threshold."""
    code = ErrorCode.INSUFFICIENT_APPROVALS


class InvalidConfigurationError(QuorumGateError):
    """Registry constructed with an unusable threshold or signatory list."""
    code = ErrorCode.INVALID_CONFIGURATION


class InvalidProposalError(QuorumGateError, ValueError):
    """Proposal content is malformed (negative value, empty target, ...)."""
    code = ErrorCode.INVALID_PROPOSAL
