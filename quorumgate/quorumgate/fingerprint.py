"""
QuorumGate Proposal Fingerprints

A fingerprint is the fixed-size identifier of a proposal, derived only
from its content:

    fingerprint = SHA-256(canonicalize({"payload": hex, "target": target, "value": "<decimal>"}))

Output format is "sha256:" followed by 64 lowercase hex characters.

Identical (value, target, payload) always yields the identical fingerprint,
so re-proposing the same content lands on the same queue slot. A generator
created with unique=True folds a monotonically increasing sequence number
into the input instead, giving every proposal its own slot.
"""

import hashlib
import itertools
import threading
from typing import Optional, Tuple, Union

from .canonicalization import canonicalize
from .errors import InvalidProposalError

FINGERPRINT_PREFIX = "sha256:"
FINGERPRINT_LENGTH = len(FINGERPRINT_PREFIX) + 64

BytesLike = Union[bytes, bytearray, memoryview]


def sha256_hash(data: Union[bytes, str]) -> str:
    """
    Compute SHA-256 with the QuorumGate output format.

    Returns:
        Hash string in format "sha256:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.sha256(data).hexdigest().lower()
    return f"{FINGERPRINT_PREFIX}{digest}"


def validate_content(value: int, target: str, payload: BytesLike) -> Tuple[int, str, bytes]:
    """
    Check proposal content and normalize the payload to bytes.

    Raises:
        InvalidProposalError: value is not a non-negative int, target is not
            a non-empty string, or payload is not bytes-like.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidProposalError("value must be an integer", {"value": repr(value)})
    if value < 0:
        raise InvalidProposalError("value must be non-negative", {"value": value})
    if not isinstance(target, str) or not target:
        raise InvalidProposalError("target must be a non-empty string", {"target": repr(target)})
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise InvalidProposalError("payload must be bytes", {"payload_type": type(payload).__name__})
    return value, target, bytes(payload)


def encode_content(
    value: int,
    target: str,
    payload: BytesLike,
    sequence: Optional[int] = None
) -> bytes:
    """Exact byte encoding that a fingerprint is computed over."""
    value, target, payload = validate_content(value, target, payload)
    content = {
        "payload": payload,
        "target": target,
        "value": str(value),
    }
    if sequence is not None:
        content["sequence"] = str(sequence)
    return canonicalize(content)


def fingerprint(value: int, target: str, payload: BytesLike = b"") -> str:
    """Content-only fingerprint of a proposal."""
    return sha256_hash(encode_content(value, target, payload))


def verify_fingerprint(
    declared: str,
    value: int,
    target: str,
    payload: BytesLike,
    sequence: Optional[int] = None
) -> bool:
    """Recompute a fingerprint from content and compare."""
    if not isinstance(declared, str) or not declared.startswith(FINGERPRINT_PREFIX):
        return False
    return sha256_hash(encode_content(value, target, payload, sequence)) == declared


class FingerprintGenerator:
    """
    Derives fingerprints for the proposal queue.

    With unique=False (default) this is the pure content fingerprint.
    With unique=True each derivation consumes the next sequence number.
    """

    def __init__(self, unique: bool = False, start: int = 1):
        self.unique = unique
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def derive(self, value: int, target: str, payload: BytesLike) -> Tuple[str, Optional[int]]:
        """
        Returns:
            (fingerprint, sequence) where sequence is None for content-only
            fingerprints.
        """
        sequence = None
        if self.unique:
            with self._lock:
                sequence = next(self._counter)
        return sha256_hash(encode_content(value, target, payload, sequence)), sequence
