"""
Security module for the QuorumGate service.

Input validation for identities, payloads and fingerprints, and client
identification for rate limiting.
"""

import re
from typing import Any, Dict

from quorumgate.fingerprint import FINGERPRINT_PREFIX


# ============================================================
# Input Validation
# ============================================================

HEX_PATTERN = re.compile(r'^([a-fA-F0-9]{2})*$')
IDENTITY_PATTERN = re.compile(r'^[A-Za-z0-9_.@:-]{1,128}$')
FINGERPRINT_PATTERN = re.compile(r'^' + re.escape(FINGERPRINT_PREFIX) + r'[a-f0-9]{64}$')

MAX_TARGET_LENGTH = 256
MAX_PAYLOAD_BYTES = 64 * 1024


class ValidationError(Exception):
    """Raised when input validation fails."""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def validate_identity(value: Any, field_name: str = "identity") -> str:
    """
    Validate a signatory or caller identity.

    Raises:
        ValidationError: not a string or outside [A-Za-z0-9_.@:-]{1,128}
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")

    value = value.strip()
    if not IDENTITY_PATTERN.match(value):
        raise ValidationError(field_name, "invalid format")
    return value


def validate_target(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("target", "cannot be empty")
    if len(value) > MAX_TARGET_LENGTH:
        raise ValidationError("target", f"must not exceed {MAX_TARGET_LENGTH} characters")
    return value


def validate_payload_hex(value: Any) -> bytes:
    """
    Decode a hex payload. Empty string means empty payload.

    Raises:
        ValidationError: not even-length hexadecimal, or too large
    """
    if not isinstance(value, str):
        raise ValidationError("payload_hex", "must be a string")

    value = value.strip()
    if not HEX_PATTERN.match(value):
        raise ValidationError("payload_hex", "must be even-length hexadecimal")
    if len(value) // 2 > MAX_PAYLOAD_BYTES:
        raise ValidationError("payload_hex", f"must not exceed {MAX_PAYLOAD_BYTES} bytes")
    return bytes.fromhex(value)


def validate_fingerprint(value: Any) -> str:
    """Validate a fingerprint ("sha256:" + 64 lowercase hex)."""
    if not isinstance(value, str) or not FINGERPRINT_PATTERN.match(value):
        raise ValidationError("fingerprint", "must be sha256: followed by 64 lowercase hex characters")
    return value


# ============================================================
# Rate Limiting Helpers
# ============================================================

def extract_client_id(headers: Dict[str, str]) -> str:
    """
    Extract a client identifier from request headers for rate limiting.
    Falls back to a default if no identifier is found.
    """
    caller = headers.get("x-caller-identity", "")
    if caller:
        return f"caller:{caller[:128]}"

    forwarded = headers.get("x-forwarded-for", "")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"

    return "anonymous"
