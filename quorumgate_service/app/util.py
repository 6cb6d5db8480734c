"""
Utility functions for the QuorumGate service.

Hashing, hash-chain linking and time formatting.
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional, Union


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def chain_entry_hash(prev_entry_hash: Optional[str], payload_hash: str) -> str:
    """
    Compute the hash chain entry hash.

    Args:
        prev_entry_hash: Hash of the previous entry (or None for first)
        payload_hash: Hash of the current payload

    Returns:
        SHA-256 hex of prev_entry_hash || payload_hash
    """
    data = (prev_entry_hash or "").encode("utf-8") + payload_hash.encode("utf-8")
    return sha256_hex(data)


def utc_sortable(ts: datetime) -> str:
    """Fixed-width UTC timestamp; string order matches time order. Naive times are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def parse_utc(s: str) -> datetime:
    """Parse a utc_sortable() string back to an aware datetime."""
    return datetime.strptime(s, '%Y-%m-%dT%H:%M:%S.%fZ').replace(tzinfo=timezone.utc)
