"""
QuorumGate Canonical Encoding

Proposal content is reduced to one byte representation before hashing so
that semantically identical proposals always produce identical bytes.
"""

import json
from typing import Any, Dict, List, Union


def canonicalize(obj: Any) -> bytes:
    """
    Convert an object to canonical JSON bytes.

    Rules:
    - Object keys sorted lexicographically (Unicode code point order)
    - No whitespace between tokens
    - UTF-8 encoding, no BOM
    - Byte strings rendered as lowercase hex
    - Arrays preserve order

    Amounts should be passed as decimal strings so that arbitrarily large
    integers survive any JSON consumer unchanged.
    """
    canonical = _canonicalize_value(obj)
    return json.dumps(canonical, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


def canonicalize_str(obj: Any) -> str:
    """Return canonical JSON as string."""
    return canonicalize(obj).decode('utf-8')


def _canonicalize_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    elif isinstance(value, float):
        raise ValueError("Floats are not canonical; encode amounts as decimal strings")
    elif isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    elif isinstance(value, dict):
        return _canonicalize_object(value)
    elif isinstance(value, (list, tuple)):
        return _canonicalize_array(value)
    else:
        raise ValueError(f"Cannot canonicalize type: {type(value)}")


def _canonicalize_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    for key in obj:
        if not isinstance(key, str):
            raise ValueError(f"Object keys must be strings, got {type(key)}")
    return {k: _canonicalize_value(obj[k]) for k in sorted(obj.keys())}


def _canonicalize_array(arr: Union[List, tuple]) -> List:
    return [_canonicalize_value(item) for item in arr]
