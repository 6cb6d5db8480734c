"""
Event log backends for the QuorumGate service.

SqliteHashChainSink persists every lifecycle event to the event_log table.
Each entry links to its predecessor:

    payload_hash = sha256(canonical event JSON)
    entry_hash   = sha256(prev_entry_hash || payload_hash)

so rewriting or deleting any entry breaks every later entry_hash.
"""

import json
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from quorumgate import EventSink, EventType, LifecycleEvent, canonicalize_str

from .db import append_event, export_event_log_full, latest_entry_hash, query_events
from .util import chain_entry_hash, parse_utc, sha256_hex, utc_sortable


def _event_from_row(row: Dict[str, Any]) -> LifecycleEvent:
    data = json.loads(row["event_json"])
    payload = data.get("payload")
    return LifecycleEvent(
        event_type=EventType(data["event_type"]),
        fingerprint=data["fingerprint"],
        value=data.get("value"),
        target=data.get("target"),
        payload=bytes.fromhex(payload) if payload is not None else None,
        sequence=data.get("sequence"),
        timestamp=parse_utc(row["emitted_at"]),
    )


class SqliteHashChainSink(EventSink):
    """Hash-chained, append-only event log in SQLite."""

    def __init__(self):
        # serializes read-prev-then-append within this process
        self._lock = threading.Lock()

    def emit(self, event: LifecycleEvent) -> None:
        event_json = canonicalize_str(event.to_dict())
        payload_hash = sha256_hex(event_json)

        with self._lock:
            prev = latest_entry_hash()
            append_event(
                event_type=event.event_type.value,
                fingerprint=event.fingerprint,
                emitted_at=utc_sortable(event.timestamp),
                payload_hash=payload_hash,
                prev_entry_hash=prev,
                entry_hash=chain_entry_hash(prev, payload_hash),
                event_json=event_json,
            )

    def query(
        self,
        event_type: Optional[EventType] = None,
        fingerprint: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[LifecycleEvent]:
        rows = query_events(
            event_type=event_type.value if event_type else None,
            fingerprint=fingerprint,
            start_time=utc_sortable(start_time) if start_time else None,
            end_time=utc_sortable(end_time) if end_time else None,
        )
        return [_event_from_row(row) for row in rows]

    def proof(self) -> Dict[str, Any]:
        """Entry count and head of the chain."""
        log = export_event_log_full()
        head = log[-1]["entry_hash"] if log else None
        return {"entries": len(log), "head_entry_hash": head}

    def verify_chain(self) -> Dict[str, Any]:
        """
        Recompute every payload and entry hash.

        Returns:
            {"valid": bool, "entries": int, "broken_at": seq or None}
        """
        log = export_event_log_full()
        prev = None
        for row in log:
            payload_hash = sha256_hex(row["event_json"])
            if (
                row["payload_hash"] != payload_hash
                or row["prev_entry_hash"] != prev
                or row["entry_hash"] != chain_entry_hash(prev, payload_hash)
            ):
                return {"valid": False, "entries": len(log), "broken_at": row["seq"]}
            prev = row["entry_hash"]
        return {"valid": True, "entries": len(log), "broken_at": None}


def get_event_sink() -> SqliteHashChainSink:
    return SqliteHashChainSink()
