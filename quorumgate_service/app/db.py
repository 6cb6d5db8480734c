"""
Database module for the QuorumGate service.

SQLite storage for the hash-chained lifecycle event log.
Uses thread-local connections and indexes for the common queries.
"""

import sqlite3
import threading
from typing import Optional, List, Dict, Any
from pathlib import Path
from contextlib import contextmanager

from .config import DB_PATH as _CONFIGURED_DB_PATH

DB_PATH = Path(_CONFIGURED_DB_PATH)

# Thread-local storage for connection pooling
_local = threading.local()


def _get_connection() -> sqlite3.Connection:
    """
    Get a thread-local database connection.
    Connections are reused within the same thread.
    """
    if not hasattr(_local, 'conn') or _local.conn is None:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(DB_PATH), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA temp_store=MEMORY;")
        conn.row_factory = sqlite3.Row
        _local.conn = conn
    return _local.conn


@contextmanager
def _transaction():
    """
    Context manager for database transactions.
    Commits on success, rolls back on failure.
    """
    conn = _get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_db() -> None:
    """
    Initialize database schema.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    with _transaction() as conn:
        conn.execute("""
        CREATE TABLE IF NOT EXISTS event_log (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            event_type TEXT NOT NULL,
            fingerprint TEXT NOT NULL,
            emitted_at TEXT NOT NULL,
            payload_hash TEXT NOT NULL,
            prev_entry_hash TEXT,
            entry_hash TEXT NOT NULL,
            event_json TEXT NOT NULL
        );""")
        conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_event_log_type
        ON event_log(event_type);""")
        conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_event_log_fingerprint
        ON event_log(fingerprint);""")
        conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_event_log_emitted
        ON event_log(emitted_at);""")


def latest_entry_hash() -> Optional[str]:
    """Get the hash of the most recent log entry for chain linking."""
    conn = _get_connection()
    cur = conn.execute("SELECT entry_hash FROM event_log ORDER BY seq DESC LIMIT 1")
    row = cur.fetchone()
    return row['entry_hash'] if row else None


def append_event(
    event_type: str,
    fingerprint: str,
    emitted_at: str,
    payload_hash: str,
    prev_entry_hash: Optional[str],
    entry_hash: str,
    event_json: str
) -> None:
    """Append an entry to the event log."""
    with _transaction() as conn:
        conn.execute(
            "INSERT INTO event_log(event_type, fingerprint, emitted_at, "
            "payload_hash, prev_entry_hash, entry_hash, event_json) VALUES(?,?,?,?,?,?,?)",
            (event_type, fingerprint, emitted_at, payload_hash, prev_entry_hash, entry_hash, event_json)
        )


def query_events(
    event_type: Optional[str] = None,
    fingerprint: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Select log entries, oldest first. Times are ISO-8601 UTC strings."""
    clauses = []
    params: List[Any] = []
    if event_type:
        clauses.append("event_type=?")
        params.append(event_type)
    if fingerprint:
        clauses.append("fingerprint=?")
        params.append(fingerprint)
    if start_time:
        clauses.append("emitted_at>=?")
        params.append(start_time)
    if end_time:
        clauses.append("emitted_at<=?")
        params.append(end_time)

    sql = "SELECT seq, event_type, fingerprint, emitted_at, payload_hash, prev_entry_hash, entry_hash, event_json FROM event_log"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY seq ASC"

    conn = _get_connection()
    return [dict(row) for row in conn.execute(sql, params).fetchall()]


def export_event_log_full() -> List[Dict[str, Any]]:
    """Export the complete event log."""
    return query_events()


# ============================================================
# Metrics and Health
# ============================================================

def get_db_stats() -> Dict[str, int]:
    """Get database statistics for monitoring."""
    conn = _get_connection()
    cur = conn.execute("SELECT COUNT(*) as cnt FROM event_log")
    return {"event_log_count": cur.fetchone()['cnt']}


# ============================================================
# Test Support: Database Reset
# ============================================================

def reset_db() -> None:
    """
    Reset the database for test isolation.
    Clears all tables but preserves schema.
    """
    with _transaction() as conn:
        conn.execute("DELETE FROM event_log")


def close_connection() -> None:
    """Close the thread-local connection (for cleanup)."""
    if hasattr(_local, 'conn') and _local.conn is not None:
        _local.conn.close()
        _local.conn = None
