"""
Configuration module for the QuorumGate service.

Centralizes all configuration with environment variable support,
validation, and the roster loader.
"""

import os
import json
from typing import Dict, Any, List
from pathlib import Path

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("QUORUMGATE_ENV", "dev")  # dev|stage|prod

# Roster: a JSON file, or threshold + comma-separated identities
ROSTER_PATH = os.getenv("QUORUMGATE_ROSTER_PATH", "")
THRESHOLD = os.getenv("QUORUMGATE_THRESHOLD", "")
SIGNATORIES = os.getenv("QUORUMGATE_SIGNATORIES", "")
APPROVAL_POLICY = os.getenv("QUORUMGATE_APPROVAL_POLICY", "cumulative")
UNIQUE_FINGERPRINTS = os.getenv("QUORUMGATE_UNIQUE_FINGERPRINTS", "").lower() in ("1", "true", "yes")

# Executor
EXECUTOR_TYPE = os.getenv("QUORUMGATE_EXECUTOR", "log")  # log|http|reject
EXECUTOR_URL = os.getenv("EXECUTOR_URL", "")
EXECUTOR_TIMEOUT_SECONDS = float(os.getenv("EXECUTOR_TIMEOUT_SECONDS", "5"))

# Rate limits (requests per minute)
PROPOSE_RPM = int(os.getenv("PROPOSE_RPM", "120"))
APPROVE_RPM = int(os.getenv("APPROVE_RPM", "240"))
EXECUTE_RPM = int(os.getenv("EXECUTE_RPM", "120"))

# Storage
DB_PATH = os.getenv("QUORUMGATE_DB_PATH", "data/quorumgate.db")

# Logging
LOG_LEVEL = os.getenv("QUORUMGATE_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("QUORUMGATE_LOG_JSON", "true").lower() in ("1", "true", "yes")


# ============================================================
# Roster Loader
# ============================================================

def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _parse_threshold(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        # left as-is so the registry reports it as invalid configuration
        return raw


def _split_identities(raw: str) -> List[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


def load_roster() -> Dict[str, Any]:
    """
    Roster dict for create_authorizer().

    The roster file is read on every call, once per authorizer build.
    It wins over the THRESHOLD/SIGNATORIES variables. Policy
    and fingerprint mode from the environment fill in keys the file omits.
    """
    if ROSTER_PATH:
        roster = _read_json(ROSTER_PATH)
    else:
        roster = {
            "threshold": _parse_threshold(THRESHOLD),
            "signatories": _split_identities(SIGNATORIES),
        }
    if isinstance(roster, dict):
        roster.setdefault("approval_policy", APPROVAL_POLICY)
        roster.setdefault("unique_fingerprints", UNIQUE_FINGERPRINTS)
    return roster


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Check that the configuration needed at startup is present.
    Returns dict of check -> ok.
    """
    checks = {}
    if ROSTER_PATH:
        checks["roster_file"] = Path(ROSTER_PATH).exists()
    else:
        checks["roster_env"] = bool(THRESHOLD and SIGNATORIES)

    if EXECUTOR_TYPE == "http":
        checks["executor_url"] = bool(EXECUTOR_URL)
    checks["executor_type"] = EXECUTOR_TYPE in ("log", "http", "reject")
    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"
