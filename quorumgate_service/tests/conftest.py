import os
import sys
import tempfile

import pytest

# Ensure the app module is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Service configuration is read at import time
_TMP = tempfile.mkdtemp(prefix="quorumgate-test-")
os.environ["QUORUMGATE_DB_PATH"] = os.path.join(_TMP, "events.db")
os.environ["QUORUMGATE_ROSTER_PATH"] = ""
os.environ["QUORUMGATE_THRESHOLD"] = "2"
os.environ["QUORUMGATE_SIGNATORIES"] = "alice,bob,carol"
os.environ["QUORUMGATE_APPROVAL_POLICY"] = "cumulative"
os.environ["QUORUMGATE_EXECUTOR"] = "log"
os.environ["PROPOSE_RPM"] = "1000"
os.environ["APPROVE_RPM"] = "1000"
os.environ["EXECUTE_RPM"] = "1000"

from app.main import init_state, reset_state

init_state()


# Fresh authorizer and empty event log before each test
@pytest.fixture(autouse=True)
def _reset_state():
    reset_state()
    yield
