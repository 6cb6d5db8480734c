"""
Executors for the QuorumGate service.

QUORUMGATE_EXECUTOR selects one:
    log     LoggingExecutor; logs the operation and reports success (dev)
    http    HttpExecutor; POSTs the operation to EXECUTOR_URL
    reject  RejectingExecutor; every execution fails closed
"""

import logging

import requests

from quorumgate import Executor, InvalidConfigurationError, RejectingExecutor

from .config import EXECUTOR_TIMEOUT_SECONDS, EXECUTOR_TYPE, EXECUTOR_URL

logger = logging.getLogger(__name__)


class LoggingExecutor(Executor):
    """Records the operation in the log and reports success."""

    def invoke(self, target: str, value: int, payload: bytes) -> bool:
        logger.info("executing target=%r value=%d payload=%s", target, value, payload.hex())
        return True


class HttpExecutor(Executor):
    """
    Delivers approved operations to a downstream HTTP endpoint.

    Request body: {"target", "value" (decimal string), "payload_hex"}.
    Success means a 2xx response whose JSON body has "success": true.
    Transport errors, timeouts and non-JSON bodies count as failure.
    """

    def __init__(self, url: str, timeout: float = 5.0, session: requests.Session = None):
        if not url:
            raise InvalidConfigurationError("EXECUTOR_URL is required for the http executor")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def invoke(self, target: str, value: int, payload: bytes) -> bool:
        body = {"target": target, "value": str(value), "payload_hex": payload.hex()}
        try:
            r = self.session.post(self.url, json=body, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
            return isinstance(data, dict) and data.get("success") is True
        except (requests.RequestException, ValueError) as e:
            logger.warning("executor call to %s failed: %s", self.url, e)
            return False


def get_executor() -> Executor:
    if EXECUTOR_TYPE == "http":
        return HttpExecutor(EXECUTOR_URL, timeout=EXECUTOR_TIMEOUT_SECONDS)
    elif EXECUTOR_TYPE == "reject":
        return RejectingExecutor()
    elif EXECUTOR_TYPE == "log":
        return LoggingExecutor()
    raise InvalidConfigurationError("unknown executor", {"executor": EXECUTOR_TYPE})
