"""
Logging configuration for the QuorumGate service.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line, suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Logger for authorization audit events.

    One method per lifecycle step or rejected operation; each record
    carries its fields under extra_fields for StructuredFormatter.
    """

    def __init__(self, name: str = "quorumgate.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def proposal_created(self, fingerprint: str, target: str, value: int) -> None:
        self._log(
            logging.INFO,
            "PROPOSAL_CREATED",
            fingerprint=fingerprint,
            target=target,
            value=value,
            message=f"Proposal {fingerprint} created"
        )

    def approval_recorded(self, fingerprint: str, caller: str, approved_weight: int, threshold: int) -> None:
        self._log(
            logging.INFO,
            "APPROVAL_RECORDED",
            fingerprint=fingerprint,
            caller=caller,
            approved_weight=approved_weight,
            threshold=threshold,
            message=f"Approval by {caller}: {approved_weight}/{threshold}"
        )

    def execution_complete(self, fingerprint: str, state: str, duration_ms: int) -> None:
        level = logging.INFO if state == "Executed" else logging.ERROR
        self._log(
            level,
            "EXECUTION_COMPLETE",
            fingerprint=fingerprint,
            state=state,
            duration_ms=duration_ms,
            message=f"Execution of {fingerprint}: {state}"
        )

    def operation_rejected(self, operation: str, code: str, caller: Optional[str] = None, **details) -> None:
        self._log(
            logging.WARNING,
            "OPERATION_REJECTED",
            operation=operation,
            code=code,
            caller=caller,
            **details,
            message=f"{operation} rejected: {code}"
        )

    def signatory_revoked(self, identity: str, caller: str, total_weight: int) -> None:
        self._log(
            logging.WARNING,
            "SIGNATORY_REVOKED",
            identity=identity,
            caller=caller,
            total_weight=total_weight,
            message=f"Signatory {identity} revoked by {caller}"
        )

    def admin_transferred(self, previous: str, new_admin: str) -> None:
        self._log(
            logging.WARNING,
            "ADMIN_TRANSFERRED",
            previous=previous,
            new_admin=new_admin,
            message=f"Admin role moved from {previous} to {new_admin}"
        )

    def rate_limit_exceeded(self, client_id: str, endpoint: str) -> None:
        self._log(
            logging.WARNING,
            "RATE_LIMIT_EXCEEDED",
            client_id=client_id,
            endpoint=endpoint,
            message=f"Rate limit exceeded for {client_id} on {endpoint}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


# Global audit logger instance
audit_log = AuditLogger()
