import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quorumgate import (
    Authorizer,
    ErrorCode,
    EventType,
    InvalidConfigurationError,
    QuorumGateError,
    create_authorizer,
)

from .config import (
    APPROVE_RPM,
    ENV,
    EXECUTE_RPM,
    LOG_JSON,
    LOG_LEVEL,
    PROPOSE_RPM,
    load_roster,
    validate_config,
)
from .db import close_connection, get_db_stats, init_db, reset_db
from .executors import get_executor
from .log_backends import get_event_sink
from .logging_config import audit_log, configure_logging, set_request_id
from .models import (
    ApprovalResponse,
    ErrorBody,
    EventProof,
    HealthResponse,
    ProposeRequest,
    ProposeResponse,
    RevokeResponse,
    SignatoryResponse,
    TransferAdminRequest,
    TransferAdminResponse,
)
from .rate_limit import RateLimiter
from .security import (
    ValidationError,
    extract_client_id,
    validate_fingerprint,
    validate_identity,
    validate_payload_hex,
    validate_target,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="QuorumGate")

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 403,
    ErrorCode.INSUFFICIENT_APPROVALS: 409,
    ErrorCode.INVALID_PROPOSAL: 422,
    ErrorCode.INVALID_CONFIGURATION: 500,
}

EVENTS = get_event_sink()
propose_limiter = RateLimiter(PROPOSE_RPM)
approve_limiter = RateLimiter(APPROVE_RPM)
execute_limiter = RateLimiter(EXECUTE_RPM)
AUTH: Optional[Authorizer] = None


class ServiceError(Exception):
    """HTTP-level rejection that has no QuorumGateError counterpart."""

    def __init__(self, status_code: int, error: str, message: str, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.headers = headers
        super().__init__(message)


def build_authorizer() -> Authorizer:
    return create_authorizer(load_roster(), executor=get_executor(), events=EVENTS)


def init_state() -> None:
    global AUTH
    init_db()
    AUTH = build_authorizer()
    if AUTH.threshold > AUTH.total_weight:
        logger.warning(
            "threshold %d exceeds total weight %d; no proposal can execute",
            AUTH.threshold, AUTH.total_weight
        )


def reset_state() -> None:
    """Fresh authorizer, empty event log and rate limit counters."""
    global AUTH
    reset_db()
    for limiter in (propose_limiter, approve_limiter, execute_limiter):
        limiter.reset()
    AUTH = build_authorizer()


@app.on_event("startup")
def _startup():
    configure_logging(LOG_LEVEL, json_format=LOG_JSON)
    init_state()


@app.on_event("shutdown")
def _shutdown():
    close_connection()


def _auth() -> Authorizer:
    if AUTH is None:
        raise InvalidConfigurationError("service not initialized")
    return AUTH


def _require_caller(caller: Optional[str]) -> str:
    if not caller:
        raise ServiceError(401, "UNAUTHENTICATED", "X-Caller-Identity header is required")
    return validate_identity(caller, "X-Caller-Identity")


def _rate_limit(limiter: RateLimiter, request: Request, endpoint: str) -> None:
    client_id = extract_client_id(dict(request.headers))
    result = limiter.check(client_id)
    if not result.allowed:
        audit_log.rate_limit_exceeded(client_id, endpoint)
        raise ServiceError(
            429, "RATE_LIMIT", "rate limit exceeded",
            headers={"Retry-After": str(int(result.retry_after or 0) + 1)}
        )


@contextmanager
def _audited(operation: str, caller: Optional[str] = None):
    try:
        yield
    except QuorumGateError as e:
        audit_log.operation_rejected(operation, e.code.value, caller=caller, details=e.details)
        raise


# ============================================================
# Middleware and error mapping
# ============================================================

@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = set_request_id(request.headers.get("x-request-id"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_response(status_code: int, error: str, message: str, details: Dict[str, Any],
                    headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body = ErrorBody(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(QuorumGateError)
async def quorumgate_error_handler(request: Request, exc: QuorumGateError):
    return _error_response(STATUS_BY_CODE.get(exc.code, 400), exc.code.value, exc.message, exc.details)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error_response(422, "INVALID_REQUEST", exc.message, {"field": exc.field})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    return _error_response(422, "INVALID_REQUEST", "request validation failed", {"errors": errors})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return _error_response(exc.status_code, exc.error, exc.message, {}, headers=exc.headers)


# ============================================================
# Proposals
# ============================================================

@app.post("/proposals", status_code=201, response_model=ProposeResponse)
def propose(req: ProposeRequest, request: Request):
    _rate_limit(propose_limiter, request, "propose")
    target = validate_target(req.target)
    payload = validate_payload_hex(req.payload_hex)

    auth = _auth()
    with _audited("propose"):
        fp = auth.propose(req.value, target, payload)
    proposal = auth.get_proposal(fp)
    audit_log.proposal_created(fp, target, req.value)
    return ProposeResponse(fingerprint=fp, sequence=proposal.sequence)


@app.get("/proposals")
def list_proposals() -> List[Dict[str, Any]]:
    return [p.to_dict() for p in _auth().pending()]


@app.get("/proposals/{fingerprint}")
def get_proposal(fingerprint: str):
    fp = validate_fingerprint(fingerprint)
    auth = _auth()
    data = auth.get_proposal(fp).to_dict()
    data["approved_weight"] = auth.approved_weight(fp)
    data["threshold"] = auth.threshold
    data["approvals"] = [a.to_dict() for a in auth.approvals_for(fp)]
    return data


@app.post("/proposals/{fingerprint}/approvals", response_model=ApprovalResponse)
def approve(fingerprint: str, request: Request, x_caller_identity: Optional[str] = Header(default=None)):
    caller = _require_caller(x_caller_identity)
    _rate_limit(approve_limiter, request, "approve")
    fp = validate_fingerprint(fingerprint)

    auth = _auth()
    with _audited("approve", caller):
        weight = auth.approve(fp, caller)
    audit_log.approval_recorded(fp, caller, weight, auth.threshold)
    return ApprovalResponse(fingerprint=fp, approved_weight=weight, threshold=auth.threshold)


@app.post("/proposals/{fingerprint}/execute")
def execute(fingerprint: str, request: Request):
    _rate_limit(execute_limiter, request, "execute")
    fp = validate_fingerprint(fingerprint)

    with _audited("execute"):
        outcome = _auth().execute(fp)
    audit_log.execution_complete(fp, outcome.state.value, outcome.duration_ms)
    return outcome.to_dict()


# ============================================================
# Registry
# ============================================================

@app.get("/registry")
def registry():
    return _auth().registry.to_dict()


@app.get("/signatories/{identity}", response_model=SignatoryResponse)
def get_signatory(identity: str):
    identity = validate_identity(identity)
    auth = _auth()
    if not auth.registry.is_signatory(identity):
        raise ServiceError(404, ErrorCode.NOT_FOUND.value, "identity is not registered")
    weight = auth.weight_of(identity)
    return SignatoryResponse(identity=identity, weight=weight, active=weight > 0, is_admin=auth.is_admin(identity))


@app.delete("/signatories/{identity}", response_model=RevokeResponse)
def revoke(identity: str, x_caller_identity: Optional[str] = Header(default=None)):
    caller = _require_caller(x_caller_identity)
    identity = validate_identity(identity)

    auth = _auth()
    with _audited("revoke", caller):
        auth.revoke(identity, caller)
    total = auth.total_weight
    audit_log.signatory_revoked(identity, caller, total)
    return RevokeResponse(revoked=identity, total_weight=total)


@app.post("/admin/transfer", response_model=TransferAdminResponse)
def transfer_admin(req: TransferAdminRequest, x_caller_identity: Optional[str] = Header(default=None)):
    caller = _require_caller(x_caller_identity)
    new_admin = validate_identity(req.new_admin, "new_admin")

    auth = _auth()
    with _audited("transfer_admin", caller):
        previous = auth.transfer_admin(new_admin, caller)
    audit_log.admin_transferred(previous, new_admin)
    return TransferAdminResponse(previous_admin=previous, admin=auth.admin)


# ============================================================
# Event log
# ============================================================

@app.get("/events")
def events(
    event_type: Optional[str] = None,
    fingerprint: Optional[str] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None
):
    kind = None
    if event_type:
        try:
            kind = EventType(event_type)
        except ValueError:
            raise ValidationError("event_type", "must be NewProposal, Executed or Cancelled") from None
    if fingerprint:
        fingerprint = validate_fingerprint(fingerprint)
    return [e.to_dict() for e in EVENTS.query(kind, fingerprint, start_time, end_time)]


@app.get("/events/proof", response_model=EventProof)
def events_proof():
    proof = EVENTS.proof()
    check = EVENTS.verify_chain()
    return EventProof(
        entries=proof["entries"],
        head_entry_hash=proof["head_entry_hash"],
        valid=check["valid"],
        broken_at=check["broken_at"],
    )


@app.get("/health", response_model=HealthResponse)
def health():
    auth = _auth()
    config = validate_config()
    warnings = []
    if auth.threshold > auth.total_weight:
        warnings.append("threshold exceeds total weight")
    return HealthResponse(
        status="ok" if all(config.values()) else "degraded",
        env=ENV,
        config=config,
        pending=len(auth.pending()),
        events=get_db_stats()["event_log_count"],
        threshold=auth.threshold,
        total_weight=auth.total_weight,
        warnings=warnings,
    )
