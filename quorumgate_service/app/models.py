from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ProposeRequest(BaseModel):
    value: int = Field(ge=0, strict=True)
    target: str
    payload_hex: str = ""


class ProposeResponse(BaseModel):
    fingerprint: str
    sequence: Optional[int] = None


class ApprovalResponse(BaseModel):
    fingerprint: str
    approved_weight: int
    threshold: int


class TransferAdminRequest(BaseModel):
    new_admin: str


class SignatoryResponse(BaseModel):
    identity: str
    weight: int
    active: bool
    is_admin: bool


class RevokeResponse(BaseModel):
    revoked: str
    total_weight: int


class TransferAdminResponse(BaseModel):
    previous_admin: str
    admin: str


class EventProof(BaseModel):
    entries: int
    head_entry_hash: Optional[str] = None
    valid: bool
    broken_at: Optional[int] = None


class ErrorBody(BaseModel):
    error: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    env: str
    config: Dict[str, bool]
    pending: int
    events: int
    threshold: int
    total_weight: int
    warnings: List[str] = Field(default_factory=list)
