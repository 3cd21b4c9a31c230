"""
Pydantic models for API requests and responses.

JSON field names are camelCase; Python attributes are snake_case.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .db import CredentialRecord


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 UTC with millisecond precision, e.g. 2023-01-01T00:00:00.000Z."""
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# ============================================================================
# Issue Credential
# ============================================================================

class IssueCredentialRequest(BaseModel):
    """
    Request to issue a credential.

    Required fields are optional here so the service can report every
    missing field with one message instead of a per-field schema error.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "type": "Identity Credential",
                    "issuer": "Kube Credential System",
                    "subjectId": "user123",
                    "claims": {"name": "John Doe", "email": "john@example.com"},
                }
            ]
        },
    )

    type: Optional[str] = Field(None, description="Credential type")
    issuer: Optional[str] = Field(None, description="Issuing authority")
    subject_id: Optional[str] = Field(None, alias="subjectId", description="Subject the credential is issued to")
    claims: Optional[dict[str, Any]] = Field(None, description="Opaque claim payload")
    credential_id: Optional[str] = Field(None, alias="credentialId", description="Credential id (generated if absent)")


class IssueCredentialResponse(BaseModel):
    """Outcome of an issuance request, for both 201 and 409."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., description="Human-readable outcome")
    credential_id: str = Field(..., alias="credentialId")
    subject_id: str = Field(..., alias="subjectId")
    issued_at: Optional[str] = Field(None, alias="issuedAt")
    worker_id: str = Field(..., alias="workerId", description="Worker that issued the credential")

    @classmethod
    def from_record(cls, record: CredentialRecord, message: str) -> "IssueCredentialResponse":
        return cls(
            message=message,
            credential_id=record.credential_id,
            subject_id=record.subject_id,
            issued_at=format_timestamp(record.issued_at),
            worker_id=record.worker_id,
        )


# ============================================================================
# Credential Lookup
# ============================================================================

class CredentialResponse(BaseModel):
    """A stored credential."""

    model_config = ConfigDict(populate_by_name=True)

    credential_id: str = Field(..., alias="credentialId")
    type: str
    issuer: str
    subject_id: str = Field(..., alias="subjectId")
    claims: dict[str, Any] = Field(default_factory=dict)
    issued_at: Optional[str] = Field(None, alias="issuedAt")
    worker_id: str = Field(..., alias="workerId")

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "CredentialResponse":
        return cls(
            credential_id=record.credential_id,
            type=record.type,
            issuer=record.issuer,
            subject_id=record.subject_id,
            claims=record.claims,
            issued_at=format_timestamp(record.issued_at),
            worker_id=record.worker_id,
        )


# ============================================================================
# Health Check / Errors
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    worker: str = Field(..., description="Worker identity")


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str
