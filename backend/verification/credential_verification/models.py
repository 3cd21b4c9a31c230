"""
Pydantic models for API requests and responses.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssuedCredential(BaseModel):
    """Credential record as returned by the issuance service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    credential_id: str = Field(..., alias="credentialId")
    type: Optional[str] = None
    issuer: Optional[str] = None
    subject_id: str = Field(..., alias="subjectId")
    claims: Optional[dict[str, Any]] = None
    issued_at: Optional[str] = Field(None, alias="issuedAt")
    worker_id: Optional[str] = Field(None, alias="workerId")


# ============================================================================
# Verify
# ============================================================================

class VerifyRequest(BaseModel):
    """Request to verify a subject's credential."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"examples": [{"subjectId": "user123"}]},
    )

    subject_id: Optional[str] = Field(None, alias="subjectId", description="Subject to verify")


class VerifiedResponse(BaseModel):
    """A credential was found for the subject."""

    model_config = ConfigDict(populate_by_name=True)

    verified: Literal[True] = True
    credential_id: str = Field(..., alias="credentialId")
    type: Optional[str] = None
    issuer: Optional[str] = None
    subject_id: str = Field(..., alias="subjectId")
    claims: Optional[dict[str, Any]] = None
    issued_at: Optional[str] = Field(None, alias="issuedAt")
    worker_id: Optional[str] = Field(None, alias="workerId", description="Worker that issued the credential")
    verified_by: str = Field(..., alias="verifiedBy", description="Worker that verified the credential")
    message: str

    @classmethod
    def from_credential(cls, credential: IssuedCredential, verified_by: str) -> "VerifiedResponse":
        return cls(
            credential_id=credential.credential_id,
            type=credential.type,
            issuer=credential.issuer,
            subject_id=credential.subject_id,
            claims=credential.claims,
            issued_at=credential.issued_at,
            worker_id=credential.worker_id,
            verified_by=verified_by,
            message=f"Credential verified by {verified_by}",
        )


class NotFoundResponse(BaseModel):
    """No credential exists for the subject."""

    model_config = ConfigDict(populate_by_name=True)

    verified: Literal[False] = False
    message: str = "Credential not found"
    verified_by: str = Field(..., alias="verifiedBy")


class UnavailableResponse(BaseModel):
    """The issuance service could not be consulted."""

    error: str
    verified: Literal[False] = False


# ============================================================================
# Health Check / Errors
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    worker: str = Field(..., description="Worker identity")


class ErrorResponse(BaseModel):
    error: str
