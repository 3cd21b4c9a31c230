"""
Credential Issuance API.

Provides REST endpoints for:
- Issuing credentials (POST /api/issuance/issue)
- Looking up a subject's credential (GET /api/issuance/credentials/{subject_id})
- Listing credentials (GET /api/issuance/credentials)
- Health checks (GET /api/issuance/health)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .db import CredentialStore, mask_url
from .errors import CredentialServiceError
from .models import (
    CredentialResponse,
    ErrorResponse,
    HealthResponse,
    IssueCredentialRequest,
    IssueCredentialResponse,
)
from .service import IssuanceService

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

SERVICE_NAME = "issuance-service"


# Global store and service (initialized at startup)
_store: CredentialStore | None = None
_issuance_service: IssuanceService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    global _store, _issuance_service

    settings = get_settings()

    _store = CredentialStore(settings.database_url)
    _issuance_service = IssuanceService(_store, worker_id=settings.resolved_worker_id)

    logger.info(
        "Issuance service started",
        version=__version__,
        host=settings.host,
        port=settings.port,
        worker=settings.resolved_worker_id,
        database=mask_url(settings.database_url),
    )

    yield

    # Cleanup
    if _store:
        _store.close()
    _store = None
    _issuance_service = None

    logger.info("Issuance service stopped")


def get_issuance_service() -> IssuanceService:
    """FastAPI dependency returning the process-wide issuance service."""
    if _issuance_service is None:
        raise HTTPException(status_code=503, detail="Credential store not initialized")
    return _issuance_service


# Create FastAPI app
app = FastAPI(
    title="Credential Issuance API",
    description="Issues one credential per subject",
    version=__version__,
    lifespan=lifespan,
)


# Add CORS middleware
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[_settings.frontend_host_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(CredentialServiceError)
async def credential_error_handler(request: Request, exc: CredentialServiceError) -> JSONResponse:
    """Convert service errors to {"error": message} bodies."""
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors, reported without schema details."""
    logger.warning("Invalid request body", path=request.url.path, errors=exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid request body"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Never leak internal details."""
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


router = APIRouter(prefix="/api/issuance")


# ============================================================================
# Health Check
# ============================================================================


@router.get("/health", response_model=HealthResponse)
def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Report service name and worker identity."""
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        worker=settings.resolved_worker_id,
    )


# ============================================================================
# Issuance
# ============================================================================


@router.post(
    "/issue",
    response_model=IssueCredentialResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": IssueCredentialResponse},
        500: {"model": ErrorResponse},
    },
)
def issue_credential(
    request: IssueCredentialRequest,
    service: IssuanceService = Depends(get_issuance_service),
):
    """
    Issue a credential to a subject.

    A subject holds at most one credential. Repeating the request returns
    409 with the existing credential; the new payload is discarded.
    """
    outcome = service.issue(request)

    if not outcome.created:
        body = IssueCredentialResponse.from_record(outcome.record, "Credential already issued")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=body.model_dump(by_alias=True),
        )

    return IssueCredentialResponse.from_record(outcome.record, "Credential issued successfully")


# ============================================================================
# Lookup
# ============================================================================


@router.get(
    "/credentials/{subject_id:path}",
    response_model=CredentialResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def get_credential(
    subject_id: str,
    service: IssuanceService = Depends(get_issuance_service),
) -> CredentialResponse:
    """Return the credential issued to subject_id."""
    return CredentialResponse.from_record(service.get(subject_id))


@router.get(
    "/credentials",
    response_model=list[CredentialResponse],
    responses={500: {"model": ErrorResponse}},
)
def list_credentials(
    service: IssuanceService = Depends(get_issuance_service),
) -> list[CredentialResponse]:
    """All issued credentials, newest first."""
    return [CredentialResponse.from_record(record) for record in service.list_all()]


app.include_router(router)


# ============================================================================
# Entry Point
# ============================================================================


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "credential_issuance.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
