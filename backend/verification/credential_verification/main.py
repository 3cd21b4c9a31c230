"""
Credential Verification API.

Provides REST endpoints for:
- Verifying a subject's credential (POST /api/verification/verify)
- Health checks (GET /api/verification/health)
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
from .client import IssuanceClient
from .config import Settings, get_settings
from .errors import CredentialServiceError, ServiceUnavailableError
from .models import (
    ErrorResponse,
    HealthResponse,
    NotFoundResponse,
    UnavailableResponse,
    VerifiedResponse,
    VerifyRequest,
)
from .service import VerificationService

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

SERVICE_NAME = "verification-service"


# Global service (initialized at startup)
_verification_service: VerificationService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    global _verification_service

    settings = get_settings()

    client = IssuanceClient(
        settings.issuance_api_url,
        timeout=settings.issuance_timeout_seconds,
    )
    _verification_service = VerificationService(client, worker_id=settings.resolved_worker_id)

    logger.info(
        "Verification service started",
        version=__version__,
        host=settings.host,
        port=settings.port,
        worker=settings.resolved_worker_id,
        issuance_api=settings.issuance_api_url,
    )

    yield

    _verification_service = None

    logger.info("Verification service stopped")


def get_verification_service() -> VerificationService:
    """FastAPI dependency returning the process-wide verification service."""
    if _verification_service is None:
        raise HTTPException(status_code=503, detail="Verification service not initialized")
    return _verification_service


# Create FastAPI app
app = FastAPI(
    title="Credential Verification API",
    description="Confirms credentials recorded by the issuance service",
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


@app.exception_handler(ServiceUnavailableError)
async def unavailable_error_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    """Upstream failures still answer the verified/not-verified question."""
    body = UnavailableResponse(error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(CredentialServiceError)
async def credential_error_handler(request: Request, exc: CredentialServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
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


router = APIRouter(prefix="/api/verification")


# ============================================================================
# Health Check
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Report service name and worker identity."""
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        worker=settings.resolved_worker_id,
    )


# ============================================================================
# Verification
# ============================================================================


@router.post(
    "/verify",
    response_model=VerifiedResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": NotFoundResponse},
        503: {"model": UnavailableResponse},
    },
)
async def verify_credential(
    request: VerifyRequest,
    service: VerificationService = Depends(get_verification_service),
):
    """
    Verify that a subject holds an issued credential.

    Performs exactly one lookup against the issuance service.
    """
    result = await service.verify(request.subject_id)

    if isinstance(result, NotFoundResponse):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=result.model_dump(by_alias=True),
        )

    return result


app.include_router(router)


# ============================================================================
# Entry Point
# ============================================================================


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "credential_verification.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
