"""
CLI entry point for the verification service.
"""

import asyncio
import json
from typing import Optional

import structlog
import typer

from .client import IssuanceClient
from .config import get_settings
from .errors import CredentialServiceError
from .models import NotFoundResponse
from .service import VerificationService

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="credential-verification",
    help="Credential verification service",
    add_completion=False,
)


def _client(api_url: Optional[str], timeout: Optional[float]) -> IssuanceClient:
    settings = get_settings()
    return IssuanceClient(
        api_url or settings.issuance_api_url,
        timeout=timeout or settings.issuance_timeout_seconds,
    )


@app.command()
def serve() -> None:
    """
    Run the verification HTTP service (configured via environment / .env).
    """
    from .main import run

    run()


@app.command()
def verify(
    subject_id: str = typer.Argument(..., help="Subject to verify"),
    api_url: Optional[str] = typer.Option(
        None,
        "--api",
        help="Issuance service base URL (defaults to ISSUANCE_API_URL)",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Lookup timeout in seconds",
    ),
) -> None:
    """
    Verify a subject's credential and print the result as JSON.

    Exit code 0 when verified, 1 when not found, 2 when the issuance
    service is unavailable.
    """
    service = VerificationService(_client(api_url, timeout), worker_id=get_settings().resolved_worker_id)

    try:
        result = asyncio.run(service.verify(subject_id))
    except CredentialServiceError as e:
        typer.echo(json.dumps({"error": e.message, "verified": False}), err=True)
        raise typer.Exit(code=2)

    typer.echo(json.dumps(result.model_dump(by_alias=True), indent=2))
    if isinstance(result, NotFoundResponse):
        raise typer.Exit(code=1)


@app.command()
def health(
    api_url: Optional[str] = typer.Option(
        None,
        "--api",
        help="Issuance service base URL (defaults to ISSUANCE_API_URL)",
    ),
) -> None:
    """
    Check that the issuance service is reachable.
    """
    client = _client(api_url, None)
    ok = asyncio.run(client.check_connectivity())
    typer.echo(f"Issuance service at {client.base_url}: {'ok' if ok else 'unreachable'}")
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show the service version."""
    from credential_verification import __version__
    typer.echo(f"credential-verification v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
