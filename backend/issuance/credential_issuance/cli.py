"""
CLI entry point for the issuance service.
"""

import json
from typing import Optional

import structlog
import typer

from .config import get_settings
from .db import CredentialStore
from .models import CredentialResponse

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="credential-issuance",
    help="Credential issuance service",
    add_completion=False,
)


def _open_store(database_url: Optional[str]) -> CredentialStore:
    return CredentialStore(database_url or get_settings().database_url)


@app.command()
def serve() -> None:
    """
    Run the issuance HTTP service (configured via environment / .env).
    """
    from .main import run

    run()


@app.command("list")
def list_credentials(
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """
    List issued credentials, newest first.
    """
    store = _open_store(database_url)
    try:
        records = store.list_all()
    finally:
        store.close()

    if not records:
        typer.echo("No credentials issued.")
        return

    for record in records:
        response = CredentialResponse.from_record(record)
        typer.echo(f"{response.issued_at}  {record.subject_id}  {record.credential_id}  ({record.type}, {record.issuer})")
    typer.echo(f"\n{len(records)} credentials")


@app.command()
def show(
    subject_id: str = typer.Argument(..., help="Subject to look up"),
    database_url: Optional[str] = typer.Option(
        None,
        "--database-url",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """
    Print the credential issued to a subject as JSON.
    """
    store = _open_store(database_url)
    try:
        record = store.find_by_subject(subject_id.strip())
    finally:
        store.close()

    if record is None:
        typer.echo(f"No credential issued to {subject_id}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(CredentialResponse.from_record(record).model_dump(by_alias=True), indent=2))


@app.command()
def version() -> None:
    """Show the service version."""
    from credential_issuance import __version__
    typer.echo(f"credential-issuance v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
