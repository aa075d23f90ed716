"""CLI for the ``deposit_notifier`` package.

Typer-based console interface. Environment variables are loaded from a local
``.env`` using ``python-dotenv`` (existing variables win) before settings are
validated. Business logic lives in :mod:`deposit_notifier.pipeline`.

Commands
--------
- ``check``: run one deposits check (exit code 0 on success, 1 on failure).
- ``init-db``: create the ledger table without running migrations.
- ``ledger-status``: show whether a transaction id has been processed.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import load_settings
from .errors import DepositNotifierError
from .logging_setup import configure_logging
from .pipeline import build_ledger, invoke


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Send a push notification for every new deposit on your bank account. "
        "Loads credentials and settings from a local .env before running."
    ),
)


DATABASE_URL_OPTION = typer.Option(None, help="Override DATABASE_URL (falls back to env var).")


@app.command("check")
def check_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Run one deposits check."""

    try:
        settings = load_settings(database_url=database_url)
    except DepositNotifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    result = invoke(settings)
    typer.echo(result.summary)
    if result.report is not None:
        typer.echo(result.report.describe())
    raise typer.Exit(0 if result.ok else 1)


@app.command("init-db")
def init_db_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Create the processed-deposits table if it does not exist."""

    try:
        ledger = build_ledger(load_settings(database_url=database_url))
        ledger.create_schema()
    except DepositNotifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo("Ledger table ready.")


@app.command("ledger-status")
def ledger_status_cmd(
    transaction_id: str = typer.Argument(..., help="Upstream transaction uuid."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Report whether a transaction has already been notified."""

    try:
        record = build_ledger(load_settings(database_url=database_url)).get(transaction_id)
    except DepositNotifierError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if record is None:
        typer.echo(f"{transaction_id}\tnot processed")
        raise typer.Exit(1)
    typer.echo(f"{transaction_id}\tprocessed at {record.processed_at.isoformat()}")


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to DEPOSIT_NOTIFIER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m deposit_notifier.cli`
    app()
