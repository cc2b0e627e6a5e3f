"""CLI command for campaigning in an election.

Usage:
    sqlelect campaign job-x
    sqlelect campaign job-x --lease 30 --renewal 5 --idle 10
    sqlelect campaign job-x --console --log-level debug
"""

from __future__ import annotations

import typer


def campaign(
    name: str = typer.Argument(..., help="Election name"),
    candidate: str | None = typer.Option(
        None,
        "--candidate",
        "-c",
        help="Candidate name (default: derived worker name)",
    ),
    lease: float | None = typer.Option(
        None,
        "--lease",
        help="Lease duration in seconds (default 60)",
    ),
    renewal: float | None = typer.Option(
        None,
        "--renewal",
        help="Renewal interval in seconds while leader (default 15)",
    ),
    idle: float | None = typer.Option(
        None,
        "--idle",
        help="Retry interval in seconds while candidate (default 60)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error (default: SQLELECT_LOG_LEVEL)",
    ),
    json_logs: bool | None = typer.Option(
        None,
        "--json/--console",
        help="JSON or human-readable log output (default: SQLELECT_LOG_JSON)",
    ),
) -> None:
    """Campaign in an election and report leadership changes.

    Runs until interrupted. Exits with status 1 if the store fails.
    """
    import asyncio

    from pydantic import ValidationError

    from sqlelect.config import Settings
    from sqlelect.errors import ElectionError
    from sqlelect.loop import run_election_loop
    from sqlelect.observability.logging import configure_logging

    overrides = {
        "lease_duration": lease,
        "renewal_interval": renewal,
        "idle_retry_interval": idle,
        "log_level": log_level,
        "log_json": json_logs,
    }
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        typer.echo(f"Invalid election settings: {e}", err=True)
        raise typer.Exit(2)

    configure_logging(json_format=settings.log_json, level=settings.log_level)

    def on_become_leader() -> None:
        typer.echo(f"[{name}] became leader")

    def on_lose_leadership() -> None:
        typer.echo(f"[{name}] lost leadership")

    try:
        asyncio.run(
            run_election_loop(
                name,
                on_become_leader,
                on_lose_leadership,
                settings=settings,
                candidate_name=candidate,
            )
        )
    except ElectionError as e:
        typer.echo(f"Election failed: {e}", err=True)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        typer.echo("Interrupted")
