"""CLI command for creating the election table.

Usage:
    sqlelect init-db
"""

from __future__ import annotations

import typer

app = typer.Typer(help="Create the election table")


@app.callback(invoke_without_command=True)
def init_db() -> None:
    """Create election_records in the configured database if missing."""
    import asyncio

    from sqlelect.config import settings
    from sqlelect.errors import ElectionError
    from sqlelect.persistence.db import create_engine, store_errors
    from sqlelect.persistence.store import ElectionStore

    async def provision() -> None:
        with store_errors("open store"):
            engine = create_engine(settings)
        try:
            await ElectionStore(engine, lease_duration=settings.lease_duration).init_schema()
        finally:
            await engine.dispose()

    try:
        asyncio.run(provision())
    except ElectionError as e:
        typer.echo(f"Schema provisioning failed: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("Election table ready")
