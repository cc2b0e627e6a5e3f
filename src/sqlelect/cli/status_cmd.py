"""CLI command for showing the current leader of an election.

Read-only: the election table is never created here.

Usage:
    sqlelect status job-x
"""

from __future__ import annotations

import typer


def status(
    name: str = typer.Argument(..., help="Election name"),
) -> None:
    """Print the recorded leader, lease age and whether the lease expired.

    Exits with status 1 if nobody has claimed the election yet.
    """
    import asyncio

    from rich.console import Console
    from rich.table import Table

    from sqlelect.config import settings
    from sqlelect.election import utcnow
    from sqlelect.errors import ElectionError
    from sqlelect.persistence.db import create_engine, store_errors
    from sqlelect.persistence.store import ElectionStore

    async def read_record():
        with store_errors("open store", name):
            engine = create_engine(settings)
        try:
            store = ElectionStore(engine, lease_duration=settings.lease_duration)
            if not await store.has_schema():
                return None
            return await store.get_record(name)
        finally:
            await engine.dispose()

    console = Console()
    try:
        record = asyncio.run(read_record())
    except ElectionError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if record is None:
        console.print(f"[yellow]No leader recorded for election '{name}'[/yellow]")
        raise typer.Exit(1)

    now = utcnow()
    expired = record.is_expired(now, settings.lease_duration)

    table = Table(title=f"Election '{name}'")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Leader", record.leader_name)
    table.add_row("Last update", record.last_update.isoformat())
    table.add_row("Lease age", f"{record.lease_age(now):.1f}s")
    table.add_row("Lease", "[red]expired[/red]" if expired else "[green]live[/green]")
    console.print(table)
