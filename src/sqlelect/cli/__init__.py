"""CLI commands for sqlelect.

Provides command-line interface using Typer:
- sqlelect campaign: Campaign in an election until interrupted
- sqlelect status: Show the current leader of an election
- sqlelect init-db: Create the election table
- sqlelect identity: Print this process's candidate name

Usage:
    sqlelect --help
    sqlelect campaign job-x --renewal 5
    sqlelect status job-x
"""

import typer

from sqlelect.cli.campaign_cmd import campaign
from sqlelect.cli.db_cmd import app as db_app
from sqlelect.cli.status_cmd import status

# Main CLI application
app = typer.Typer(
    name="sqlelect",
    help="sqlelect: leader election over a shared SQL table",
    no_args_is_help=True,
)

# Add subcommands. Commands with a positional argument are plain commands
# so options may follow the argument.
app.command(name="campaign")(campaign)
app.command(name="status")(status)
app.add_typer(db_app, name="init-db")


@app.callback()
def callback() -> None:
    """sqlelect: leader election over a shared SQL table."""
    pass


@app.command()
def identity() -> None:
    """Print the candidate name this process would campaign as."""
    from sqlelect.identity import worker_name

    typer.echo(worker_name())


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
