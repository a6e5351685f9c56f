"""CLI commands for Herald.

Provides command-line interface using Typer:
- herald watch: Follow a group's leader
- herald leader: Print a group's current leader

Usage:
    herald --help
    herald watch --group workers
    herald leader --group workers
"""

import typer

from herald.cli.leader_cmd import app as leader_app
from herald.cli.watch_cmd import app as watch_app

# Main CLI application
app = typer.Typer(
    name="herald",
    help="Herald: leader detection for coordinated groups",
    no_args_is_help=True,
)

app.add_typer(watch_app, name="watch")
app.add_typer(leader_app, name="leader")


@app.callback()
def callback() -> None:
    """Herald: leader detection for coordinated groups."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
