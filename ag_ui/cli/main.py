"""
Command-line interface for archgates.

Runs the native validation stage suites and the standalone source checks.
"""

from __future__ import annotations

import typer

from ag_common.api import configure_logging
from ag_ui.cli.commands.check import register_check_command
from ag_ui.cli.commands.stages import register_stage_commands

app = typer.Typer(
    help="Native multi-architecture validation gates for the vector search service.",
    no_args_is_help=True,
)


@app.callback()
def entry(
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Verbose harness logging on stderr.",
    ),
) -> None:
    """Global options shared by every command."""
    configure_logging(debug=debug)


register_stage_commands(app)
register_check_command(app)


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
