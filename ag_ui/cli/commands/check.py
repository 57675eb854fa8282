from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from ag_runner.checks.endianness import check_files, render_report


def register_check_command(app: typer.Typer) -> None:
    """Register the persistence endianness lint."""

    @app.command("check-endianness")
    def check_endianness(
        files: Optional[List[Path]] = typer.Argument(
            None,
            help="Persistence-format files touched by the change.",
        ),
    ) -> None:
        """Flag native-endian conversions and width-dependent persisted fields."""
        if not files:
            typer.echo("Usage: archgates check-endianness <file> [file ...]")
            typer.echo("Pass only touched persistence-format files.")
            return
        report = check_files(files)
        for line in render_report(report):
            typer.echo(line)
        if report.exit_code:
            raise typer.Exit(report.exit_code)
