"""Presenter for stage run summaries."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ag_runner.api import RunSummary


def build_summary_table(summary: RunSummary) -> Table:
    """One row per executed or skipped stage."""
    table = Table(title="Stage Summary", show_header=True, header_style="bold magenta")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("rc", justify="right")
    table.add_column("Duration (s)", justify="right", style="blue")
    table.add_column("Log")
    for result in summary.results:
        status = "[green]ok[/green]" if result.succeeded else "[red]failed[/red]"
        table.add_row(
            result.stage.name,
            status,
            str(result.exit_code),
            f"{result.duration_seconds:.1f}",
            str(result.stage.log_path),
        )
    for name in summary.skipped:
        table.add_row(name, "[yellow]skipped[/yellow]", "-", "-", "-")
    return table


def render_summary(console: Console, summary: RunSummary) -> bool:
    """Render the summary; returns True when no stage failed."""
    console.print(build_summary_table(summary))
    failed = summary.failed
    if failed is None:
        return True
    console.print(
        f"[bold red]error:[/bold red] stage {failed.stage.name} failed "
        f"(rc={failed.exit_code}); log: {failed.stage.log_path}"
    )
    return False
