from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from ag_common.api import HarnessError, error_to_payload, format_context
from ag_runner.api import RunConfig, Stage, StagePlanner, StageRunner, collect_host_facts
from ag_runner.models.config import DEFAULT_OUTPUT_DIR
from ag_runner.suites import (
    GATES_SUCCESS_MESSAGE,
    PERF_SUCCESS_MESSAGE,
    build_gates_stages,
    build_perf_stages,
    container_smoke,
)
from ag_ui.presenters.summary import render_summary

StageBuilder = Callable[[StagePlanner, RunConfig], List[Stage]]

err_console = Console(stderr=True)


def _container_only(planner: StagePlanner, config: RunConfig) -> List[Stage]:
    return [planner.internal("container_smoke", container_smoke)]


def _print_error(exc: HarnessError) -> None:
    payload = error_to_payload(exc)
    err_console.print(f"[bold red]error:[/bold red] {payload['error']}")
    if payload["error_context"]:
        err_console.print(
            f"[dim]{payload['error_type']}: {format_context(payload['error_context'])}[/dim]"
        )


def _run_suite(out_dir: Optional[Path], build: StageBuilder, success_message: str) -> None:
    try:
        config = RunConfig.from_env(output_dir=out_dir or DEFAULT_OUTPUT_DIR)
    except ValidationError as exc:
        err_console.print(f"[bold red]error:[/bold red] invalid configuration: {exc}")
        raise typer.Exit(1)

    facts = collect_host_facts()
    runner = StageRunner(config, facts, success_message=success_message)
    try:
        summary = runner.run(build(StagePlanner(config, facts), config))
    except HarnessError as exc:
        _print_error(exc)
        raise typer.Exit(1)

    if not render_summary(err_console, summary):
        raise typer.Exit(summary.exit_code)


def register_stage_commands(app: typer.Typer) -> None:
    """Register the stage suite commands on the given Typer app."""

    out_dir_argument = typer.Argument(
        None,
        help=f"Directory for per-stage logs (default: {DEFAULT_OUTPUT_DIR}).",
    )

    @app.command("gates")
    def gates(out_dir: Optional[Path] = out_dir_argument) -> None:
        """Build/test gates, then the optional fixture-matrix and container stages."""
        _run_suite(out_dir, build_gates_stages, GATES_SUCCESS_MESSAGE)

    @app.command("perf")
    def perf(out_dir: Optional[Path] = out_dir_argument) -> None:
        """Short benches and the startup latency/memory smoke."""
        _run_suite(out_dir, build_perf_stages, PERF_SUCCESS_MESSAGE)

    @app.command("container-smoke")
    def container_smoke_cmd(out_dir: Optional[Path] = out_dir_argument) -> None:
        """Run only the container persistence smoke, regardless of S390X_CONTAINER_SMOKE."""
        _run_suite(out_dir, _container_only, GATES_SUCCESS_MESSAGE)
