"""Stage definitions, results and the context handed to internal stages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ag_common.errors import StageFailedError
from ag_runner.engine.commands import stream_command
from ag_runner.models.config import RunConfig
from ag_runner.services.host_facts import HostFacts
from ag_runner.services.stage_log import stage_log_path

StageFunction = Callable[["StageContext"], Optional[int]]
StageCommand = Union[Sequence[str], StageFunction]


@dataclass(frozen=True)
class Stage:
    """One named, independently logged unit of work."""

    name: str
    command: StageCommand
    log_path: Path
    skip_reason: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return callable(self.command)

    def describe(self) -> str:
        if callable(self.command):
            return getattr(self.command, "__name__", self.name)
        return " ".join(self.command)


@dataclass(frozen=True)
class StageResult:
    stage: Stage
    exit_code: int
    started_at: datetime
    ended_at: datetime

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()


@dataclass
class RunSummary:
    results: List[StageResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def failed(self) -> Optional[StageResult]:
        for result in self.results:
            if not result.succeeded:
                return result
        return None

    @property
    def exit_code(self) -> int:
        failed = self.failed
        return failed.exit_code if failed else 0


@dataclass
class StageContext:
    """What an internal stage may use: the run config and the stage's output."""

    config: RunConfig
    emit: Callable[[str], None]
    write: Callable[[str], None]

    def run_command(self, argv: Sequence[str], *, cwd: Path | None = None) -> None:
        """Run a command as part of the stage; non-zero exit raises."""
        self.emit(f"## exec: {' '.join(argv)}")
        rc = stream_command(
            argv,
            self.write,
            cwd=cwd or self.config.repo_root,
            env=self.config.child_env(),
        )
        if rc != 0:
            raise StageFailedError(
                f"{argv[0]} exited with rc={rc}",
                exit_code=rc,
                context={"argv": list(argv)},
            )


class StagePlanner:
    """Builds the stage list of a run, naming each log file up front."""

    def __init__(self, config: RunConfig, facts: HostFacts) -> None:
        self.config = config
        self.facts = facts

    def _log_path(self, name: str) -> Path:
        return stage_log_path(
            self.config.output_dir,
            name,
            self.facts.arch,
            self.facts.endian,
            self.config.run_timestamp,
        )

    def command(self, name: str, *argv: str) -> Stage:
        return Stage(name=name, command=tuple(argv), log_path=self._log_path(name))

    def internal(self, name: str, func: StageFunction) -> Stage:
        return Stage(name=name, command=func, log_path=self._log_path(name))

    def skipped(self, stage: Stage, reason: str) -> Stage:
        return replace(stage, skip_reason=reason)
