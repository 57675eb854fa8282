"""
Sequential stage runner with per-stage logs and fail-fast semantics.
"""

from __future__ import annotations

import logging
import sys
from collections import Counter
from typing import Callable, Optional, Sequence

import structlog

from ag_common.errors import (
    ConfigurationError,
    HarnessError,
    StageFailedError,
    error_to_payload,
    format_context,
)
from ag_runner.engine.commands import stream_command
from ag_runner.engine.stages import RunSummary, Stage, StageContext, StageResult
from ag_runner.models.config import RunConfig
from ag_runner.services.host_facts import HostFacts
from ag_runner.services.stage_log import StageLog, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "All stages completed successfully."


def _stdout_write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class StageRunner:
    """Runs stages one at a time and stops at the first failure."""

    def __init__(
        self,
        config: RunConfig,
        facts: HostFacts,
        *,
        console: Optional[Callable[[str], None]] = None,
        success_message: str = DEFAULT_SUCCESS_MESSAGE,
    ) -> None:
        self.config = config
        self.facts = facts
        self.console = console or _stdout_write
        self.success_message = success_message

    def run(self, stages: Sequence[Stage]) -> RunSummary:
        """
        Execute ``stages`` in order.

        Skipped stages print a notice and produce no log. The first stage
        with a non-zero exit code ends the run; later stages never start.

        Returns:
            RunSummary with one result per executed stage.
        """
        self._ensure_unique(stages)
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        summary = RunSummary()

        for stage in stages:
            if stage.skip_reason:
                self.console(f"# stage={stage.name} skipped ({stage.skip_reason})\n")
                summary.skipped.append(stage.name)
                continue

            result = self.run_stage(stage)
            summary.results.append(result)
            if not result.succeeded:
                logger.error(
                    "Stage %s failed with rc=%s, see %s",
                    stage.name,
                    result.exit_code,
                    stage.log_path,
                )
                return summary

        self.console(f"\n{self.success_message}\n")
        return summary

    def run_stage(self, stage: Stage) -> StageResult:
        """Execute one stage inside its own log file.

        The stage name and host arch/endian are bound as structlog context
        variables while the stage runs, so every log record emitted on its
        behalf carries them.
        """
        with structlog.contextvars.bound_contextvars(
            stage=stage.name, arch=self.facts.arch, endian=self.facts.endian
        ):
            return self._run_logged(stage)

    def _run_logged(self, stage: Stage) -> StageResult:
        logger.info("Stage %s -> %s", stage.name, stage.log_path)
        started_at = utc_now()
        exit_code = 1
        with StageLog(stage.log_path, self.console) as log:
            log.header(
                stage=stage.name,
                started_at=started_at,
                cwd=self.config.repo_root,
                facts=self.facts,
                command=stage.describe(),
            )
            try:
                exit_code = self._execute(stage, log)
            finally:
                ended_at = utc_now()
                log.trailer(ended_at=ended_at, exit_code=exit_code)
        return StageResult(
            stage=stage,
            exit_code=exit_code,
            started_at=started_at,
            ended_at=ended_at,
        )

    def _execute(self, stage: Stage, log: StageLog) -> int:
        if not stage.is_internal:
            return stream_command(
                stage.command,  # type: ignore[arg-type]
                log.write,
                cwd=self.config.repo_root,
                env=self.config.child_env(),
            )

        context = StageContext(config=self.config, emit=log.line, write=log.write)
        try:
            rc = stage.command(context)  # type: ignore[operator]
        except StageFailedError as exc:
            self._report_error(stage, exc, log)
            return exc.exit_code
        except HarnessError as exc:
            self._report_error(stage, exc, log)
            return 1
        return 0 if rc is None else int(rc)

    @staticmethod
    def _report_error(stage: Stage, exc: HarnessError, log: StageLog) -> None:
        payload = error_to_payload(exc)
        log.line(f"error: {stage.name}: {payload['error']}")
        if payload["error_context"]:
            log.line(f"error_context: {format_context(payload['error_context'])}")
        logger.warning("Stage %s raised %s", stage.name, payload["error_type"])

    @staticmethod
    def _ensure_unique(stages: Sequence[Stage]) -> None:
        counts = Counter(stage.name for stage in stages)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ConfigurationError(
                f"duplicate stage names: {', '.join(duplicates)}",
                context={"duplicates": duplicates},
            )
