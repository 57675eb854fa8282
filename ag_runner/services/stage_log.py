"""Per-stage log artifacts: deterministic names, header, tee'd body, trailer."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Optional, TextIO

from ag_runner.services.host_facts import HostFacts


def stage_log_path(
    output_dir: Path, stage: str, arch: str, endian: str, timestamp: str
) -> Path:
    """``<output_dir>/<stage>_<arch>_<endian>_<timestamp>.log``"""
    return output_dir / f"{stage}_{arch}_{endian}_{timestamp}.log"


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_utc(moment: datetime) -> str:
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _one_line(value: str) -> str:
    return "; ".join(part.strip() for part in value.splitlines() if part.strip())


class StageLog:
    """Writes everything both to the stage's own file and to the console."""

    def __init__(self, path: Path, console: Callable[[str], None]) -> None:
        self.path = path
        self._console = console
        self._fh: Optional[TextIO] = None

    def open(self) -> "StageLog":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, "w", encoding="utf-8")
        return self

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "StageLog":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, text: str) -> None:
        if self._fh is not None:
            self._fh.write(text)
            self._fh.flush()
        self._console(text)

    def line(self, text: str = "") -> None:
        self.write(f"{text}\n")

    def header(
        self,
        *,
        stage: str,
        started_at: datetime,
        cwd: Path,
        facts: HostFacts,
        command: str,
    ) -> None:
        self.line(f"# stage={stage}")
        self.line(f"# start_utc={format_utc(started_at)}")
        self.line(f"# pwd={cwd}")
        self.line(f"# uname={facts.uname}")
        self.line(f"# rustc={_one_line(facts.rustc)}")
        self.line(f"# cargo={_one_line(facts.cargo)}")
        self.line(f"# cmd={command}")
        self.line()

    def trailer(self, *, ended_at: datetime, exit_code: int) -> None:
        self.line()
        self.line(f"# end_utc={format_utc(ended_at)}")
        self.line(f"# rc={exit_code}")
