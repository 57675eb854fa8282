"""Host facts recorded in every stage log header and file name.

Architecture comes from ``platform``; byte order prefers the Rust toolchain's
``target_endian`` (the build target is what matters for persisted formats)
and falls back to the interpreter's ``sys.byteorder``.
"""

from __future__ import annotations

import logging
import platform
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class HostFacts:
    arch: str
    endian: str
    uname: str
    rustc: str
    cargo: str


def _run(cmd: Sequence[str], runner: Runner) -> str:
    try:
        result = runner(list(cmd), capture_output=True, text=True, check=False)
    except OSError as exc:
        logger.debug("%s unavailable: %s", cmd[0], exc)
        return ""
    if result.returncode != 0:
        return ""
    return (result.stdout or "").strip()


def parse_target_endian(cfg_output: str) -> str | None:
    """Extract ``target_endian`` from ``rustc --print cfg`` output."""
    for line in cfg_output.splitlines():
        line = line.strip()
        if line.startswith("target_endian="):
            return line.split("=", 1)[1].strip().strip('"') or None
    return None


def detect_arch() -> str:
    return platform.machine() or "unknown"


def detect_endian(runner: Runner = subprocess.run) -> str:
    endian = parse_target_endian(_run(["rustc", "--print", "cfg"], runner))
    return endian or sys.byteorder


def collect_host_facts(runner: Runner = subprocess.run) -> HostFacts:
    """Probe the host once per run."""
    return HostFacts(
        arch=detect_arch(),
        endian=detect_endian(runner),
        uname=" ".join(part for part in platform.uname() if part),
        rustc=_run(["rustc", "-Vv"], runner),
        cargo=_run(["cargo", "-Vv"], runner),
    )
