"""Run external commands with merged output streamed line by line."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Mapping, Sequence

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


def stream_command(
    argv: Sequence[str],
    write: Callable[[str], None],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run ``argv``, pass every output line to ``write``, return the exit status."""
    logger.debug("exec %s (cwd=%s)", " ".join(argv), cwd)
    try:
        process = subprocess.Popen(
            list(argv),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            bufsize=1,
        )
    except OSError as exc:
        write(f"error: cannot execute {argv[0]}: {exc}\n")
        return COMMAND_NOT_FOUND

    if process.stdout:
        for line in process.stdout:
            write(line)
    process.wait()
    return process.returncode
