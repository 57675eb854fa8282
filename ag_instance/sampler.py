"""
Resident memory sampling for running service instances.

Sampling is observational only: when no source can answer, the sampler
reports zero instead of failing the boot.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

import psutil

logger = logging.getLogger(__name__)


def _rss_from_psutil(pid: int) -> int | None:
    try:
        return int(psutil.Process(pid).memory_info().rss) // 1024
    except (psutil.Error, OSError) as exc:
        logger.debug("psutil could not read rss for pid %s: %s", pid, exc)
        return None


def _rss_from_ps(pid: int) -> int | None:
    ps = shutil.which("ps")
    if ps is None:
        return None
    try:
        result = subprocess.run(
            [ps, "-o", "rss=", "-p", str(pid)],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.debug("ps failed for pid %s: %s", pid, exc)
        return None
    for line in result.stdout.splitlines():
        fields = line.split()
        if fields:
            try:
                return int(fields[0])
            except ValueError:
                return None
    return None


def read_rss_kb(pid: int | None) -> int:
    """Return the resident set size of ``pid`` in kilobytes, or 0."""
    if pid is None:
        return 0
    for source in (_rss_from_psutil, _rss_from_ps):
        value = source(pid)
        if value is not None:
            return value
    return 0
