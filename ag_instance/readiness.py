"""Readiness polling for freshly started instances."""

from __future__ import annotations

import logging
import time
from typing import Callable
from urllib import error, request

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 30.0
DEFAULT_INTERVAL_SECONDS = 0.2
HEALTH_PATH = "/collections"
MIN_ATTEMPT_TIMEOUT_SECONDS = 0.01

HealthCheck = Callable[[str, float], bool]


def http_probe(endpoint: str, timeout_seconds: float = DEFAULT_INTERVAL_SECONDS) -> bool:
    """Return True when ``GET <endpoint>/collections`` answers 2xx within the timeout."""
    url = f"{endpoint.rstrip('/')}{HEALTH_PATH}"
    try:
        with request.urlopen(url, timeout=timeout_seconds) as resp:  # nosec B310
            return 200 <= resp.status < 300
    except (error.URLError, ConnectionError, TimeoutError, OSError):
        return False


def wait_ready(
    endpoint: str,
    deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
    *,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    probe: HealthCheck | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Probe ``endpoint`` at a constant interval until it answers or time runs out.

    Each attempt gets at most one interval, clipped to what is left of the
    deadline, as its timeout. The final sleep is clipped the same way, so a
    failure is reported no later than one interval after the deadline even
    when the endpoint accepts connections and never answers.
    """
    check = probe or http_probe
    start = clock()
    attempts = 0
    while True:
        attempts += 1
        remaining = deadline_seconds - (clock() - start)
        attempt_timeout = min(interval_seconds, max(remaining, MIN_ATTEMPT_TIMEOUT_SECONDS))
        if check(endpoint, attempt_timeout):
            logger.debug("%s ready after %d attempt(s)", endpoint, attempts)
            return True
        elapsed = clock() - start
        if elapsed >= deadline_seconds:
            logger.warning(
                "%s not ready after %.1fs (%d attempts)", endpoint, elapsed, attempts
            )
            return False
        sleep(min(interval_seconds, deadline_seconds - elapsed))
