"""Concrete stage suites."""

from ag_runner.suites.catalog import (
    GATES_SUCCESS_MESSAGE,
    PERF_SUCCESS_MESSAGE,
    build_gates_stages,
    build_perf_stages,
)
from ag_runner.suites.smoke import container_smoke, startup_memory_smoke

__all__ = [
    "GATES_SUCCESS_MESSAGE",
    "PERF_SUCCESS_MESSAGE",
    "build_gates_stages",
    "build_perf_stages",
    "container_smoke",
    "startup_memory_smoke",
]
