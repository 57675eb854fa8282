"""Public API surface for ag_common."""

from ag_common.errors import (
    ConfigurationError,
    HarnessError,
    InstanceLaunchError,
    PersistenceViolationError,
    ReadinessTimeoutError,
    SetupError,
    StageFailedError,
    UnexpectedResponseError,
    error_to_payload,
    format_context,
)
from ag_common.logging import configure_logging

__all__ = [
    "configure_logging",
    "ConfigurationError",
    "HarnessError",
    "InstanceLaunchError",
    "PersistenceViolationError",
    "ReadinessTimeoutError",
    "SetupError",
    "StageFailedError",
    "UnexpectedResponseError",
    "error_to_payload",
    "format_context",
]
