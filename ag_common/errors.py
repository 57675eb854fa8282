"""Shared error taxonomy for archgates."""

from __future__ import annotations

from typing import Any, Mapping


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class HarnessError(Exception):
    """Base error type for typed failure handling."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__


class SetupError(HarnessError):
    """Missing external tool or unsupported build profile."""


class ConfigurationError(HarnessError):
    """Failure due to invalid configuration."""


class StageFailedError(HarnessError):
    """A command run on behalf of a stage exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int = 1,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context=context, cause=cause)
        self.exit_code = exit_code or 1


class InstanceLaunchError(HarnessError):
    """The service instance could not be started."""


class ReadinessTimeoutError(HarnessError):
    """The instance did not pass its health probe before the deadline."""


class UnexpectedResponseError(HarnessError):
    """The service under test answered with an unexpected status or shape."""


class PersistenceViolationError(HarnessError):
    """Fewer records were visible after a restart than were written before it."""


def error_to_payload(error: HarnessError) -> dict[str, Any]:
    """Convert a HarnessError to a summary payload."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_context": error.context,
    }


def _render_context_value(value: Any) -> str:
    if isinstance(value, list):
        return ",".join(_render_context_value(item) for item in value)
    return str(value)


def format_context(context: Mapping[str, Any]) -> str:
    """Render an error context as ``key=value`` pairs sorted by key."""
    return " ".join(f"{key}={_render_context_value(context[key])}" for key in sorted(context))
