"""Shared helpers for archgates."""

from ag_common.api import HarnessError, configure_logging

__all__ = ["configure_logging", "HarnessError"]
