"""Stage runner facade for archgates.

Re-exports the runner-facing types used by the CLI and by tests.
"""

from ag_runner.api import RunConfig, RunSummary, Stage, StagePlanner, StageRunner

__all__ = ["RunConfig", "RunSummary", "Stage", "StagePlanner", "StageRunner"]
