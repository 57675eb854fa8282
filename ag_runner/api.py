"""Stable runner API surface."""

from ag_runner.engine.runner import StageRunner
from ag_runner.engine.stages import (
    RunSummary,
    Stage,
    StageContext,
    StagePlanner,
    StageResult,
)
from ag_runner.models.config import (
    BenchSettings,
    ContainerSmokeSettings,
    ReadinessSettings,
    RunConfig,
)
from ag_runner.services.host_facts import HostFacts, collect_host_facts

__all__ = [
    "BenchSettings",
    "ContainerSmokeSettings",
    "HostFacts",
    "ReadinessSettings",
    "RunConfig",
    "RunSummary",
    "Stage",
    "StageContext",
    "StagePlanner",
    "StageResult",
    "StageRunner",
    "collect_host_facts",
]
