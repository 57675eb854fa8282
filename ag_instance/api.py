"""Public API surface for ag_instance."""

from ag_instance.client import ServiceClient
from ag_instance.lifecycle import (
    ContainerLauncher,
    InstanceHandle,
    InstancePorts,
    InstanceSpec,
    StoragePaths,
    SubprocessLauncher,
    require_tool,
    resolve_container_engine,
    running_instance,
)
from ag_instance.models import BootRecord
from ag_instance.ports import allocate_port, allocate_ports
from ag_instance.readiness import wait_ready
from ag_instance.restart_check import PersistenceRestartCheck
from ag_instance.sampler import read_rss_kb
from ag_instance.workload import PersistenceCheckpoint, WorkloadDriver

__all__ = [
    "BootRecord",
    "ContainerLauncher",
    "InstanceHandle",
    "InstancePorts",
    "InstanceSpec",
    "PersistenceCheckpoint",
    "PersistenceRestartCheck",
    "ServiceClient",
    "StoragePaths",
    "SubprocessLauncher",
    "WorkloadDriver",
    "allocate_port",
    "allocate_ports",
    "read_rss_kb",
    "require_tool",
    "resolve_container_engine",
    "running_instance",
    "wait_ready",
]
