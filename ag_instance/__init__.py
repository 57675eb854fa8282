"""Instance lifecycle, workload and persistence-restart checks."""

from ag_instance.api import (
    BootRecord,
    ContainerLauncher,
    InstanceHandle,
    InstancePorts,
    InstanceSpec,
    PersistenceCheckpoint,
    PersistenceRestartCheck,
    ServiceClient,
    StoragePaths,
    SubprocessLauncher,
    WorkloadDriver,
    allocate_port,
    read_rss_kb,
    running_instance,
    wait_ready,
)

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
    "read_rss_kb",
    "running_instance",
    "wait_ready",
]
