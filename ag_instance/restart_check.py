"""Two-boot persistence check: seed on boot1, verify on boot2 with the same storage."""

from __future__ import annotations

import logging
import time
from typing import Callable

from ag_common.errors import HarnessError, ReadinessTimeoutError
from ag_instance.client import ServiceClient
from ag_instance.lifecycle import InstanceHandle, InstanceLauncher, InstanceSpec, running_instance
from ag_instance.models import BootRecord
from ag_instance.readiness import DEFAULT_DEADLINE_SECONDS, DEFAULT_INTERVAL_SECONDS, wait_ready
from ag_instance.sampler import read_rss_kb
from ag_instance.workload import PersistenceCheckpoint, WorkloadClient, WorkloadDriver

logger = logging.getLogger(__name__)

SEED_BOOT = "boot1"
VERIFY_BOOT = "boot2"


class PersistenceRestartCheck:
    """Boot the instance twice against one storage path and compare."""

    def __init__(
        self,
        launcher: InstanceLauncher,
        spec: InstanceSpec,
        fixture: PersistenceCheckpoint,
        *,
        emit: Callable[[str], None],
        client_factory: Callable[[str], WorkloadClient] = ServiceClient,
        readiness_timeout: float = DEFAULT_DEADLINE_SECONDS,
        poll_interval: float = DEFAULT_INTERVAL_SECONDS,
        sample_memory: bool = True,
        sampler: Callable[[int | None], int] = read_rss_kb,
        ready_waiter: Callable[..., bool] = wait_ready,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.launcher = launcher
        self.spec = spec
        self.fixture = fixture
        self.emit = emit
        self.client_factory = client_factory
        self.readiness_timeout = readiness_timeout
        self.poll_interval = poll_interval
        self.sample_memory = sample_memory
        self.sampler = sampler
        self.ready_waiter = ready_waiter
        self.clock = clock

    def run(self) -> list[BootRecord]:
        """Run boot1 to completion (including teardown), then boot2."""
        records = [self.boot(SEED_BOOT)]
        records.append(self.boot(VERIFY_BOOT))
        return records

    def boot(self, label: str) -> BootRecord:
        started = self.clock()
        with running_instance(self.launcher, self.spec) as handle:
            ready = self.ready_waiter(
                handle.http_endpoint,
                self.readiness_timeout,
                interval_seconds=self.poll_interval,
            )
            if not ready:
                self.emit(
                    f"error: instance did not become ready within "
                    f"{self.readiness_timeout:g}s on {label}"
                )
                self._dump_logs(label, handle)
                raise ReadinessTimeoutError(
                    f"{label}: not ready within {self.readiness_timeout:g}s",
                    context={"boot": label, "endpoint": handle.http_endpoint},
                )

            ready_ms = int((self.clock() - started) * 1000)
            self.emit(f"## {label}: ready_ms={ready_ms}")
            rss_ready = self._sample(handle)
            if rss_ready is not None:
                self.emit(f"## {label}: rss_ready_kb={rss_ready}")

            driver = WorkloadDriver(self.client_factory(handle.http_endpoint), self.fixture)
            try:
                if label == SEED_BOOT:
                    driver.seed()
                    self.emit(f"## {label}: search_ok=1")
                else:
                    count = driver.verify()
                    self.emit(f"## {label}: points_count={count}")
                    self.emit(f"## {label}: points_ok=1")
            except HarnessError as exc:
                self.emit(f"error: {label}: {exc}")
                self._dump_logs(label, handle)
                raise

            rss_after = self._sample(handle)
            if rss_after is not None:
                self.emit(f"## {label}: rss_after_workload_kb={rss_after}")

        return BootRecord(
            label=label,
            ready_latency_ms=ready_ms,
            rss_kb_at_ready=rss_ready,
            rss_kb_after_workload=rss_after,
        )

    def _sample(self, handle: InstanceHandle) -> int | None:
        if not self.sample_memory or handle.pid is None:
            return None
        return self.sampler(handle.pid)

    def _dump_logs(self, label: str, handle: InstanceHandle) -> None:
        self.emit(f"## {label}: instance_logs")
        try:
            logs = self.launcher.logs(handle)
        except OSError as exc:
            logger.warning("Could not read logs for %s: %s", handle.instance_id, exc)
            logs = "<unable to fetch logs>"
        for line in logs.splitlines():
            self.emit(line)
