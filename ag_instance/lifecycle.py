"""Start and stop service instances as local processes or containers."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Mapping, Protocol, Sequence

from ag_common.errors import InstanceLaunchError, SetupError

logger = logging.getLogger(__name__)

CONTAINER_HTTP_PORT = 6333
CONTAINER_GRPC_PORT = 6334
CONTAINER_STORAGE_PATH = "/qdrant/storage"
CONTAINER_SNAPSHOTS_PATH = "/qdrant/snapshots"
CONTAINER_TEMP_PATH = "/qdrant/tmp"


@dataclass(frozen=True)
class StoragePaths:
    """The three directories an instance owns: data, snapshot archive, scratch."""

    data: Path
    snapshots: Path
    temp: Path

    @classmethod
    def under(cls, root: Path) -> "StoragePaths":
        return cls(data=root / "storage", snapshots=root / "snapshots", temp=root / "tmp")

    def ensure(self) -> None:
        for path in (self.data, self.snapshots, self.temp):
            path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class InstancePorts:
    http: int
    grpc: int


@dataclass(frozen=True)
class InstanceSpec:
    """Everything needed to boot one instance."""

    ports: InstancePorts
    storage: StoragePaths
    bind_host: str = "127.0.0.1"
    extra_env: Mapping[str, str] = field(default_factory=dict)

    @property
    def http_endpoint(self) -> str:
        return f"http://127.0.0.1:{self.ports.http}"

    @property
    def grpc_endpoint(self) -> str:
        return f"http://127.0.0.1:{self.ports.grpc}"


def service_env(
    *,
    bind_host: str,
    http_port: int,
    grpc_port: int,
    storage_path: str | Path,
    snapshots_path: str | Path,
    temp_path: str | Path,
) -> dict[str, str]:
    """Render the fixed configuration environment of a service instance."""
    return {
        "QDRANT__SERVICE__HOST": bind_host,
        "QDRANT__SERVICE__HTTP_PORT": str(http_port),
        "QDRANT__SERVICE__GRPC_PORT": str(grpc_port),
        "QDRANT__STORAGE__STORAGE_PATH": str(storage_path),
        "QDRANT__STORAGE__SNAPSHOTS_PATH": str(snapshots_path),
        "QDRANT__STORAGE__TEMP_PATH": str(temp_path),
        "QDRANT__TELEMETRY_DISABLED": "true",
        "RUST_LOG": "warn",
    }


@dataclass
class InstanceHandle:
    """A started instance. Owned by the launcher that created it."""

    kind: str
    instance_id: str
    http_endpoint: str
    grpc_endpoint: str
    storage: StoragePaths
    log_sink: Path | None = None
    pid: int | None = None
    process: subprocess.Popen | None = field(default=None, repr=False)
    stopped: bool = False


class InstanceLauncher(Protocol):
    def start(self, spec: InstanceSpec) -> InstanceHandle: ...

    def stop(self, handle: InstanceHandle) -> None: ...

    def logs(self, handle: InstanceHandle, tail: int = 80) -> str: ...


def require_tool(name: str) -> str:
    """Return the resolved path of ``name`` or raise SetupError."""
    resolved = shutil.which(name)
    if resolved is None:
        raise SetupError(f"{name} is required but was not found in PATH", context={"tool": name})
    return resolved


def resolve_container_engine(preferred: str | None = None) -> str:
    """Pick the container engine: explicit choice, else podman, else docker."""
    if preferred:
        require_tool(preferred)
        return preferred
    for candidate in ("podman", "docker"):
        if shutil.which(candidate):
            return candidate
    raise SetupError("neither podman nor docker is available")


class SubprocessLauncher:
    """Run the service binary directly, with output sent to a log file."""

    def __init__(
        self,
        argv: Sequence[str],
        log_path: Path,
        *,
        base_env: Mapping[str, str] | None = None,
        stop_timeout: float = 10.0,
    ) -> None:
        self.argv = list(argv)
        self.log_path = log_path
        self.base_env = dict(os.environ if base_env is None else base_env)
        self.stop_timeout = stop_timeout

    def start(self, spec: InstanceSpec) -> InstanceHandle:
        env = dict(self.base_env)
        env.update(
            service_env(
                bind_host=spec.bind_host,
                http_port=spec.ports.http,
                grpc_port=spec.ports.grpc,
                storage_path=spec.storage.data,
                snapshots_path=spec.storage.snapshots,
                temp_path=spec.storage.temp,
            )
        )
        env.update(spec.extra_env)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_path, "a", encoding="utf-8") as sink:
            sink.write(f"[launcher] starting: {' '.join(self.argv)}\n")
            sink.flush()
            try:
                proc = subprocess.Popen(
                    self.argv,
                    env=env,
                    stdout=sink,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                )
            except OSError as exc:
                raise InstanceLaunchError(
                    f"Failed to launch {self.argv[0]}",
                    context={"argv": self.argv},
                    cause=exc,
                ) from exc
        logger.info("Started pid %s on http port %s", proc.pid, spec.ports.http)
        return InstanceHandle(
            kind="process",
            instance_id=str(proc.pid),
            http_endpoint=spec.http_endpoint,
            grpc_endpoint=spec.grpc_endpoint,
            storage=spec.storage,
            log_sink=self.log_path,
            pid=proc.pid,
            process=proc,
        )

    def stop(self, handle: InstanceHandle) -> None:
        """Terminate the process and wait for it; safe to call repeatedly."""
        if handle.stopped:
            return
        proc = handle.process
        if proc is not None and proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("pid %s ignored SIGTERM, killing", proc.pid)
                proc.kill()
                proc.wait()
        handle.stopped = True
        logger.info("Stopped pid %s", handle.instance_id)

    def logs(self, handle: InstanceHandle, tail: int = 80) -> str:
        if handle.log_sink is None or not handle.log_sink.exists():
            return "<no logs>"
        with open(handle.log_sink, encoding="utf-8", errors="replace") as fh:
            lines = deque(fh, maxlen=tail)
        return "".join(lines).rstrip() or "<no logs>"


class ContainerLauncher:
    """Run the service from a local image with the storage dirs bind-mounted."""

    def __init__(
        self,
        engine: str,
        image: str,
        *,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.engine = engine
        self.image = image
        self._run = runner

    def build_command(self, spec: InstanceSpec) -> list[str]:
        env = service_env(
            bind_host="0.0.0.0",
            http_port=CONTAINER_HTTP_PORT,
            grpc_port=CONTAINER_GRPC_PORT,
            storage_path=CONTAINER_STORAGE_PATH,
            snapshots_path=CONTAINER_SNAPSHOTS_PATH,
            temp_path=CONTAINER_TEMP_PATH,
        )
        env.update(spec.extra_env)
        env_args: list[str] = []
        for key, value in env.items():
            env_args.extend(["-e", f"{key}={value}"])
        return [
            self.engine,
            "run",
            "-d",
            "--rm",
            "-p",
            f"127.0.0.1:{spec.ports.http}:{CONTAINER_HTTP_PORT}",
            "-p",
            f"127.0.0.1:{spec.ports.grpc}:{CONTAINER_GRPC_PORT}",
            "-v",
            f"{spec.storage.data}:{CONTAINER_STORAGE_PATH}",
            "-v",
            f"{spec.storage.snapshots}:{CONTAINER_SNAPSHOTS_PATH}",
            "-v",
            f"{spec.storage.temp}:{CONTAINER_TEMP_PATH}",
            *env_args,
            self.image,
        ]

    def start(self, spec: InstanceSpec) -> InstanceHandle:
        cmd = self.build_command(spec)
        logger.info("Starting container from %s via %s", self.image, self.engine)
        result = self._run(cmd, capture_output=True, text=True, check=False)
        lines = (result.stdout or "").strip().splitlines()
        if result.returncode != 0 or not lines:
            raise InstanceLaunchError(
                f"Failed to start container from {self.image}: "
                f"{(result.stderr or result.stdout or '').strip()}",
                context={"engine": self.engine, "rc": result.returncode},
            )
        container_id = lines[-1].strip()
        return InstanceHandle(
            kind="container",
            instance_id=container_id,
            http_endpoint=spec.http_endpoint,
            grpc_endpoint=spec.grpc_endpoint,
            storage=spec.storage,
        )

    def stop(self, handle: InstanceHandle) -> None:
        """Stop the container; ``--rm`` removes it. Safe to call repeatedly."""
        if handle.stopped:
            return
        result = self._run(
            [self.engine, "stop", handle.instance_id],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            logger.warning(
                "%s stop %s returned %s: %s",
                self.engine,
                handle.instance_id,
                result.returncode,
                (result.stderr or "").strip(),
            )
        handle.stopped = True

    def logs(self, handle: InstanceHandle, tail: int = 80) -> str:
        result = self._run(
            [self.engine, "logs", "--tail", str(tail), handle.instance_id],
            capture_output=True,
            text=True,
            check=False,
        )
        output = (result.stdout or "") + (result.stderr or "")
        return output.strip() or "<no logs>"


@contextmanager
def running_instance(
    launcher: InstanceLauncher, spec: InstanceSpec
) -> Iterator[InstanceHandle]:
    """Start an instance and stop it on every exit path."""
    handle = launcher.start(spec)
    try:
        yield handle
    finally:
        launcher.stop(handle)
