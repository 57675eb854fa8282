"""
Internal stages that boot the real service twice and check persistence.

``container_smoke`` packages the native binary into a local image and runs it
under podman/docker; ``startup_memory_smoke`` runs the binary directly and
also samples its resident memory.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from ag_common.errors import SetupError
from ag_instance.api import (
    ContainerLauncher,
    InstancePorts,
    InstanceSpec,
    PersistenceCheckpoint,
    PersistenceRestartCheck,
    StoragePaths,
    SubprocessLauncher,
    allocate_ports,
    resolve_container_engine,
)
from ag_instance.lifecycle import CONTAINER_GRPC_PORT, CONTAINER_HTTP_PORT, InstanceLauncher
from ag_instance.models import BootRecord
from ag_runner.engine.stages import StageContext
from ag_runner.models.config import ContainerSmokeSettings
from ag_runner.suites.build import build_service_binary

logger = logging.getLogger(__name__)

CONTAINER_SMOKE_COLLECTION = "s390x_container_smoke"
PERF_SMOKE_COLLECTION = "s390x_perf_smoke"

DOCKERFILE_TEMPLATE = """\
FROM {base_image}

RUN apt-get update \\
    && apt-get install -y --no-install-recommends ca-certificates tzdata libunwind8 \\
    && apt-get clean \\
    && rm -rf /var/lib/apt/lists/*

WORKDIR /qdrant
COPY qdrant /qdrant/qdrant
COPY config /qdrant/config
COPY entrypoint.sh /qdrant/entrypoint.sh
RUN chmod +x /qdrant/entrypoint.sh

ENV TZ=Etc/UTC \\
    RUN_MODE=production

EXPOSE {http_port}
EXPOSE {grpc_port}

CMD ["./entrypoint.sh"]
"""


def _check_restart(
    ctx: StageContext,
    launcher: InstanceLauncher,
    storage_root: Path,
    collection: str,
    *,
    sample_memory: bool,
) -> list[BootRecord]:
    storage = StoragePaths.under(storage_root)
    storage.ensure()
    http_port, grpc_port = allocate_ports(2)
    spec = InstanceSpec(ports=InstancePorts(http=http_port, grpc=grpc_port), storage=storage)
    check = PersistenceRestartCheck(
        launcher,
        spec,
        PersistenceCheckpoint(collection=collection),
        emit=ctx.emit,
        readiness_timeout=ctx.config.readiness.deadline_seconds,
        poll_interval=ctx.config.readiness.interval_seconds,
        sample_memory=sample_memory,
    )
    return check.run()


def prepare_image_context(
    repo_root: Path, binary: Path, context_dir: Path, settings: ContainerSmokeSettings
) -> Path:
    """Lay out binary, config and entrypoint plus a Dockerfile in ``context_dir``."""
    config_dir = repo_root / "config"
    entrypoint = repo_root / "tools" / "entrypoint.sh"
    for required in (config_dir, entrypoint):
        if not required.exists():
            raise SetupError(f"expected {required} to build the smoke image")
    shutil.copy2(binary, context_dir / "qdrant")
    shutil.copytree(config_dir, context_dir / "config")
    shutil.copy2(entrypoint, context_dir / "entrypoint.sh")
    for name in ("qdrant", "entrypoint.sh"):
        (context_dir / name).chmod(0o755)
    dockerfile = context_dir / "Dockerfile"
    dockerfile.write_text(
        DOCKERFILE_TEMPLATE.format(
            base_image=settings.base_image,
            http_port=CONTAINER_HTTP_PORT,
            grpc_port=CONTAINER_GRPC_PORT,
        ),
        encoding="utf-8",
    )
    return dockerfile


def image_size_bytes(engine: str, tag: str) -> str:
    result = subprocess.run(
        [engine, "image", "inspect", tag, "--format", "{{.Size}}"],
        capture_output=True,
        text=True,
        check=False,
    )
    lines = (result.stdout or "").strip().splitlines()
    if result.returncode != 0 or not lines:
        return "unknown"
    return lines[0].strip()


def container_smoke(ctx: StageContext) -> None:
    """Boot the packaged service twice in containers sharing one storage mount."""
    settings = ctx.config.container
    engine = resolve_container_engine(settings.engine)
    ctx.emit(f"## container_engine={engine}")
    ctx.emit(f"## tag={settings.tag}")
    binary = build_service_binary(ctx, settings.profile)

    with tempfile.TemporaryDirectory(prefix="ag-image-") as image_dir:
        prepare_image_context(ctx.config.repo_root, binary, Path(image_dir), settings)
        ctx.run_command([engine, "build", "-t", settings.tag, image_dir])
    ctx.emit(f"## image_size_bytes={image_size_bytes(engine, settings.tag)}")

    # Files written by the container may belong to root; leftovers are tolerated.
    with tempfile.TemporaryDirectory(
        prefix="ag-container-", ignore_cleanup_errors=True
    ) as root:
        _check_restart(
            ctx,
            ContainerLauncher(engine, settings.tag),
            Path(root),
            CONTAINER_SMOKE_COLLECTION,
            sample_memory=False,
        )
    ctx.emit("container smoke ok")


def startup_memory_smoke(ctx: StageContext) -> None:
    """Boot the native binary twice, recording ready latency and RSS."""
    binary = build_service_binary(ctx, ctx.config.perf_profile)
    with tempfile.TemporaryDirectory(prefix="ag-perf-") as root:
        root_path = Path(root)
        launcher = SubprocessLauncher(
            [str(binary)],
            root_path / "qdrant.log",
            base_env=ctx.config.base_env,
        )
        records = _check_restart(
            ctx,
            launcher,
            root_path,
            PERF_SMOKE_COLLECTION,
            sample_memory=True,
        )
    for record in records:
        logger.info(
            "%s ready in %sms, rss %s -> %s kB",
            record.label,
            record.ready_latency_ms,
            record.rss_kb_at_ready,
            record.rss_kb_after_workload,
        )
