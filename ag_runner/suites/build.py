"""Cargo invocation helpers shared by the stage suites."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from ag_common.errors import SetupError
from ag_runner.engine.stages import StageContext
from ag_runner.models.config import SUPPORTED_PROFILES

SERVICE_PACKAGE = "qdrant"
SERVICE_FEATURES = "rocksdb"


def cargo_launcher(target_arch: Optional[str]) -> List[str]:
    """Cargo prefix for a build target; amd64 links through mold."""
    if target_arch == "amd64":
        return ["./mold/bin/mold", "-run", "cargo"]
    return ["cargo"]


def service_build_argv(profile: str, target_arch: Optional[str] = None) -> List[str]:
    if profile not in SUPPORTED_PROFILES:
        raise SetupError(
            f"unsupported build profile '{profile}' (use debug|release)",
            context={"profile": profile},
        )
    argv = [
        *cargo_launcher(target_arch),
        "build",
        "-p",
        SERVICE_PACKAGE,
        "--features",
        SERVICE_FEATURES,
        "--locked",
    ]
    if profile == "release":
        argv.append("--release")
    return argv


def service_binary_path(repo_root: Path, profile: str) -> Path:
    return repo_root / "target" / profile / SERVICE_PACKAGE


def build_service_binary(ctx: StageContext, profile: str) -> Path:
    """Build the service for ``profile`` and return the executable path."""
    argv = service_build_argv(profile, ctx.config.target_arch)
    ctx.emit(f"## profile={profile}")
    ctx.run_command(argv)
    binary = service_binary_path(ctx.config.repo_root, profile)
    if not binary.is_file() or not os.access(binary, os.X_OK):
        raise SetupError(f"expected {SERVICE_PACKAGE} binary at {binary}")
    return binary
