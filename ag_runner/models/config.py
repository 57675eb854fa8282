"""Run configuration (read once from the environment, passed explicitly)."""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ag_common.config.env import parse_float_env, parse_int_env, parse_path_env

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("dev-docs/s390x-validation")
SUPPORTED_PROFILES = ("debug", "release")


def generate_run_timestamp() -> str:
    """UTC timestamp used in every log file name of one run."""
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")


BENCH_ENV_VARS = {
    "vectors": "QDRANT_QBENCH_VECTORS",
    "dim": "QDRANT_QBENCH_DIM",
    "sample_size": "QDRANT_QBENCH_SAMPLE_SIZE",
    "warmup_secs": "QDRANT_QBENCH_WARMUP_SECS",
    "measurement_secs": "QDRANT_QBENCH_MEASUREMENT_SECS",
    "perf_warmup_secs": "S390X_PERF_WARMUP_SECS",
    "perf_measurement_secs": "S390X_PERF_MEASUREMENT_SECS",
    "perf_sample_size": "S390X_PERF_SAMPLE_SIZE",
}

READINESS_ENV_VARS = {
    "deadline_seconds": "AG_READY_TIMEOUT_SECS",
}

SettingsT = TypeVar("SettingsT", bound=BaseModel)


def settings_from_env(
    model: type[SettingsT],
    env: Mapping[str, str],
    env_vars: Mapping[str, str],
    parse: Callable[[str | None], object],
) -> SettingsT:
    """
    Build ``model`` from the variables in ``env_vars`` (field name -> variable).

    A value that does not parse, or parses but violates the field constraints,
    is ignored with a warning and the field keeps its default.
    """
    values: dict = {}
    for field_name, var in env_vars.items():
        raw = env.get(var)
        if raw is None or not raw.strip():
            continue
        value = parse(raw)
        if value is not None:
            try:
                model.model_validate({field_name: value})
            except ValidationError:
                value = None
        if value is None:
            logger.warning(
                "Ignoring %s=%r, keeping default %s",
                var,
                raw,
                model.model_fields[field_name].default,
            )
            continue
        values[field_name] = value
    return model.model_validate(values)


class BenchSettings(BaseModel):
    """Benchmark sizing, consumed only by the perf stages."""

    vectors: int = Field(default=4096, gt=0, description="Vectors per index build")
    dim: int = Field(default=64, gt=0, description="Vector dimensionality")
    sample_size: int = Field(default=10, gt=0, description="Criterion samples for qbench")
    warmup_secs: int = Field(default=1, ge=0, description="qbench warm-up time")
    measurement_secs: int = Field(default=2, gt=0, description="qbench measurement time")
    perf_warmup_secs: int = Field(default=1, ge=0, description="Warm-up time of perf bench stages")
    perf_measurement_secs: int = Field(default=2, gt=0, description="Measurement time of perf bench stages")
    perf_sample_size: int = Field(default=10, gt=0, description="Sample size of perf bench stages")

    def env(self) -> Dict[str, str]:
        return {var: str(getattr(self, name)) for name, var in BENCH_ENV_VARS.items()}


class ReadinessSettings(BaseModel):
    deadline_seconds: float = Field(default=30.0, gt=0, description="Readiness deadline per boot")
    interval_seconds: float = Field(default=0.2, gt=0, description="Constant delay between probes")


class ContainerSmokeSettings(BaseModel):
    """Options of the container_smoke stage."""

    enabled: bool = Field(default=False, description="S390X_CONTAINER_SMOKE")
    engine: Optional[str] = Field(default=None, description="CONTAINER_ENGINE; podman then docker when unset")
    profile: str = Field(default="debug", description="QDRANT_CONTAINER_PROFILE (debug|release)")
    tag: str = Field(default="qdrant-s390x-smoke:local", description="QDRANT_CONTAINER_TAG")
    base_image: str = Field(default="debian:13-slim", description="Runtime base image")

    @field_validator("profile", mode="before")
    @classmethod
    def _normalize_profile(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class RunConfig(BaseModel):
    """Everything a harness invocation needs, in one explicit object."""

    output_dir: Path = Field(default=DEFAULT_OUTPUT_DIR, description="Where per-stage logs accumulate")
    repo_root: Path = Field(default_factory=Path.cwd, description="Working directory of every stage")
    run_timestamp: str = Field(default_factory=generate_run_timestamp)
    cargo_incremental: str = Field(default="0", description="CARGO_INCREMENTAL for stage commands")
    target_arch: Optional[str] = Field(default=None, description="TARGETARCH; selects the cargo launcher for the service binary build")
    fixtures_dir: Optional[Path] = Field(default=None, description="S390X_FIXTURES_DIR")
    skip_benches: bool = Field(default=False, description="S390X_PERF_SKIP_BENCHES")
    perf_profile: str = Field(default="debug", description="QDRANT_PERF_PROFILE (debug|release)")
    container: ContainerSmokeSettings = Field(default_factory=ContainerSmokeSettings)
    bench: BenchSettings = Field(default_factory=BenchSettings)
    readiness: ReadinessSettings = Field(default_factory=ReadinessSettings)
    base_env: Dict[str, str] = Field(
        default_factory=dict,
        description="Environment inherited by stage commands and launched instances",
    )

    @field_validator("perf_profile", mode="before")
    @classmethod
    def _normalize_profile(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        output_dir: Path | None = None,
        repo_root: Path | None = None,
    ) -> "RunConfig":
        """Build a config from environment toggles; unset values keep defaults."""
        env = dict(os.environ if environ is None else environ)
        data: dict = {"base_env": env}
        if output_dir is not None:
            data["output_dir"] = output_dir
        if repo_root is not None:
            data["repo_root"] = repo_root
        if env.get("CARGO_INCREMENTAL"):
            data["cargo_incremental"] = env["CARGO_INCREMENTAL"]
        if env.get("TARGETARCH"):
            data["target_arch"] = env["TARGETARCH"]
        data["fixtures_dir"] = parse_path_env(env.get("S390X_FIXTURES_DIR"))
        data["skip_benches"] = env.get("S390X_PERF_SKIP_BENCHES", "0").strip() == "1"
        if env.get("QDRANT_PERF_PROFILE"):
            data["perf_profile"] = env["QDRANT_PERF_PROFILE"]

        container: dict = {"enabled": bool(env.get("S390X_CONTAINER_SMOKE"))}
        if env.get("CONTAINER_ENGINE"):
            container["engine"] = env["CONTAINER_ENGINE"]
        if env.get("QDRANT_CONTAINER_PROFILE"):
            container["profile"] = env["QDRANT_CONTAINER_PROFILE"]
        if env.get("QDRANT_CONTAINER_TAG"):
            container["tag"] = env["QDRANT_CONTAINER_TAG"]
        data["container"] = container

        data["bench"] = settings_from_env(BenchSettings, env, BENCH_ENV_VARS, parse_int_env)
        data["readiness"] = settings_from_env(
            ReadinessSettings, env, READINESS_ENV_VARS, parse_float_env
        )
        return cls.model_validate(data)

    def child_env(self) -> Dict[str, str]:
        """Environment for stage commands: inherited env plus run settings."""
        env = dict(self.base_env)
        env["CARGO_INCREMENTAL"] = self.cargo_incremental
        env.update(self.bench.env())
        return env
