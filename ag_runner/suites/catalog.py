"""The fixed stage lists behind ``archgates gates`` and ``archgates perf``."""

from __future__ import annotations

from typing import List

from ag_runner.engine.stages import Stage, StagePlanner
from ag_runner.models.config import RunConfig
from ag_runner.suites.smoke import container_smoke, startup_memory_smoke

GATES_SUCCESS_MESSAGE = "All stages completed successfully."
PERF_SUCCESS_MESSAGE = "All perf smoke stages completed successfully."
CARGO = "cargo"


def build_gates_stages(planner: StagePlanner, config: RunConfig) -> List[Stage]:
    """High-signal build/test subset, then the optional fixture and container stages."""
    rocks = ("--features", "rocksdb")

    def cargo_stage(name: str, *args: str) -> Stage:
        return planner.command(name, CARGO, *args)

    stages = [
        cargo_stage("qdrant_check", "check", "-p", "qdrant", "--locked"),
        cargo_stage("qdrant_check_rocksdb", "check", "-p", "qdrant", *rocks, "--locked"),
        cargo_stage(
            "workspace_build_tests", "build", "--workspace", *rocks, "--tests", "--locked"
        ),
        cargo_stage("common_stable_hash", "test", "-p", "common", "stable_hash", "--locked"),
        cargo_stage("common_mmap_hashmap", "test", "-p", "common", "mmap_hashmap", "--locked"),
        cargo_stage(
            "collection_routing",
            "test",
            "-p",
            "collection",
            "--locked",
            "test_routing_is_stable_across_architectures",
        ),
        cargo_stage("quantization", "test", "-p", "quantization", "--locked"),
        cargo_stage("segment_endian", "test", "-p", "segment", "endian", "--locked"),
        cargo_stage(
            "segment_mmap_point_to_values",
            "test",
            "-p",
            "segment",
            "--locked",
            "mmap_point_to_values",
        ),
        cargo_stage("qdrant_norun", "test", "-p", "qdrant", *rocks, "--locked", "--no-run"),
        cargo_stage(
            "qdrant_http_smoke",
            "test", "-p", "qdrant", *rocks, "--locked",
            "--test", "s390x_http_smoke", "--", "--ignored",
        ),
        cargo_stage(
            "qdrant_snapshot_smoke",
            "test", "-p", "qdrant", *rocks, "--locked",
            "--test", "s390x_snapshot_smoke", "--", "--ignored",
        ),
    ]

    fixture_matrix = cargo_stage(
        "qdrant_snapshot_fixture_matrix",
        "test", "-p", "qdrant", *rocks, "--locked",
        "--test", "s390x_snapshot_fixture_matrix", "--", "--ignored",
    )
    if config.fixtures_dir is None:
        fixture_matrix = planner.skipped(fixture_matrix, "set S390X_FIXTURES_DIR to enable")
    stages.append(fixture_matrix)

    smoke = planner.internal("container_smoke", container_smoke)
    if not config.container.enabled:
        smoke = planner.skipped(smoke, "set S390X_CONTAINER_SMOKE=1 to enable")
    stages.append(smoke)
    return stages


def build_perf_stages(planner: StagePlanner, config: RunConfig) -> List[Stage]:
    """Short bench runs plus the startup latency/RSS smoke."""
    bench = config.bench
    criterion = (
        "--warm-up-time", str(bench.perf_warmup_secs),
        "--measurement-time", str(bench.perf_measurement_secs),
        "--sample-size", str(bench.perf_sample_size),
    )
    benches = [
        planner.command(
            "hnsw_persistence_smoke",
            CARGO, "bench", "-p", "segment", "--features", "rocksdb",
            "--bench", "hnsw_persistence_smoke", "--", *criterion,
        ),
        planner.command(
            "sparse_index_build",
            CARGO, "bench", "-p", "segment", "--features", "rocksdb",
            "--bench", "sparse_index_build", "--", *criterion,
        ),
        planner.command(
            "quantization_persistence_smoke",
            CARGO, "bench", "-p", "quantization",
            "--bench", "persistence_smoke", "--", "--nocapture",
        ),
    ]
    if config.skip_benches:
        benches = [
            planner.skipped(stage, "set S390X_PERF_SKIP_BENCHES=0 to run")
            for stage in benches
        ]
    return [*benches, planner.internal("startup_memory_smoke", startup_memory_smoke)]
