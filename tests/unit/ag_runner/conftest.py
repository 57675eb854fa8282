from __future__ import annotations

import os

import pytest

from ag_runner.api import HostFacts, RunConfig, StagePlanner


@pytest.fixture
def host_facts() -> HostFacts:
    return HostFacts(
        arch="s390x",
        endian="big",
        uname="Linux gate 6.8.0 s390x",
        rustc="rustc 1.80.0\nhost: s390x-unknown-linux-gnu",
        cargo="cargo 1.80.0",
    )


@pytest.fixture
def run_config(tmp_path) -> RunConfig:
    return RunConfig(
        output_dir=tmp_path / "out",
        repo_root=tmp_path,
        run_timestamp="20260101T000000Z",
        base_env={"PATH": os.environ.get("PATH", "")},
    )


@pytest.fixture
def planner(run_config, host_facts) -> StagePlanner:
    return StagePlanner(run_config, host_facts)


@pytest.fixture
def console_lines():
    captured: list[str] = []
    return captured
