from __future__ import annotations

from pathlib import Path

import pytest

from ag_instance.lifecycle import InstancePorts, InstanceSpec, StoragePaths
from tests.helpers.fake_instance import FakeLauncher, InMemoryService


@pytest.fixture
def service() -> InMemoryService:
    return InMemoryService()


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def instance_spec(tmp_path: Path) -> InstanceSpec:
    storage = StoragePaths.under(tmp_path)
    storage.ensure()
    return InstanceSpec(ports=InstancePorts(http=16333, grpc=16334), storage=storage)
