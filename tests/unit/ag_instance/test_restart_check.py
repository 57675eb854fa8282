"""Two-boot persistence check with a fake launcher and an in-memory service."""

from __future__ import annotations

import pytest

from ag_common.errors import PersistenceViolationError, ReadinessTimeoutError
from ag_instance.restart_check import PersistenceRestartCheck
from ag_instance.workload import PersistenceCheckpoint
from tests.helpers.fake_instance import FakeClient, FakeLauncher

pytestmark = pytest.mark.unit_instance


def _check(launcher, spec, service, lines, **kwargs):
    kwargs.setdefault("ready_waiter", lambda endpoint, timeout, interval_seconds: True)
    kwargs.setdefault("sampler", lambda pid: 2048)
    return PersistenceRestartCheck(
        launcher,
        spec,
        PersistenceCheckpoint(collection="smoke"),
        emit=lines.append,
        client_factory=lambda endpoint: FakeClient(service),
        **kwargs,
    )


def test_two_boots_share_storage(fake_launcher, instance_spec, service):
    lines: list[str] = []
    records = _check(fake_launcher, instance_spec, service, lines).run()

    assert fake_launcher.events == ["start1", "stop1", "start2", "stop2"]
    assert [r.label for r in records] == ["boot1", "boot2"]
    assert records[0].rss_kb_at_ready == 2048
    assert records[1].rss_kb_after_workload == 2048
    assert "## boot1: search_ok=1" in lines
    assert "## boot2: points_count=3" in lines
    assert "## boot2: points_ok=1" in lines
    assert any(line.startswith("## boot1: ready_ms=") for line in lines)
    assert "## boot1: rss_ready_kb=2048" in lines
    assert "## boot2: rss_after_workload_kb=2048" in lines


def test_boot2_never_writes(fake_launcher, instance_spec, service):
    _check(fake_launcher, instance_spec, service, []).run()
    boot2_calls = service.calls[service.calls.index("search smoke") + 1 :]
    assert boot2_calls == ["info smoke"]


def test_no_memory_lines_without_sampling(fake_launcher, instance_spec, service):
    lines: list[str] = []
    records = _check(fake_launcher, instance_spec, service, lines, sample_memory=False).run()
    assert records[0].rss_kb_at_ready is None
    assert not any("rss" in line for line in lines)


def test_no_memory_lines_without_pid(instance_spec, service):
    lines: list[str] = []
    _check(FakeLauncher(pid=None), instance_spec, service, lines).run()
    assert not any("rss" in line for line in lines)


def test_readiness_timeout_dumps_logs_and_stops(fake_launcher, instance_spec, service):
    lines: list[str] = []
    check = _check(
        fake_launcher,
        instance_spec,
        service,
        lines,
        readiness_timeout=2,
        ready_waiter=lambda endpoint, timeout, interval_seconds: False,
    )
    with pytest.raises(ReadinessTimeoutError, match="boot1"):
        check.run()

    assert fake_launcher.events == ["start1", "stop1"]
    assert lines[0] == "error: instance did not become ready within 2s on boot1"
    assert lines[1:] == ["## boot1: instance_logs", "line one", "line two"]


def test_lost_points_fail_on_boot2(fake_launcher, instance_spec, service):
    lines: list[str] = []
    check = _check(fake_launcher, instance_spec, service, lines)
    check.boot("boot1")
    service.collections["smoke"].pop(3)

    with pytest.raises(PersistenceViolationError):
        check.boot("boot2")
    assert fake_launcher.events[-1] == "stop2"
    assert "error: boot2: expected points_count >= 3, got 2" in lines
    assert lines[-3:] == ["## boot2: instance_logs", "line one", "line two"]
