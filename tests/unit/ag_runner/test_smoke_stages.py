"""container_smoke / startup_memory_smoke wiring with the instance layer faked out."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from ag_common.errors import SetupError
from ag_instance.api import ContainerLauncher, SubprocessLauncher
from ag_instance.models import BootRecord
from ag_runner.models.config import ContainerSmokeSettings, RunConfig
from ag_runner.suites import smoke

pytestmark = pytest.mark.unit_runner


@pytest.fixture
def repo(tmp_path) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text("log_level: INFO\n", encoding="utf-8")
    (tmp_path / "tools").mkdir()
    (tmp_path / "tools" / "entrypoint.sh").write_text("#!/bin/sh\nexec ./qdrant\n", encoding="utf-8")
    binary = tmp_path / "target" / "debug" / "qdrant"
    binary.parent.mkdir(parents=True)
    binary.write_text("#!/bin/sh\n", encoding="utf-8")
    binary.chmod(0o755)
    return tmp_path


@pytest.fixture
def ctx(repo):
    emitted: list[str] = []
    commands: list[list[str]] = []
    config = RunConfig.from_env({"S390X_CONTAINER_SMOKE": "1"}, repo_root=repo)
    return SimpleNamespace(
        config=config,
        emit=emitted.append,
        write=lambda _: None,
        run_command=lambda argv, cwd=None: commands.append(list(argv)),
        emitted=emitted,
        commands=commands,
    )


def _records():
    return [BootRecord("boot1", 120, 2048, 4096), BootRecord("boot2", 90, 2000, 2100)]


def test_prepare_image_context_lays_out_files(repo, tmp_path_factory):
    context_dir = tmp_path_factory.mktemp("image")
    dockerfile = smoke.prepare_image_context(
        repo, repo / "target" / "debug" / "qdrant", context_dir, ContainerSmokeSettings()
    )
    text = dockerfile.read_text(encoding="utf-8")
    assert text.startswith("FROM debian:13-slim")
    assert "EXPOSE 6333" in text and "EXPOSE 6334" in text
    assert (context_dir / "config" / "config.yaml").is_file()
    assert (context_dir / "entrypoint.sh").stat().st_mode & 0o111


def test_prepare_image_context_requires_entrypoint(repo, tmp_path_factory):
    (repo / "tools" / "entrypoint.sh").unlink()
    with pytest.raises(SetupError, match="entrypoint.sh"):
        smoke.prepare_image_context(
            repo,
            repo / "target" / "debug" / "qdrant",
            tmp_path_factory.mktemp("image"),
            ContainerSmokeSettings(),
        )


def test_container_smoke_builds_image_then_checks_restart(ctx, repo, monkeypatch):
    calls = {}

    def fake_check(stage_ctx, launcher, storage_root, collection, *, sample_memory):
        calls["launcher"] = launcher
        calls["collection"] = collection
        calls["sample_memory"] = sample_memory
        assert storage_root.is_dir()
        return _records()

    monkeypatch.setattr(smoke, "resolve_container_engine", lambda preferred: "podman")
    monkeypatch.setattr(smoke, "image_size_bytes", lambda engine, tag: "123456")
    monkeypatch.setattr(smoke, "_check_restart", fake_check)

    smoke.container_smoke(ctx)

    assert ctx.commands[0][:4] == ["cargo", "build", "-p", "qdrant"]
    assert ctx.commands[1][:4] == ["podman", "build", "-t", "qdrant-s390x-smoke:local"]
    assert isinstance(calls["launcher"], ContainerLauncher)
    assert calls["launcher"].engine == "podman"
    assert calls["collection"] == smoke.CONTAINER_SMOKE_COLLECTION
    assert calls["sample_memory"] is False
    assert "## image_size_bytes=123456" in ctx.emitted
    assert ctx.emitted[-1] == "container smoke ok"


def test_container_smoke_without_engine_is_setup_error(ctx, monkeypatch):
    monkeypatch.setattr(smoke.shutil, "which", lambda name: None)
    with pytest.raises(SetupError, match="neither podman nor docker"):
        smoke.container_smoke(ctx)
    assert ctx.commands == []


def test_startup_memory_smoke_samples_rss(ctx, monkeypatch):
    calls = {}

    def fake_check(stage_ctx, launcher, storage_root, collection, *, sample_memory):
        calls["launcher"] = launcher
        calls["collection"] = collection
        calls["sample_memory"] = sample_memory
        return _records()

    monkeypatch.setattr(smoke, "_check_restart", fake_check)
    smoke.startup_memory_smoke(ctx)

    assert isinstance(calls["launcher"], SubprocessLauncher)
    assert calls["launcher"].argv[0].endswith("target/debug/qdrant")
    assert calls["collection"] == smoke.PERF_SMOKE_COLLECTION
    assert calls["sample_memory"] is True


def test_build_checks_binary_exists(ctx, repo):
    (repo / "target" / "debug" / "qdrant").unlink()
    with pytest.raises(SetupError, match="expected qdrant binary"):
        smoke.build_service_binary(ctx, "debug")
