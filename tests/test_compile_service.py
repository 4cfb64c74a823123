from __future__ import annotations

from pathlib import Path

import pytest

from playground_services.errors import CommandTimeout, SpawnError, WorkspaceError
from playground_services.services.compile import BuildOrchestrator
from playground_services.storage.workspace import WorkspaceManager
from tests.conftest import CONTRACT_SPEC, HELLO_SOURCE, FakeRunner, Reply


@pytest.fixture()
def orchestrator(settings, runner: FakeRunner) -> BuildOrchestrator:
    return BuildOrchestrator(settings, runner, WorkspaceManager.from_settings(settings))  # type: ignore[arg-type]


def test_successful_build(orchestrator: BuildOrchestrator, runner: FakeRunner, projects_dir: Path):
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")

    project = projects_dir / "alice" / "counter"
    assert res.success
    assert res.status == "success"
    assert res.exit_code == 0
    assert "Finished" in res.stderr
    assert res.project_path == project
    assert res.artifact_path == project / "target/wasm32v1-none/release/hello_world.wasm"
    assert res.artifact_size == 64
    assert res.elapsed_seconds >= 0
    assert res.spec == CONTRACT_SPEC
    assert (project / "contracts/hello-world/src/lib.rs").read_text(encoding="utf-8") == HELLO_SOURCE

    assert runner.labels == [
        "rustup target add",
        "stellar contract build",
        "stellar contract bindings",
    ]
    build = runner.calls_for("stellar contract build")[0]
    assert build.cwd == project
    assert build.timeout == orchestrator.settings.build_timeout_seconds


def test_failed_build_is_a_result_not_an_error(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script(
        "stellar contract build",
        Reply(exit_code=101, stderr="error[E0425]: cannot find value `x` in this scope\n"),
    )
    res = orchestrator.build("broken", "alice", "counter")

    assert not res.success
    assert res.status == "failed"
    assert res.exit_code == 101
    assert "E0425" in res.stderr
    assert res.artifact_path is None
    assert res.artifact_size is None
    assert res.spec is None
    assert "stellar contract bindings" not in runner.labels


def test_signal_exit_is_reported_as_minus_one(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("stellar contract build", Reply(exit_code=-9))
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert not res.success
    assert res.exit_code == -1


def test_success_without_artifact(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("stellar contract build", Reply(stdout="nothing to do\n"))
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert res.success
    assert res.artifact_path is None
    assert res.artifact_size is None


def test_stale_artifact_from_previous_build_is_reported(orchestrator: BuildOrchestrator, runner: FakeRunner):
    orchestrator.build(HELLO_SOURCE, "alice", "counter")
    runner.script("stellar contract build", Reply(exit_code=1, stderr="error: aborting\n"))
    res = orchestrator.build("broken", "alice", "counter")
    assert not res.success
    assert res.artifact_path is not None
    assert res.artifact_size == 64


def test_target_install_failure_is_not_fatal(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("rustup target add", SpawnError("rustup missing"))
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert res.success
    assert "stellar contract build" in runner.labels


def test_ensure_targets_reports_installed(settings, runner: FakeRunner):
    settings.wasm_targets = ["wasm32v1-none", "wasm32-unknown-unknown"]
    calls = iter([Reply(), Reply(exit_code=1, stderr="error: toolchain not installed\n")])
    runner.script("rustup target add", lambda call: next(calls))
    orchestrator = BuildOrchestrator(settings, runner, WorkspaceManager.from_settings(settings))  # type: ignore[arg-type]

    assert orchestrator.ensure_targets() == ["wasm32v1-none"]
    assert [c.argv[-1] for c in runner.calls_for("rustup target add")] == [
        "wasm32v1-none",
        "wasm32-unknown-unknown",
    ]


def test_spec_extraction_failure_is_not_fatal(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("stellar contract bindings", Reply(stdout="not json"))
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert res.success
    assert res.artifact_path is not None
    assert res.spec is None

    runner.script("stellar contract bindings", Reply(exit_code=1, stderr="unknown subcommand"))
    assert orchestrator.build(HELLO_SOURCE, "alice", "counter").spec is None


def test_missing_stellar_cli_raises(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("stellar contract build", SpawnError("Failed to execute stellar contract build"))
    with pytest.raises(SpawnError):
        orchestrator.build(HELLO_SOURCE, "alice", "counter")


def test_build_timeout_raises(orchestrator: BuildOrchestrator, runner: FakeRunner):
    runner.script("stellar contract build", CommandTimeout("stellar contract build", 600))
    with pytest.raises(CommandTimeout):
        orchestrator.build(HELLO_SOURCE, "alice", "counter")


def test_missing_template_raises_before_any_command(settings, runner: FakeRunner, tmp_path: Path):
    settings.base_project_dir = tmp_path / "missing"
    orchestrator = BuildOrchestrator(settings, runner, WorkspaceManager.from_settings(settings))  # type: ignore[arg-type]
    with pytest.raises(WorkspaceError):
        orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert runner.calls == []
