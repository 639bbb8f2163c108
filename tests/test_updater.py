"""Integration tests for wsupdate.updater.WorkspaceUpdater over real git checkouts."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from conftest import FakeGit, FakeRunner, git
from wsupdate.config import UpdateConfig, WorkspaceConfig
from wsupdate.errors import FailureKind
from wsupdate.git_ops import GitClient, RepoStatus
from wsupdate.io_utils import write_text
from wsupdate.models import TaskState
from wsupdate.registry import ProjectRegistry
from wsupdate.updater import WorkspaceUpdater


@pytest.fixture
def workspace(tmp_path: Path, make_remote_clone) -> Path:
    """
    ws/
      alpha/          clone, with server/ and web/ clones inside
      beta/           plain directory, backend/ clone inside
      gamma/          clone, no components
      delta/          clone whose origin is unreachable
    """
    ws = tmp_path / "ws"
    alpha = make_remote_clone(ws / "alpha")
    # Nested component checkouts must not make the parent look dirty
    write_text(alpha.work / ".git" / "info" / "exclude", "server/\nweb/\n")
    make_remote_clone(ws / "alpha" / "server")
    make_remote_clone(ws / "alpha" / "web")

    (ws / "beta").mkdir(parents=True)
    make_remote_clone(ws / "beta" / "backend")

    make_remote_clone(ws / "gamma")

    delta = make_remote_clone(ws / "delta")
    git(delta.work, "remote", "set-url", "origin", str(tmp_path / "unreachable.git"))
    return ws


@pytest.fixture
def registry(workspace: Path) -> ProjectRegistry:
    return ProjectRegistry.from_config(WorkspaceConfig(workspace_directories=[str(workspace)]))


def _updater(registry: ProjectRegistry, runner: FakeRunner) -> WorkspaceUpdater:
    # Real git, recorded package managers
    return WorkspaceUpdater(registry, git=GitClient(), runner=runner)  # type: ignore[arg-type]


def _by_label(updater: WorkspaceUpdater) -> dict[str, TaskState]:
    return {r.label: r.state for r in updater.results}


# ── Target scenarios ────────────────────────────────────────────────


class TestTargets:
    def test_projects_and_suffixes(self, registry: ProjectRegistry, fake_runner: FakeRunner) -> None:
        updater = _updater(registry, fake_runner)
        cfg = UpdateConfig(max_parallel_jobs=2, targets=["alpha", "betas", "betaw"])
        stats = updater.run(cfg)

        assert [t.label for t in updater.tasks] == ["alpha", "alpha-server", "alpha-web", "beta-server"]
        assert _by_label(updater) == {
            "betaw": TaskState.FAILED,
            "alpha": TaskState.SUCCEEDED,
            "alpha-server": TaskState.SUCCEEDED,
            "alpha-web": TaskState.SUCCEEDED,
            "beta-server": TaskState.SUCCEEDED,
        }
        rejected = updater.results[0]
        assert rejected.failure is FailureKind.MISSING_COMPONENT
        assert rejected.message == "No web component found"

        assert stats.total_projects == 5
        assert stats.successful_updates == 4
        assert stats.failed_updates == 1
        assert stats.exit_code == 1
        assert sorted(fake_runner.executables()) == ["mvn", "mvn", "npm"]

    def test_unknown_specifier_is_isolated(self, registry: ProjectRegistry, fake_runner: FakeRunner) -> None:
        updater = _updater(registry, fake_runner)
        stats = updater.run(UpdateConfig(targets=["gamma", "totally-unknown-xyz"]))

        assert stats.total_projects == 2
        assert stats.successful_updates == 1
        assert stats.failed_updates == 1
        assert _by_label(updater)["totally-unknown-xyz"] is TaskState.FAILED

    def test_plain_project_root_is_skipped(self, registry: ProjectRegistry, fake_runner: FakeRunner) -> None:
        stats = _updater(registry, fake_runner).run(UpdateConfig(targets=["beta"]))
        assert stats.skipped_projects == 1
        assert stats.successful_updates == 1
        assert stats.failed_updates == 0
        assert stats.exit_code == 0


# ── Isolation and idempotence ───────────────────────────────────────


class TestBatchBehaviour:
    def test_failure_does_not_hide_success(self, registry: ProjectRegistry, fake_runner: FakeRunner) -> None:
        updater = _updater(registry, fake_runner)
        stats = updater.run(UpdateConfig(max_parallel_jobs=2, targets=["delta", "gamma"]))

        assert stats.successful_updates == 1
        assert stats.failed_updates == 1
        results = {r.label: r for r in updater.results}
        assert results["delta"].failure is FailureKind.PULL
        assert results["gamma"].state is TaskState.SUCCEEDED

    def test_rerun_has_no_branch_drift(
        self, registry: ProjectRegistry, workspace: Path, fake_runner: FakeRunner
    ) -> None:
        gamma = workspace / "gamma"
        git(gamma, "checkout", "-b", "feature-x")
        cfg = UpdateConfig(targets=["gamma"])

        for _ in range(2):
            before = git(gamma, "rev-parse", "--abbrev-ref", "HEAD")
            stats = _updater(registry, fake_runner).run(cfg)
            assert stats.successful_updates == 1
            assert stats.skipped_projects == 0
            assert git(gamma, "rev-parse", "--abbrev-ref", "HEAD") == before == "feature-x"

    def test_whole_workspace(self, registry: ProjectRegistry, fake_runner: FakeRunner) -> None:
        stats = _updater(registry, fake_runner).run(UpdateConfig(max_parallel_jobs=3))
        # alpha x3, beta main + server, gamma, delta
        assert stats.total_projects == 7
        assert stats.skipped_projects == 1
        assert stats.failed_updates == 1
        assert stats.successful_updates == 5


# ── Output and modes ────────────────────────────────────────────────


class TestRunModes:
    def test_header_and_summary(
        self, registry: ProjectRegistry, fake_runner: FakeRunner, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _updater(registry, fake_runner).run(UpdateConfig(max_parallel_jobs=2, targets=["gamma", "nope"]))
        out = capsys.readouterr().out
        assert "Starting workspace update with 2 parallel jobs..." in out
        assert "Components to process: 1" in out
        assert "nope: Unknown project" in out
        assert "Workspace update completed!" in out
        assert "Total projects: 2" in out

    def test_dry_run_touches_nothing(
        self, registry: ProjectRegistry, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        gamma = workspace / "gamma"
        git(gamma, "checkout", "-b", "feature-x")
        runner = FakeRunner()
        updater = _updater(registry, runner)
        stats = updater.run(UpdateConfig(targets=["gamma", "alphas"], dry_run=True))

        assert runner.calls == []
        assert stats.total_projects == 0
        assert git(gamma, "rev-parse", "--abbrev-ref", "HEAD") == "feature-x"
        out = capsys.readouterr().out
        assert "[INFO] Dry run" in out
        assert "gamma" in out
        assert "alpha-server" in out


# ── Concurrency with test doubles ───────────────────────────────────


class _CountingGit(FakeGit):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def status(self, path: Path, *, timeout: float | None = None) -> RepoStatus:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            return super().status(path, timeout=timeout)
        finally:
            with self._lock:
                self.active -= 1


class _CrashingGit(FakeGit):
    def status(self, path: Path, *, timeout: float | None = None) -> RepoStatus:
        if path.name == "p1":
            raise RuntimeError("unexpected")
        return super().status(path, timeout=timeout)


def _plain_registry(tmp_path: Path, count: int) -> ProjectRegistry:
    projects = {}
    for i in range(count):
        path = tmp_path / f"p{i}"
        path.mkdir()
        projects[path.name] = path
    return ProjectRegistry(projects)


class TestConcurrency:
    @pytest.mark.parametrize("jobs", [1, 3])
    def test_in_flight_bounded_by_jobs(self, tmp_path: Path, jobs: int) -> None:
        fg = _CountingGit(status_delay=0.05)
        updater = WorkspaceUpdater(_plain_registry(tmp_path, 8), git=fg, runner=FakeRunner())  # type: ignore[arg-type]
        stats = updater.run(UpdateConfig(max_parallel_jobs=jobs))
        assert stats.successful_updates == 8
        assert 1 <= fg.peak <= jobs

    def test_verbose_config_enables_debug(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        updater = WorkspaceUpdater(_plain_registry(tmp_path, 2), git=FakeGit(), runner=FakeRunner())  # type: ignore[arg-type]
        updater.run(UpdateConfig(verbose=True))
        assert "[DEBUG] Peak concurrent updates:" in capsys.readouterr().out

        updater.run(UpdateConfig(verbose=False))
        assert "[DEBUG]" not in capsys.readouterr().out

    def test_crashing_task_is_contained(self, tmp_path: Path) -> None:
        updater = WorkspaceUpdater(
            _plain_registry(tmp_path, 3), git=_CrashingGit(), runner=FakeRunner()  # type: ignore[arg-type]
        )
        stats = updater.run(UpdateConfig(max_parallel_jobs=2))
        assert stats.total_projects == 3
        assert stats.failed_updates == 1
        crashed = next(r for r in updater.results if r.label == "p1")
        assert crashed.failure is FailureKind.COMMAND
        assert "RuntimeError: unexpected" in crashed.message
