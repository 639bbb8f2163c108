"""Shared fixtures for wsupdate tests.

File handling in tests:
- Use tmp_path for any directory or file creation so tests are isolated and cleaned up.
- Use wsupdate.io_utils read_text/write_text for consistent UTF-8 I/O.
- Repositories are real: a seed repo pushes to a bare "origin", which is cloned
  into the workspace, so ``git pull --ff-only`` has something to talk to.
"""

from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from wsupdate import log
from wsupdate.errors import CommandTimeout, FailureKind, GitError
from wsupdate.git_ops import RepoStatus, is_main_branch
from wsupdate.io_utils import write_text
from wsupdate.process import CommandResult


def git(repo: Path, *args: str) -> str:
    """Run git in *repo* with a fixed identity; return stdout."""
    r = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@test", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return r.stdout.strip()


def _init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init")
    # Independent of the machine's init.defaultBranch
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    write_text(path / "README.md", "# Test\n")
    git(path, "add", "README.md")
    git(path, "commit", "-m", "Initial")
    return path


@dataclass
class RemoteClone:
    """A working clone plus the seed repo that feeds its origin."""

    seed: Path
    origin: Path
    work: Path

    def push_upstream_commit(self, name: str = "upstream.txt", content: str = "new\n") -> str:
        """Commit on the seed and push it to origin. Returns the new commit sha."""
        write_text(self.seed / name, content)
        git(self.seed, "add", name)
        git(self.seed, "commit", "-m", f"Add {name}")
        git(self.seed, "push", "origin", "main")
        return git(self.seed, "rev-parse", "HEAD")

    def branch(self) -> str:
        return git(self.work, "rev-parse", "--abbrev-ref", "HEAD")

    def head(self) -> str:
        return git(self.work, "rev-parse", "HEAD")


def _make_remote_clone(root: Path, work: Path) -> RemoteClone:
    name = work.name
    seed = _init_repo(root / "_seeds" / f"{name}-{work.parent.name}")
    origin = root / "_remotes" / f"{name}-{work.parent.name}.git"
    origin.parent.mkdir(parents=True, exist_ok=True)
    git(root, "clone", "--bare", str(seed), str(origin))
    git(seed, "remote", "add", "origin", str(origin))
    work.parent.mkdir(parents=True, exist_ok=True)
    git(root, "clone", str(origin), str(work))
    return RemoteClone(seed=seed, origin=origin, work=work)


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a minimal git repo (on ``main``, no remote) for testing."""
    return _init_repo(tmp_path / "repo")


@pytest.fixture
def remote_clone(tmp_path: Path) -> RemoteClone:
    """A clone of a bare origin, checked out on ``main`` and up to date."""
    return _make_remote_clone(tmp_path, tmp_path / "work" / "project")


@pytest.fixture
def make_remote_clone(tmp_path: Path):
    """Factory fixture: clone a fresh origin into the given directory."""

    def _make(work: Path) -> RemoteClone:
        return _make_remote_clone(tmp_path, work)

    return _make


# ── test doubles ─────────────────────────────────────────────────────


@dataclass
class FakeRunner:
    """Records package commands; exits non-zero for executables in ``failures``."""

    failures: set[str] = field(default_factory=set)
    timeouts: set[str] = field(default_factory=set)
    raises: dict[str, Exception] = field(default_factory=dict)
    delay: float = 0.0
    calls: list[tuple[list[str], Path | None]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def run(self, command: list[str], cwd: Path | None = None, *, timeout: float | None = None) -> CommandResult:
        with self._lock:
            self.calls.append((list(command), cwd))
        if self.delay:
            time.sleep(self.delay)
        if command[0] in self.raises:
            raise self.raises[command[0]]
        if command[0] in self.timeouts:
            raise CommandTimeout(command, timeout or 0.0)
        if command[0] in self.failures:
            return CommandResult(command=command, exit_code=1, stderr=f"{command[0]}: boom\n")
        return CommandResult(command=command)

    def executables(self) -> list[str]:
        return [cmd[0] for cmd, _ in self.calls]


class FakeGit:
    """In-memory stand-in for GitClient with programmable failures."""

    def __init__(
        self,
        *,
        is_repo: bool = True,
        dirty: bool = False,
        branch: str = "main",
        main: str = "main",
        checkout_fails: tuple[str, ...] = (),
        pull_error: Exception | None = None,
        status_delay: float = 0.0,
    ) -> None:
        self.is_repo = is_repo
        self.dirty = dirty
        self.branch = branch
        self.main = main
        self.checkout_fails = set(checkout_fails)
        self.pull_error = pull_error
        self.status_delay = status_delay
        self.calls: list[tuple[str, ...]] = []

    def status(self, path: Path, *, timeout: float | None = None) -> RepoStatus:
        self.calls.append(("status",))
        if self.status_delay:
            time.sleep(self.status_delay)
        if not self.is_repo:
            return RepoStatus()
        return RepoStatus(
            is_repo=True,
            is_dirty=self.dirty,
            branch=self.branch,
            is_main_branch=is_main_branch(self.branch),
        )

    def head_commit(self, path: Path, *, timeout: float | None = None) -> str:
        return "abc1234"

    def main_branch_name(self, path: Path, *, timeout: float | None = None) -> str:
        return self.main

    def checkout(
        self,
        path: Path,
        branch: str,
        *,
        kind: FailureKind = FailureKind.CHECKOUT,
        timeout: float | None = None,
    ) -> None:
        self.calls.append(("checkout", branch))
        if branch in self.checkout_fails:
            raise GitError(f"Failed to checkout {branch}", kind=kind, stderr=f"error: pathspec '{branch}'")
        self.branch = branch

    def pull_ff_only(self, path: Path, *, timeout: float | None = None) -> None:
        self.calls.append(("pull",))
        if self.pull_error is not None:
            raise self.pull_error


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _quiet_log():
    """Debug output is process-global; start and end every test without it."""
    log.set_verbose(False)
    yield
    log.set_verbose(False)


@pytest.fixture
def workspace_config(tmp_path: Path):
    """Factory fixture: write a config.json pointing at *workspace* and return its path."""
    import json

    def _write(workspace: Path, **projects_section: object) -> Path:
        data = {"projects": {"workspace_directories": [str(workspace)], **projects_section}}
        path = tmp_path / "config" / "config.json"
        write_text(path, json.dumps(data, indent=2))
        return path

    return _write
