"""Git operations: repository status, branch switching, fast-forward pulls."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from wsupdate.errors import FailureKind, GitError
from wsupdate.process import CommandResult, CommandRunner

MAIN_BRANCHES = ("main", "master")
DEFAULT_MAIN_BRANCH = "main"

_ORIGIN_HEAD_PREFIX = "refs/remotes/origin/"


@dataclass(frozen=True)
class RepoStatus:
    is_repo: bool = False
    is_dirty: bool = False
    branch: str = ""
    is_main_branch: bool = False


def is_main_branch(name: str) -> bool:
    """Exact, case-sensitive match against the recognised trunk names."""
    return name in MAIN_BRANCHES


class GitClient:
    """Thin wrapper over the ``git`` CLI, one working tree per call."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or CommandRunner()

    def _git(self, *args: str, cwd: Path, timeout: float | None = None) -> CommandResult:
        return self.runner.run(["git", *args], cwd, timeout=timeout)

    # ── queries ──────────────────────────────────────────────────

    @staticmethod
    def is_repo(path: Path) -> bool:
        # Only the component's own checkout counts, not an enclosing repo.
        return (path / ".git").exists()

    def current_branch(self, path: Path, *, timeout: float | None = None) -> str:
        r = self._git("rev-parse", "--abbrev-ref", "HEAD", cwd=path, timeout=timeout)
        return r.stdout.strip() if r.ok else ""

    def head_commit(self, path: Path, *, timeout: float | None = None) -> str:
        r = self._git("rev-parse", "HEAD", cwd=path, timeout=timeout)
        return r.stdout.strip() if r.ok else ""

    def is_dirty(self, path: Path, *, timeout: float | None = None) -> bool:
        r = self._git("status", "--porcelain", cwd=path, timeout=timeout)
        if not r.ok:
            # Unknown state: report dirty so nothing gets switched underneath it.
            return True
        return bool(r.stdout.strip())

    def branch_exists(self, path: Path, name: str, *, timeout: float | None = None) -> bool:
        r = self._git("show-ref", "--verify", "--quiet", f"refs/heads/{name}", cwd=path, timeout=timeout)
        return r.ok

    def status(self, path: Path, *, timeout: float | None = None) -> RepoStatus:
        if not self.is_repo(path):
            return RepoStatus()
        branch = self.current_branch(path, timeout=timeout)
        return RepoStatus(
            is_repo=True,
            is_dirty=self.is_dirty(path, timeout=timeout),
            branch=branch,
            is_main_branch=is_main_branch(branch),
        )

    def main_branch_name(self, path: Path, *, timeout: float | None = None) -> str:
        """Name of the trunk branch.

        Prefers what ``origin/HEAD`` points at, then an existing local
        ``main``/``master``, and finally ``"main"``.
        """
        r = self._git("symbolic-ref", "refs/remotes/origin/HEAD", cwd=path, timeout=timeout)
        ref = r.stdout.strip()
        if r.ok and ref.startswith(_ORIGIN_HEAD_PREFIX):
            return ref[len(_ORIGIN_HEAD_PREFIX):]

        for candidate in MAIN_BRANCHES:
            if self.branch_exists(path, candidate, timeout=timeout):
                return candidate
        return DEFAULT_MAIN_BRANCH

    # ── mutations ────────────────────────────────────────────────

    def checkout(
        self,
        path: Path,
        branch: str,
        *,
        kind: FailureKind = FailureKind.CHECKOUT,
        timeout: float | None = None,
    ) -> None:
        """Switch *path* to *branch*. Raises :class:`GitError` on failure."""
        r = self._git("checkout", branch, cwd=path, timeout=timeout)
        if not r.ok:
            raise GitError(f"Failed to checkout {branch}", kind=kind, stderr=r.error_text())

    def pull_ff_only(self, path: Path, *, timeout: float | None = None) -> None:
        """Pull without ever creating a merge commit. Raises :class:`GitError` on failure."""
        r = self._git("pull", "--ff-only", cwd=path, timeout=timeout)
        if not r.ok:
            raise GitError("Failed to pull changes", kind=FailureKind.PULL, stderr=r.error_text())
