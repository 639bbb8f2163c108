"""Per-component update: safety checks, branch switch, pull, packages, restore."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path

from wsupdate import log
from wsupdate.errors import FailureKind, GitError, UpdateError
from wsupdate.git_ops import GitClient
from wsupdate.log import Level
from wsupdate.models import STATE_ORDER, ComponentKind, TaskResult, TaskState, component_label
from wsupdate.packages import detect_package_commands
from wsupdate.process import CommandRunner

# Budget for switching back after the task deadline has already passed
RESTORE_TIMEOUT = 30.0


@dataclass(frozen=True)
class TaskEvent:
    level: Level
    message: str


class ComponentUpdateTask:
    """Brings one (project, component) checkout up to date.

    Lifecycle (forward only)::

        PENDING -> CHECKING_REPO -> DETERMINING_BRANCH [-> SWITCHING_BRANCH]
                -> PULLING -> UPDATING_PACKAGES [-> RESTORING_BRANCH] -> SUCCEEDED
        CHECKING_REPO -> SKIPPED      (not a repo, or uncommitted changes)
        any step      -> FAILED       (checkout/pull/restore failure, timeout)

    A failed pull or a timeout after leaving the original branch still
    switches back (best effort) before reporting FAILED. Package manager
    failures are only warnings.
    """

    def __init__(
        self,
        project_name: str,
        kind: ComponentKind,
        path: Path,
        *,
        git: GitClient,
        runner: CommandRunner,
        timeout: float = 0.0,
    ) -> None:
        self.project_name = project_name
        self.kind = kind
        self.path = path
        self.git = git
        self.runner = runner
        self.timeout = timeout

        self.state = TaskState.PENDING
        self.history: list[TaskState] = [TaskState.PENDING]
        self.events: list[TaskEvent] = []

        self._deadline: float | None = None
        self._restore_ref: str | None = None  # set while away from the original branch

    @property
    def label(self) -> str:
        return component_label(self.project_name, self.kind)

    # ── entry point ──────────────────────────────────────────────

    def run(self) -> TaskResult:
        """Run the state machine to a terminal state. Never raises for update errors."""
        if self.timeout > 0:
            self._deadline = time.monotonic() + self.timeout
        try:
            return self._run()
        except UpdateError as exc:
            self._restore_after_error()
            return self._fail(exc.kind, str(exc))
        except OSError as exc:
            self._restore_after_error()
            return self._fail(FailureKind.COMMAND, f"{type(exc).__name__}: {exc}")

    def _run(self) -> TaskResult:
        self._enter(TaskState.CHECKING_REPO, Level.INFO, f"Checking {self.path}")
        if not self.path.is_dir():
            return self._fail(FailureKind.MISSING_DIRECTORY, f"Directory does not exist: {self.path}")

        status = self.git.status(self.path, timeout=self._remaining())
        if not status.is_repo:
            return self._skip("Not a git repository")
        if status.is_dirty:
            return self._skip("Has uncommitted changes")

        original = status.branch
        self._enter(
            TaskState.DETERMINING_BRANCH,
            Level.INFO,
            f"Starting update (current branch: {original})",
        )

        if not status.is_main_branch:
            restore_ref = original
            if original == "HEAD":
                # Detached: come back to the exact commit
                restore_ref = self.git.head_commit(self.path, timeout=self._remaining()) or original
            main_branch = self.git.main_branch_name(self.path, timeout=self._remaining())
            self._enter(TaskState.SWITCHING_BRANCH, Level.INFO, f"Switching to main branch ({main_branch})")
            try:
                self.git.checkout(self.path, main_branch, timeout=self._remaining())
            except GitError as exc:
                return self._fail(exc.kind, str(exc))
            self._restore_ref = restore_ref

        self._enter(TaskState.PULLING, Level.INFO, "Pulling latest changes")
        try:
            self.git.pull_ff_only(self.path, timeout=self._remaining())
        except GitError as exc:
            if self._restore_ref is not None:
                self._restore_best_effort()
            return self._fail(exc.kind, str(exc))

        warnings = self._update_packages()

        if self._restore_ref is not None:
            ref = self._restore_ref
            self._enter(TaskState.RESTORING_BRANCH, Level.INFO, f"Switching back to {ref}")
            try:
                self.git.checkout(self.path, ref, kind=FailureKind.RESTORE, timeout=self._restore_timeout())
            except GitError as exc:
                return self._fail(FailureKind.RESTORE, f"Failed to switch back to {ref}: {exc.stderr or exc}")
            self._restore_ref = None

        message = "Update completed with warnings" if warnings else "Update completed successfully"
        self._enter(TaskState.SUCCEEDED, Level.SUCCESS, message)
        return TaskResult(label=self.label, state=TaskState.SUCCEEDED, message=message, warnings=warnings)

    # ── steps ────────────────────────────────────────────────────

    def _update_packages(self) -> list[str]:
        commands = detect_package_commands(self.kind, self.path)
        if not commands:
            self._enter(TaskState.UPDATING_PACKAGES, Level.INFO, "No package manifests found")
            return []

        managers = ", ".join(c.manager for c in commands)
        self._enter(TaskState.UPDATING_PACKAGES, Level.INFO, f"Updating packages ({managers})")

        warnings: list[str] = []
        for pkg in commands:
            self._emit(Level.INFO, pkg.description)
            result = self.runner.run(list(pkg.command), self.path, timeout=self._remaining())
            if not result.ok:
                msg = f"{pkg.manager} update failed: {result.error_text()}"
                self._emit(Level.WARNING, msg)
                warnings.append(msg)
        return warnings

    def _restore_after_error(self) -> None:
        # A failure inside the restore step itself is not retried
        if self._restore_ref is not None and self.state is not TaskState.RESTORING_BRANCH:
            self._restore_best_effort()

    def _restore_best_effort(self) -> None:
        ref = self._restore_ref
        if ref is None:
            return
        self._enter(TaskState.RESTORING_BRANCH, Level.INFO, f"Switching back to {ref}")
        try:
            self.git.checkout(self.path, ref, kind=FailureKind.RESTORE, timeout=self._restore_timeout())
        except (UpdateError, OSError) as exc:
            self._emit(Level.WARNING, f"Could not switch back to {ref}: {exc}")
        else:
            self._restore_ref = None

    # ── bookkeeping ──────────────────────────────────────────────

    def _remaining(self) -> float | None:
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise UpdateError(f"Timed out after {self.timeout:g}s", kind=FailureKind.TIMEOUT)
        return remaining

    def _restore_timeout(self) -> float | None:
        # Switching back is attempted even once the deadline has passed
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), RESTORE_TIMEOUT)

    def _emit(self, level: Level, message: str) -> None:
        self.events.append(TaskEvent(level, message))
        log.status(level, self.label, message)

    def _enter(self, state: TaskState, level: Level, message: str) -> None:
        if STATE_ORDER[state] <= STATE_ORDER[self.state]:
            raise RuntimeError(f"{self.label}: illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        self._emit(level, message)

    def _skip(self, message: str) -> TaskResult:
        self._enter(TaskState.SKIPPED, Level.SKIPPED, message)
        return TaskResult(label=self.label, state=TaskState.SKIPPED, message=message)

    def _fail(self, failure: FailureKind, message: str) -> TaskResult:
        self._enter(TaskState.FAILED, Level.ERROR, message)
        return TaskResult.failed(self.label, failure, message)
