"""Error types and failure classification for workspace updates."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    UNKNOWN_TARGET = "unknown-target"
    MISSING_COMPONENT = "missing-component"
    MISSING_DIRECTORY = "missing-directory"
    CHECKOUT = "checkout"
    PULL = "pull"
    RESTORE = "restore"
    TIMEOUT = "timeout"
    COMMAND = "command"


class UpdateError(Exception):
    """Base class for errors raised while updating a component."""

    kind: FailureKind = FailureKind.COMMAND

    def __init__(self, message: str, *, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class GitError(UpdateError):
    """A git command exited non-zero. ``stderr`` holds git's own explanation."""

    def __init__(self, message: str, *, kind: FailureKind, stderr: str = "") -> None:
        super().__init__(message, kind=kind)
        self.stderr = stderr.strip()

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            return f"{base}: {self.stderr.splitlines()[0]}"
        return base


class CommandTimeout(UpdateError):
    kind = FailureKind.TIMEOUT

    def __init__(self, command: list[str], timeout: float) -> None:
        super().__init__(f"'{' '.join(command)}' timed out after {timeout:.1f}s")
        self.command = command
        self.timeout = timeout


class ConfigError(Exception):
    """The workspace configuration file could not be used."""
