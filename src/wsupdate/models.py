"""Data models shared by target resolution, update tasks and stats."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from wsupdate.errors import FailureKind


class ComponentKind(str, Enum):
    MAIN = "main"
    SERVER = "server"
    WEB = "web"


class ComponentRestriction(str, Enum):
    NONE = "none"
    SERVER_ONLY = "server-only"
    WEB_ONLY = "web-only"


# specifier suffix -> restriction
SUFFIXES: dict[str, ComponentRestriction] = {
    "s": ComponentRestriction.SERVER_ONLY,
    "w": ComponentRestriction.WEB_ONLY,
}


class TaskState(str, Enum):
    PENDING = "pending"
    CHECKING_REPO = "checking-repo"
    SKIPPED = "skipped"
    DETERMINING_BRANCH = "determining-branch"
    SWITCHING_BRANCH = "switching-branch"
    PULLING = "pulling"
    UPDATING_PACKAGES = "updating-packages"
    RESTORING_BRANCH = "restoring-branch"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.SKIPPED, TaskState.SUCCEEDED, TaskState.FAILED)


# Position in the forward-only lifecycle. Terminal states share the top rank.
STATE_ORDER: dict[TaskState, int] = {
    TaskState.PENDING: 0,
    TaskState.CHECKING_REPO: 1,
    TaskState.DETERMINING_BRANCH: 2,
    TaskState.SWITCHING_BRANCH: 3,
    TaskState.PULLING: 4,
    TaskState.UPDATING_PACKAGES: 5,
    TaskState.RESTORING_BRANCH: 6,
    TaskState.SKIPPED: 7,
    TaskState.SUCCEEDED: 7,
    TaskState.FAILED: 7,
}


@dataclass(frozen=True)
class UpdateTarget:
    raw_specifier: str
    base_project: str
    restriction: ComponentRestriction = ComponentRestriction.NONE


def component_label(project: str, kind: ComponentKind) -> str:
    """``alpha`` for the main checkout, ``alpha-server`` / ``alpha-web`` otherwise."""
    if kind is ComponentKind.MAIN:
        return project
    return f"{project}-{kind.value}"


@dataclass
class TaskResult:
    """Outcome of one component update (or of a rejected specifier).

    ``state`` is always terminal. ``failure`` is set iff the state is FAILED.
    """

    label: str
    state: TaskState
    message: str = ""
    failure: FailureKind | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state in (TaskState.SUCCEEDED, TaskState.SKIPPED)

    @property
    def skipped(self) -> bool:
        return self.state is TaskState.SKIPPED

    @classmethod
    def failed(cls, label: str, failure: FailureKind, message: str) -> "TaskResult":
        return cls(label=label, state=TaskState.FAILED, message=message, failure=failure)
