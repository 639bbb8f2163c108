"""Configuration defaults, env vars, and runtime options for wsupdate."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wsupdate import log
from wsupdate.errors import ConfigError
from wsupdate.io_utils import read_text


DEFAULT_MAX_PARALLEL_JOBS = 4
DEFAULT_TASK_TIMEOUT = 600.0

DEFAULT_WORKSPACE_DIRECTORIES = ("~/workspaces",)
DEFAULT_SERVER_PATHS = ("java/serverJava", "serverJava", "backend", "server")
DEFAULT_WEB_PATHS = ("webapp", "webApp", "web", "frontend", "client")


def coerce_jobs(raw: object, *, default: int = DEFAULT_MAX_PARALLEL_JOBS) -> int:
    """Parse a parallel job count, falling back to *default* on bad input.

    Non-integers and values ``<= 0`` never reach the scheduler: zero would
    admit nothing and a negative count has no meaning.
    """
    if raw is None or raw == "":
        return default
    try:
        jobs = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        log.warn(f"Invalid job count '{raw}', using default ({default})")
        return default
    if jobs <= 0:
        log.warn(f"Job count must be positive (got {jobs}), using default ({default})")
        return default
    return jobs


@dataclass
class UpdateConfig:
    """Runtime options for one update run. Treat as read-only once built."""

    max_parallel_jobs: int = DEFAULT_MAX_PARALLEL_JOBS
    verbose: bool = False
    targets: list[str] = field(default_factory=list)
    task_timeout: float = DEFAULT_TASK_TIMEOUT
    dry_run: bool = False

    def __post_init__(self) -> None:
        self.max_parallel_jobs = coerce_jobs(self.max_parallel_jobs)
        if self.task_timeout < 0:
            log.warn(
                f"Task timeout must not be negative (got {self.task_timeout:g}), "
                f"using {DEFAULT_TASK_TIMEOUT:.0f}s"
            )
            self.task_timeout = DEFAULT_TASK_TIMEOUT

    @classmethod
    def from_sources(
        cls,
        *,
        jobs: object = None,
        timeout: float | None = None,
        workspace: "WorkspaceConfig | None" = None,
        **options: Any,
    ) -> "UpdateConfig":
        """Build a config from, in priority order: explicit arguments (CLI
        flags), ``WSUPDATE_JOBS`` / ``WSUPDATE_TASK_TIMEOUT``, the config
        file's ``update`` section, and finally the defaults."""
        env_timeout = os.environ.get("WSUPDATE_TASK_TIMEOUT")
        raw_jobs = _first(jobs, os.environ.get("WSUPDATE_JOBS"), workspace and workspace.max_parallel_jobs)
        raw_timeout = _first(timeout, env_timeout, workspace and workspace.task_timeout)
        return cls(
            max_parallel_jobs=raw_jobs,  # type: ignore[arg-type]
            task_timeout=_coerce_timeout(raw_timeout),
            **options,
        )


def _first(*values: object) -> object:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _coerce_timeout(raw: object) -> float:
    if raw is None:
        return DEFAULT_TASK_TIMEOUT
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        log.warn(f"Invalid task timeout '{raw}', using {DEFAULT_TASK_TIMEOUT:.0f}s")
        return DEFAULT_TASK_TIMEOUT


@dataclass
class WorkspaceConfig:
    """Where projects live and how their components are laid out."""

    workspace_directories: list[str] = field(
        default_factory=lambda: list(DEFAULT_WORKSPACE_DIRECTORIES)
    )
    shortcuts: dict[str, str] = field(default_factory=dict)  # full name -> short name
    server_paths: dict[str, str] = field(default_factory=dict)
    web_paths: dict[str, str] = field(default_factory=dict)
    ignore: list[str] = field(default_factory=list)
    default_server_paths: list[str] = field(default_factory=lambda: list(DEFAULT_SERVER_PATHS))
    default_web_paths: list[str] = field(default_factory=lambda: list(DEFAULT_WEB_PATHS))

    # Optional "update" section
    max_parallel_jobs: int | None = None
    task_timeout: float | None = None

    def expanded_directories(self) -> list[Path]:
        return [Path(d).expanduser() for d in self.workspace_directories]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkspaceConfig":
        if not isinstance(data, dict):
            raise ConfigError("Top-level configuration must be a JSON object")

        projects = data.get("projects", {})
        update = data.get("update", {})
        if not isinstance(projects, dict) or not isinstance(update, dict):
            raise ConfigError("'projects' and 'update' must be JSON objects")

        dirs = projects.get("workspace_directories")
        if dirs is None and "workspace_directory" in projects:
            # Older configs carried a single directory
            dirs = [projects["workspace_directory"]]
        if dirs is None:
            dirs = list(DEFAULT_WORKSPACE_DIRECTORIES)

        defaults = projects.get("default_paths", {})
        if not isinstance(defaults, dict):
            raise ConfigError("projects.default_paths must be a JSON object")

        cfg = cls(
            workspace_directories=_str_list(dirs, "projects.workspace_directories"),
            shortcuts=_str_map(projects.get("shortcuts", {}), "projects.shortcuts"),
            server_paths=_str_map(projects.get("server_paths", {}), "projects.server_paths"),
            web_paths=_str_map(projects.get("web_paths", {}), "projects.web_paths"),
            ignore=_str_list(projects.get("ignore", []), "projects.ignore"),
            default_server_paths=_str_list(
                defaults.get("server", DEFAULT_SERVER_PATHS), "projects.default_paths.server"
            ),
            default_web_paths=_str_list(
                defaults.get("web", DEFAULT_WEB_PATHS), "projects.default_paths.web"
            ),
        )

        if "max_parallel_jobs" in update:
            cfg.max_parallel_jobs = coerce_jobs(update["max_parallel_jobs"])
        if "task_timeout" in update:
            try:
                cfg.task_timeout = float(update["task_timeout"])
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"update.task_timeout must be a number: {exc}") from exc
        return cfg


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return list(value)


def _str_map(value: Any, key: str) -> dict[str, str]:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigError(f"{key} must map strings to strings")
    return dict(value)


def default_config_path() -> Path:
    """Return the config file location, honoring ``WSUPDATE_CONFIG``."""
    override = os.environ.get("WSUPDATE_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "wsupdate" / "config.json"


def load_workspace_config(path: Path | None = None) -> WorkspaceConfig:
    """Load the workspace config from *path*; a missing file means defaults."""
    path = path or default_config_path()
    if not path.is_file():
        log.debug(f"No config at {path}; using defaults")
        return WorkspaceConfig()

    try:
        data = json.loads(read_text(path))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    log.debug(f"Loaded config from {path}")
    return WorkspaceConfig.from_dict(data)
