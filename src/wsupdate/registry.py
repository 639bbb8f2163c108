"""Project registry: maps project names and shortcuts to checkouts on disk."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path

from wsupdate import log
from wsupdate.config import DEFAULT_SERVER_PATHS, DEFAULT_WEB_PATHS, WorkspaceConfig
from wsupdate.models import ComponentKind


class ProjectRegistry:
    """Resolves project names (full or shortcut) and their component subpaths.

    Usage::

        reg = ProjectRegistry.from_config(load_workspace_config())
        reg.resolve_path("alpha")                             # /home/me/workspaces/alpha
        reg.resolve_component_path("alpha", ComponentKind.WEB)  # "webapp"
    """

    def __init__(
        self,
        projects: dict[str, Path],
        *,
        shortcuts: dict[str, str] | None = None,
        server_paths: dict[str, str] | None = None,
        web_paths: dict[str, str] | None = None,
        default_server_paths: list[str] | tuple[str, ...] = DEFAULT_SERVER_PATHS,
        default_web_paths: list[str] | tuple[str, ...] = DEFAULT_WEB_PATHS,
    ) -> None:
        self._paths = {name: Path(p) for name, p in projects.items()}
        self._shortcuts = dict(shortcuts or {})  # full name -> short name
        self._overrides: dict[ComponentKind, dict[str, str]] = {
            ComponentKind.SERVER: dict(server_paths or {}),
            ComponentKind.WEB: dict(web_paths or {}),
        }
        self._defaults: dict[ComponentKind, list[str]] = {
            ComponentKind.SERVER: list(default_server_paths),
            ComponentKind.WEB: list(default_web_paths),
        }

    @classmethod
    def from_config(cls, cfg: WorkspaceConfig) -> "ProjectRegistry":
        """Discover projects as the immediate subdirectories of each workspace directory."""
        projects: dict[str, Path] = {}
        for workspace in cfg.expanded_directories():
            for path in discover_projects(workspace, cfg.ignore):
                if path.name in projects:
                    log.debug(f"Project {path.name} at {path} shadows {projects[path.name]}")
                projects[path.name] = path
        log.debug(f"Discovered {len(projects)} project(s)")
        return cls(
            projects,
            shortcuts=cfg.shortcuts,
            server_paths=cfg.server_paths,
            web_paths=cfg.web_paths,
            default_server_paths=cfg.default_server_paths,
            default_web_paths=cfg.default_web_paths,
        )

    # ── name resolution ──────────────────────────────────────────

    def full_name(self, name_or_short: str) -> str | None:
        if name_or_short in self._paths:
            return name_or_short
        for full, short in self._shortcuts.items():
            if short == name_or_short and full in self._paths:
                return full
        return None

    def list_all_project_names(self) -> list[str]:
        return sorted(self._paths)

    # ── paths ────────────────────────────────────────────────────

    def resolve_path(self, name_or_short: str) -> Path | None:
        full = self.full_name(name_or_short)
        return self._paths[full] if full else None

    def resolve_component_path(self, name_or_short: str, kind: ComponentKind) -> str | None:
        """Component subdirectory relative to the project root, if any.

        An explicit per-project override wins; otherwise the first default
        candidate that exists on disk.
        """
        if kind is ComponentKind.MAIN:
            return None
        full = self.full_name(name_or_short)
        if full is None:
            return None

        override = self._overrides[kind].get(full)
        if override:
            return override

        root = self._paths[full]
        for candidate in self._defaults[kind]:
            if (root / candidate).is_dir():
                return candidate
        return None

    def has_component(self, name_or_short: str, kind: ComponentKind) -> bool:
        return self.resolve_component_path(name_or_short, kind) is not None


def discover_projects(workspace: Path, ignore: list[str] | None = None) -> list[Path]:
    """Return subdirectories of *workspace* not matching any *ignore* glob."""
    if not workspace.is_dir():
        log.debug(f"Workspace directory {workspace} does not exist")
        return []

    patterns = ignore or []
    found: list[Path] = []
    for entry in sorted(workspace.iterdir()):
        if not entry.is_dir():
            continue
        if any(fnmatchcase(entry.name, pattern) for pattern in patterns):
            log.debug(f"Ignoring {entry.name}")
            continue
        found.append(entry)
    return found
