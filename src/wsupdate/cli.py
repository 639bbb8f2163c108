"""wsupdate CLI: ``uw`` updates every project checkout in the workspace.

Installed as ``uw`` and ``wsupdate`` console_scripts via pipx / pip.
"""

from __future__ import annotations

from pathlib import Path

import click

from wsupdate import __version__
from wsupdate.config import UpdateConfig, load_workspace_config
from wsupdate.errors import ConfigError


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("specifiers", nargs=-1)
@click.option(
    "-j", "--jobs",
    default=None,
    metavar="N",
    help="Max parallel jobs (default: 4). Invalid values fall back to the default.",
)
@click.option(
    "-t", "--timeout",
    type=float,
    default=None,
    metavar="SECONDS",
    help="Per-component time limit (default: 600, 0 disables)",
)
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Workspace config file (default: ~/.config/wsupdate/config.json)",
)
@click.option("--dry-run", is_flag=True, help="Show which components would be updated")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="uw")
@click.pass_context
def main(
    ctx: click.Context,
    specifiers: tuple[str, ...],
    jobs: str | None,
    timeout: float | None,
    config_path: Path | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Workspace update utility.

    Pulls the latest main branch of each project (and of its server and
    web components) and refreshes their packages, several at a time.

    \b
    EXAMPLES:
      uw                    # Update all projects
      uw <project>          # Update a project and its components
      uw <project>s         # Update the server component only
      uw <project>w         # Update the web component only
      uw <proj1> <proj2>    # Update several projects
      uw -j 8               # Up to 8 updates at once

    \b
    FOR EACH COMPONENT:
      1. Skip it if it is not a git repository or has uncommitted changes
      2. Switch to the main branch (if not already on it)
      3. Pull latest changes (fast-forward only)
      4. Update packages (Maven for server, npm for web)
      5. Switch back to the original branch

    Exits with status 1 if any component failed.
    """
    from wsupdate import log as wlog
    from wsupdate.registry import ProjectRegistry
    from wsupdate.updater import WorkspaceUpdater

    # Config loading logs before an UpdateConfig exists
    wlog.set_verbose(verbose)

    try:
        workspace = load_workspace_config(config_path)
    except ConfigError as exc:
        wlog.error(str(exc))
        ctx.exit(2)

    cfg = UpdateConfig.from_sources(
        jobs=jobs,
        timeout=timeout,
        workspace=workspace,
        verbose=verbose,
        targets=list(specifiers),
        dry_run=dry_run,
    )

    registry = ProjectRegistry.from_config(workspace)
    if not cfg.targets and not registry.list_all_project_names():
        dirs = ", ".join(workspace.workspace_directories)
        wlog.warn(f"No projects found in {dirs}")

    stats = WorkspaceUpdater(registry).run(cfg)
    ctx.exit(stats.exit_code)
