"""Updater: resolves targets, runs component updates in parallel, summarises."""

from __future__ import annotations

from rich.markup import escape

from wsupdate import log
from wsupdate.config import UpdateConfig
from wsupdate.errors import FailureKind
from wsupdate.git_ops import GitClient
from wsupdate.log import Level
from wsupdate.models import TaskResult
from wsupdate.process import CommandRunner
from wsupdate.registry import ProjectRegistry
from wsupdate.scheduler import JobScheduler
from wsupdate.stats import UpdateStats, show_summary
from wsupdate.targets import TargetResolver, UpdatePlan
from wsupdate.task import ComponentUpdateTask


class WorkspaceUpdater:
    """Orchestrates one update run over a project registry."""

    def __init__(
        self,
        registry: ProjectRegistry,
        *,
        git: GitClient | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.registry = registry
        self.runner = runner or CommandRunner()
        self.git = git or GitClient(self.runner)
        self.results: list[TaskResult] = []
        self.tasks: list[ComponentUpdateTask] = []

    def build_tasks(self, plan: UpdatePlan, cfg: UpdateConfig) -> list[ComponentUpdateTask]:
        return [
            ComponentUpdateTask(
                ref.project,
                ref.kind,
                ref.path,
                git=self.git,
                runner=self.runner,
                timeout=cfg.task_timeout,
            )
            for ref in plan.components
        ]

    def run(self, cfg: UpdateConfig) -> UpdateStats:
        """Update everything *cfg* targets. Always prints a summary."""
        log.set_verbose(cfg.verbose)
        plan = TargetResolver(self.registry).plan(cfg.targets)
        self.tasks = self.build_tasks(plan, cfg)

        stats = UpdateStats()
        stats.start()

        log.console.print(
            f"Starting workspace update with {cfg.max_parallel_jobs} parallel jobs..."
        )
        log.console.print(f"Components to process: {len(self.tasks)}")
        log.console.print(log.RULE)

        for rejected in plan.rejected:
            log.status(Level.ERROR, rejected.label, rejected.message)

        if cfg.dry_run:
            log.info("Dry run: no component will be touched")
            for task in self.tasks:
                log.console.print(
                    f"  [cyan]●[/cyan] {escape(task.label)}  [dim]{escape(str(task.path))}[/dim]",
                    soft_wrap=True,
                )
            results: list[TaskResult] = []
        else:
            results = self._run_tasks(cfg)

        self.results = plan.rejected + results
        stats.record_all(self.results)
        stats.finish()
        show_summary(stats, self.results)
        return stats

    def _run_tasks(self, cfg: UpdateConfig) -> list[TaskResult]:
        tasks = self.tasks

        def crashed(index: int, exc: Exception) -> TaskResult:
            return TaskResult.failed(
                tasks[index].label,
                FailureKind.COMMAND,
                f"Unexpected error: {type(exc).__name__}: {exc}",
            )

        scheduler: JobScheduler[TaskResult] = JobScheduler(cfg.max_parallel_jobs)
        results = scheduler.run([task.run for task in tasks], on_crash=crashed)
        log.debug(f"Peak concurrent updates: {scheduler.peak_in_flight}")
        return results
