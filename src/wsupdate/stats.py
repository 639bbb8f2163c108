"""Aggregate per-component results into run statistics and a summary."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass

from rich.markup import escape

from wsupdate import log
from wsupdate.models import TaskResult, TaskState


@dataclass
class UpdateStats:
    """Counts for one run. Only the coordinating thread touches these."""

    total_projects: int = 0
    successful_updates: int = 0
    failed_updates: int = 0
    skipped_projects: int = 0
    start_time: float = 0.0
    end_time: float = 0.0

    def start(self) -> None:
        self.start_time = time.monotonic()

    def finish(self) -> None:
        self.end_time = time.monotonic()

    @property
    def duration(self) -> float:
        end = self.end_time or time.monotonic()
        return max(0.0, end - self.start_time) if self.start_time else 0.0

    def record(self, result: TaskResult) -> None:
        self.total_projects += 1
        match result.state:
            case TaskState.SUCCEEDED:
                self.successful_updates += 1
            case TaskState.SKIPPED:
                self.skipped_projects += 1
            case TaskState.FAILED:
                self.failed_updates += 1
            case _:
                raise ValueError(f"{result.label}: result is not terminal ({result.state.value})")

    def record_all(self, results: Iterable[TaskResult]) -> None:
        for result in results:
            self.record(result)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed_updates > 0 else 0


def show_summary(stats: UpdateStats, results: list[TaskResult] | None = None) -> None:
    """Print the closing block. Failed components are listed again for visibility."""
    console = log.console
    console.print(log.RULE)
    console.print("[bold]Workspace update completed![/bold]")
    console.print(f"Total projects: {stats.total_projects}")
    console.print(f"[green]Successful: {stats.successful_updates}[/green]")
    console.print(f"[red]Failed: {stats.failed_updates}[/red]")
    console.print(f"[magenta]Skipped: {stats.skipped_projects}[/magenta]")
    console.print(f"Duration: {int(stats.duration)} seconds")

    failed = [r for r in results or [] if r.state is TaskState.FAILED]
    if failed:
        console.print()
        console.print("[bold]Failures:[/bold]")
        for r in failed:
            console.print(f"  [red]✗[/red] {escape(r.label)}: {escape(r.message)}", soft_wrap=True)
