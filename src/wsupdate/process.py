"""Run external commands (git, mvn, npm) and capture their output."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from wsupdate import log
from wsupdate.errors import CommandTimeout

# Exit code shells use for "command not found"
NOT_FOUND_EXIT_CODE = 127


@dataclass
class CommandResult:
    """Exit status and captured output of one finished command."""

    command: list[str]
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def error_text(self) -> str:
        """First meaningful line explaining a failure."""
        for stream in (self.stderr, self.stdout):
            stripped = (stream or "").strip()
            if stripped:
                return stripped.splitlines()[0]
        return f"exit code {self.exit_code}"


class CommandRunner:
    """Executes commands in a working directory.

    ``start`` is the asynchronous form and hands back the live process;
    ``run`` waits for completion and never raises for a non-zero exit.
    """

    def __init__(self, env: dict[str, str] | None = None) -> None:
        base = dict(os.environ)
        # Never block a worker on a credential prompt
        base.setdefault("GIT_TERMINAL_PROMPT", "0")
        if env:
            base.update(env)
        self._env = base

    def start(self, command: list[str], cwd: Path | None = None) -> subprocess.Popen[str]:
        """Launch *command* without waiting, stdout/stderr piped."""
        log.debug(f"$ {' '.join(command)}  (in {cwd or Path.cwd()})")
        return subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
            env=self._env,
        )

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *command* to completion.

        A missing executable comes back as exit code 127. Exceeding
        *timeout* terminates the process and raises :class:`CommandTimeout`.
        """
        try:
            proc = self.start(command, cwd)
        except FileNotFoundError:
            return CommandResult(
                command=command,
                exit_code=NOT_FOUND_EXIT_CODE,
                stderr=f"{command[0]} not found",
            )

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _terminate_process(proc)
            raise CommandTimeout(command, timeout or 0.0) from None

        return CommandResult(
            command=command,
            exit_code=proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )


def _terminate_process(proc: subprocess.Popen[str]) -> None:
    """Terminate a subprocess promptly (best effort)."""
    try:
        if proc.poll() is None:
            proc.terminate()
        proc.communicate(timeout=2)
        return
    except (OSError, subprocess.TimeoutExpired):
        pass

    try:
        if proc.poll() is None:
            proc.kill()
        proc.communicate(timeout=2)
    except (OSError, subprocess.TimeoutExpired):
        pass
