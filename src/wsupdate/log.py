"""Logging utilities with colored output via Rich."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False)
_err_console = Console(highlight=False, stderr=True)

_verbose = False

RULE = "=" * 46


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SKIPPED = "skipped"


# level -> (glyph, rich style)
_GLYPHS: dict[Level, tuple[str, str]] = {
    Level.SUCCESS: ("✓", "green"),
    Level.ERROR: ("✗", "red"),
    Level.WARNING: ("⚠", "yellow"),
    Level.INFO: ("ℹ", "blue"),
    Level.SKIPPED: ("⊘", "magenta"),
}


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def info(msg: str) -> None:
    console.print(f"[blue]\\[INFO][/blue] {escape(msg)}")


def warn(msg: str) -> None:
    console.print(f"[yellow]\\[WARN][/yellow] {escape(msg)}")


def error(msg: str) -> None:
    _err_console.print(f"[red]\\[ERROR][/red] {escape(msg)}")


def debug(msg: str) -> None:
    if _verbose:
        console.print(f"[dim]\\[DEBUG] {escape(msg)}[/dim]")


def status(level: Level, label: str, message: str) -> None:
    """Print one timestamped update line for *label*.

    Called from worker threads; Rich serialises writes per ``print`` call,
    so lines from concurrent tasks never interleave mid-line.
    """
    stamp = datetime.now().strftime("%H:%M:%S")
    glyph, style = _GLYPHS[level]
    console.print(
        f"\\[{stamp}] [{style}]{glyph}[/{style}] {escape(label)}: {escape(message)}",
        soft_wrap=True,
    )
