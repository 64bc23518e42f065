"""Shared Rich console and progress utilities for original-release.

Provides a global Rich console instance and helpers for consistent
output formatting across all CLI commands.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

# Global console instance (initialized in CLI)
_console: Console | None = None


def get_console() -> Console:
    """Get the global Rich console instance.

    Falls back to a plain stdout console when the CLI has not set one.
    """
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global Rich console instance."""
    global _console
    _console = console


@contextmanager
def make_progress(transient: bool = False, console: Console | None = None) -> Iterator[Progress]:
    """Create a Rich Progress context for tracking a batch run.

    Renders on ``console`` when given, otherwise on the global console.

    Example:
        with make_progress() as progress:
            task = progress.add_task("Processing...", total=100)
            progress.update(task, completed=10)
    """
    columns = [
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
    ]

    with Progress(*columns, transient=transient, console=console or get_console()) as progress:
        yield progress


def print(*args: Any, **kwargs: Any) -> None:
    """Print to the global console."""
    get_console().print(*args, **kwargs)


def print_error(message: str) -> None:
    """Print an error message in red."""
    get_console().print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    get_console().print(f"[yellow]Warning: {message}[/yellow]")


def print_success(message: str) -> None:
    """Print a success message in green."""
    get_console().print(f"[green]{message}[/green]")
