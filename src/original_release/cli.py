"""CLI for original-release using Typer and Rich.

Resolve original release dates for single files or album directories, run a
whole library in batch, and manage the processed-items cache.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape

from original_release.batch import BatchRunner, BatchSummary
from original_release.cache import ProcessedItemsCache
from original_release.config import Config
from original_release.console import (
    make_progress,
    print_error,
    print_success,
    print_warning,
    set_console,
)
from original_release.console import (
    print as cprint,
)
from original_release.library import FilesystemLibrary, LibraryUpdateError
from original_release.models import MediaItem, Verdict
from original_release.resolver import DateResolver
from original_release.safe_logging import configure_rich_logging, set_library_root

log = logging.getLogger(__name__)


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NO_RESULTS = 2


app = typer.Typer(
    name="origdate",
    help="Prefer original release dates over reissue dates for tracks and albums",
    no_args_is_help=True,
    add_completion=False,
)

cache_app = typer.Typer(help="Processed-items cache commands")
app.add_typer(cache_app, name="cache")


class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int
    # stderr console shared by log records and progress bars
    log_console: Console


state = AppState()


def _emit_json(payload: Any) -> None:
    cprint(json.dumps(payload, indent=2), soft_wrap=True, markup=False, highlight=False)


def _items_for_path(path: Path) -> list[MediaItem]:
    """An album item for a directory, a track item for a file."""
    path = path.resolve()
    if path.is_dir():
        return [FilesystemLibrary(path).album_item(path)]
    return [FilesystemLibrary(path.parent).track_item(path)]


def _format_date(item: MediaItem) -> str:
    return item.release_date.isoformat() if item.release_date else "none"


def _make_cache(config: Config) -> ProcessedItemsCache | None:
    if not config.cache.enabled:
        return None
    return ProcessedItemsCache(config.cache.path)


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl-C into a cooperative cancel; a second one aborts."""

    def handler(signum: int, frame: Any) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        log.warning("Interrupted, stopping after the current item")
        cancel.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
) -> None:
    """Prefer original release dates over reissue dates for tracks and albums."""
    cfg = Config.load(config_path)

    # CLI flag takes precedence over the config file
    if verbose >= 2:
        log_level = logging.DEBUG
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.WARNING)

    # Results go to stdout, logs and progress to stderr
    log_console = configure_rich_logging(
        level=log_level,
        format_string=cfg.logging.format,
        hash_paths=cfg.logging.hash_paths,
    )
    set_console(Console())

    if config_path:
        log.info(f"Loaded config from {config_path}")
    log.debug(
        f"Logging configured: level={logging.getLevelName(log_level)}, "
        f"hash_paths={cfg.logging.hash_paths}"
    )

    state.config = cfg
    state.output_format = output
    state.verbose = verbose
    state.log_console = log_console


# ====================================================================
# MAIN COMMANDS
# ====================================================================


@app.command()
def resolve(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Audio files or album directories", exists=True),
    ],
    apply: Annotated[bool, typer.Option(help="Write changed release dates to the files")] = False,
) -> None:
    """Resolve the original release date of files or album directories.

    Prints what would change; nothing is written without --apply.

    Examples:
        origdate resolve song.flac
        origdate resolve /music/Album/ --apply
    """
    resolver = DateResolver(state.config.resolver)
    results: list[tuple[MediaItem, Verdict]] = []
    failures = 0

    for path in paths:
        for item in _items_for_path(path):
            verdict = resolver.process(item)
            if apply and verdict.changed and verdict.new_date is not None:
                assert item.path is not None
                library = FilesystemLibrary(item.path if item.is_album else item.path.parent)
                try:
                    library.update_item(item.with_release_date(verdict.new_date))
                except LibraryUpdateError as e:
                    log.error(f"Failed to apply date to '{item.name}': {e}")
                    failures += 1
            results.append((item, verdict))

    if state.output_format == OutputFormat.JSON:
        _emit_json(
            [
                {
                    **verdict.to_dict(),
                    "kind": item.kind.value,
                    "current_date": item.release_date.isoformat() if item.release_date else None,
                    "applied": apply and verdict.changed,
                }
                for item, verdict in results
            ]
        )
    else:
        for item, verdict in results:
            name = escape(item.name)
            if verdict.changed and verdict.new_date is not None:
                action = "Applied" if apply else "Would update"
                cprint(
                    f"[green]✓ {action} {item.kind} '{name}': {_format_date(item)} → "
                    f"{verdict.new_date.isoformat()}[/green] [dim]({verdict.source})[/dim]"
                )
            else:
                cprint(f"[dim]- {item.kind} '{name}': unchanged ({_format_date(item)})[/dim]")

    if failures:
        sys.exit(ExitCode.ERROR)
    if not any(verdict.changed for _, verdict in results):
        sys.exit(ExitCode.NO_RESULTS)
    sys.exit(ExitCode.SUCCESS)


@app.command()
def run(
    root: Annotated[
        Path,
        typer.Argument(help="Library root directory", exists=True, file_okay=False),
    ],
    workers: Annotated[
        int | None, typer.Option(help="Parallel resolutions (default from config)")
    ] = None,
) -> None:
    """Apply original release dates to every album and track under ROOT.

    Items unchanged since the previous run are skipped using the
    processed-items cache.

    Examples:
        origdate run /music
        origdate -v run /music --workers 8
    """
    cfg = state.config
    root = root.resolve()
    set_library_root(root)
    runner = BatchRunner(
        library=FilesystemLibrary(root),
        resolver=DateResolver(cfg.resolver),
        cache=_make_cache(cfg),
        workers=workers or cfg.batch.workers,
    )
    cancel = threading.Event()

    try:
        with _cancel_on_interrupt(cancel):
            summary = _run_batch(runner, cancel)
    except KeyboardInterrupt:
        print_warning("Aborted, processed-items cache not saved")
        sys.exit(ExitCode.ERROR)

    _report_summary(summary)
    sys.exit(ExitCode.ERROR if summary.failed or summary.cancelled else ExitCode.SUCCESS)


def _run_batch(runner: BatchRunner, cancel: threading.Event) -> BatchSummary:
    if state.output_format != OutputFormat.TEXT:
        return runner.run(cancel_event=cancel)

    with make_progress(console=state.log_console) as progress:
        task = progress.add_task("Applying original release dates...", total=None)

        def on_progress(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        return runner.run(cancel_event=cancel, progress_callback=on_progress)


def _report_summary(summary: BatchSummary) -> None:
    if state.output_format == OutputFormat.JSON:
        _emit_json(
            {
                "total": summary.total,
                "processed": summary.processed,
                "updated": summary.updated,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "albums_updated": summary.albums_updated,
                "cancelled": summary.cancelled,
                "updates": [verdict.to_dict() for verdict in summary.verdicts],
                "errors": [{"item_id": item_id, "error": str(e)} for item_id, e in summary.errors],
            }
        )
        return

    cprint(
        f"Processed {summary.processed}/{summary.total} items: "
        f"{summary.updated} updated ({summary.albums_updated} albums), "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    for item_id, error in summary.errors:
        print_error(f"{escape(item_id)}: {escape(str(error))}")
    if summary.cancelled:
        print_warning("Batch was cancelled")


# ====================================================================
# CACHE COMMANDS
# ====================================================================


@cache_app.command("clear")
def cache_clear() -> None:
    """Delete the processed-items cache so the next run reprocesses everything."""
    cache = ProcessedItemsCache(state.config.cache.path)
    try:
        removed = cache.clear()
    except OSError as e:
        print_error(f"Could not clear cache: {e}")
        sys.exit(ExitCode.ERROR)

    if state.output_format == OutputFormat.JSON:
        _emit_json({"path": str(cache.path), "cleared": removed})
    elif removed:
        print_success(f"Cleared processed-items cache at {escape(str(cache.path))}")
    else:
        cprint(f"No processed-items cache at {escape(str(cache.path))}")
    sys.exit(ExitCode.SUCCESS)


@cache_app.command("status")
def cache_status() -> None:
    """Show the processed-items cache location and size."""
    cache = ProcessedItemsCache(state.config.cache.path)
    exists = cache.path.exists()
    entries = cache.load()

    if state.output_format == OutputFormat.JSON:
        _emit_json(
            {
                "path": str(cache.path),
                "exists": exists,
                "enabled": state.config.cache.enabled,
                "entries": len(entries),
            }
        )
    else:
        cprint(f"Cache file: {escape(str(cache.path))}")
        cprint(f"  Exists: {'yes' if exists else 'no'}")
        cprint(f"  Enabled: {'yes' if state.config.cache.enabled else 'no'}")
        cprint(f"  Entries: {len(entries)}")
    sys.exit(ExitCode.SUCCESS if exists else ExitCode.NO_RESULTS)


# ====================================================================
# ENTRY POINT
# ====================================================================


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
