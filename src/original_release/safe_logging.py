"""Path-safe logging for original-release.

Library paths end up in almost every log line. These helpers keep them short
(relative to the library root) or hide them entirely (hashed) depending on the
``logging.hash_paths`` setting.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


def hash_path(file_path: Path | str, length: int = 12) -> str:
    """Hash a file path for logging.

    Creates a deterministic, non-reversible hash of the full path.

    Args:
        file_path: Path to hash
        length: Length of hash to return

    Returns:
        Truncated SHA256 hash of the path
    """
    path_str = str(file_path)
    return hashlib.sha256(path_str.encode()).hexdigest()[:length]


def relativize_path(file_path: Path | str, library_root: Path | str | None = None) -> str:
    """Convert path to relative form for safe logging.

    If library_root is provided, returns path relative to it.
    Otherwise, returns just the filename with parent directory.
    """
    path = Path(file_path)

    if library_root:
        root = Path(library_root)
        try:
            return str(path.relative_to(root))
        except ValueError:
            pass

    if path.parent.name:
        return f"{path.parent.name}/{path.name}"
    return path.name


def safe_path(
    file_path: Path | str,
    library_root: Path | str | None = None,
    use_hash: bool = False,
) -> str:
    """Get a safe representation of a path for logging."""
    if use_hash:
        return f"file:{hash_path(file_path)}"
    return relativize_path(file_path, library_root)


class SafeLogFormatter(logging.Formatter):
    """Log formatter that shortens or hashes ``Path`` arguments."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        hash_paths: bool = False,
        library_root: Path | None = None,
    ):
        super().__init__(fmt, datefmt)
        self.hash_paths = hash_paths
        self.library_root = library_root

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the original record
        record = logging.makeLogRecord(record.__dict__)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return super().format(record)

    def _sanitize_args(
        self, args: tuple[Any, ...] | Mapping[str, Any]
    ) -> tuple[Any, ...] | dict[str, Any]:
        if isinstance(args, Mapping):
            return {k: self._sanitize_value(v) for k, v in args.items()}
        return tuple(self._sanitize_value(arg) for arg in args)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, Path):
            return safe_path(value, self.library_root, use_hash=self.hash_paths)
        return value


def configure_rich_logging(
    level: int = logging.WARNING,
    format_string: str = "%(message)s",
    hash_paths: bool = False,
    library_root: Path | None = None,
    show_time: bool = True,
    show_path: bool = False,
) -> Console:
    """Configure root logging with a Rich handler and path-safe formatting.

    Returns:
        The Console the handler writes to, for sharing with CLI output
    """
    console = Console(stderr=True)
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=True,
    )
    handler.setFormatter(
        SafeLogFormatter(fmt=format_string, hash_paths=hash_paths, library_root=library_root)
    )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing, RichHandler):
            root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # mutagen is chatty at DEBUG only when asked
    if level > logging.DEBUG:
        logging.getLogger("mutagen").setLevel(logging.WARNING)
    return console


def set_library_root(library_root: Path) -> None:
    """Relativise logged paths against ``library_root`` from now on."""
    for handler in logging.getLogger().handlers:
        if isinstance(handler.formatter, SafeLogFormatter):
            handler.formatter.library_root = library_root
