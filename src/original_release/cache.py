"""Processed-items cache.

A flat JSON mapping of item id to the UTC time the item was last processed.
Batch runs load it once, mark items while they go, and write it once at the
end, so unchanged items can be skipped next time.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from original_release.models import MediaItem

log = logging.getLogger(__name__)

CACHE_FILE_NAME = "processed-items-cache.json"


@dataclass
class CacheSession:
    """Entries loaded for one batch run."""

    entries: dict[str, datetime] = field(default_factory=dict)
    discarded: bool = False

    def mark_processed(self, item: MediaItem, when: datetime | None = None) -> None:
        self.entries[item.id] = when or datetime.now(UTC)

    def should_skip(self, item: MediaItem) -> bool:
        return should_skip(item, self.entries)

    def discard(self) -> None:
        """Drop this session's changes instead of saving them."""
        self.discarded = True


def should_skip(item: MediaItem, entries: dict[str, datetime]) -> bool:
    """
    Check whether an item is unchanged since it was last processed.

    Items without a modification time are never skipped.
    """
    last_processed = entries.get(item.id)
    if last_processed is None or item.date_modified is None:
        return False
    if _as_utc(item.date_modified) <= _as_utc(last_processed):
        log.debug(f"Skipping '{item.name}' - no changes since last processing")
        return True
    return False


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ProcessedItemsCache:
    """
    File-backed processed-items cache.

    The whole load/mutate/save cycle of a batch runs under one process-wide
    lock; use :meth:`session` for that.
    """

    _lock = threading.Lock()

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> dict[str, datetime]:
        """
        Load all entries.

        A missing file gives an empty cache. So does a corrupt or unreadable
        one, after a warning: the next run simply reprocesses everything.
        """
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
            entries = {
                str(item_id): _as_utc(datetime.fromisoformat(stamp))
                for item_id, stamp in raw.items()
            }
        except (OSError, ValueError, TypeError) as e:
            log.warning(f"Failed to load cache file, starting with empty cache: {e}")
            return {}
        log.debug(f"Loaded {len(entries)} items from cache")
        return entries

    def save(self, entries: dict[str, datetime]) -> bool:
        """
        Write all entries, replacing the file atomically.

        Returns:
            True if the cache was written, False if writing failed
        """
        payload = {
            item_id: _as_utc(stamp).isoformat() for item_id, stamp in sorted(entries.items())
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, sort_keys=True)
                    f.write("\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            log.error(f"Failed to save cache file: {e}")
            return False
        log.debug(f"Saved {len(entries)} items to cache")
        return True

    @contextmanager
    def session(self) -> Iterator[CacheSession]:
        """
        Hold the cache lock for a full batch run.

        Yields a :class:`CacheSession`; its entries are saved on normal exit
        unless the session was discarded. Nothing is written if the block raises.
        """
        with self._lock:
            session = CacheSession(entries=self.load())
            yield session
            if session.discarded:
                log.debug("Cache session discarded, not saving")
            else:
                self.save(session.entries)

    def clear(self) -> bool:
        """
        Delete the cache file.

        Returns:
            True if a cache file existed and was removed
        """
        with self._lock:
            if not self.path.exists():
                log.info("Cache file does not exist at: %s", self.path)
                return False
            self.path.unlink()
            log.info("Processing cache cleared at: %s", self.path)
            return True
