"""Batch processing of a whole media library.

Walks every album (followed by its tracks) and then the tracks that belong to
no album, applying original release dates. Provides:
- Skipping of items unchanged since they were last processed
- Parallel resolution with ordered, single-threaded persistence
- Cooperative cancellation between items
- Per-item error handling that never aborts the run
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field

from original_release.cache import CacheSession, ProcessedItemsCache
from original_release.library import MediaLibrary
from original_release.models import MediaItem, Verdict
from original_release.resolver import DateResolver

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class BatchSummary:
    """Result of a batch run."""

    total: int = 0
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    albums_updated: int = 0
    cancelled: bool = False
    verdicts: list[Verdict] = field(default_factory=list)
    errors: list[tuple[str, Exception]] = field(default_factory=list)

    @property
    def done(self) -> int:
        return self.processed + self.skipped

    def add_failure(self, item: MediaItem, error: Exception) -> None:
        self.failed += 1
        self.errors.append((item.id, error))


def group_items(albums: list[MediaItem], tracks: list[MediaItem]) -> list[list[MediaItem]]:
    """
    Order items for processing: each album followed by its tracks, then orphans.

    Orphans are tracks with no parent or whose parent is not a listed album.
    """
    tracks_by_album: dict[str, list[MediaItem]] = defaultdict(list)
    for track in tracks:
        if track.parent_id is not None:
            tracks_by_album[track.parent_id].append(track)

    album_ids = {album.id for album in albums}
    groups = [[album, *tracks_by_album.get(album.id, [])] for album in albums]

    orphans = [t for t in tracks if t.parent_id is None or t.parent_id not in album_ids]
    if orphans:
        groups.append(orphans)
    return groups


class BatchRunner:
    """
    Apply original release dates to every album and track of a library.

    Args:
        library: Library supplying items and persisting updates
        resolver: Resolver deciding each item
        cache: Processed-items cache, or None to process everything every run
        workers: Maximum parallel resolutions
    """

    def __init__(
        self,
        library: MediaLibrary,
        resolver: DateResolver,
        cache: ProcessedItemsCache | None = None,
        workers: int = 1,
    ):
        self.library = library
        self.resolver = resolver
        self.cache = cache
        self.workers = max(1, workers)

    @contextmanager
    def _session(self) -> Iterator[CacheSession]:
        if self.cache is None:
            yield CacheSession()
        else:
            with self.cache.session() as session:
                yield session

    def run(
        self,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> BatchSummary:
        """
        Process the whole library.

        Args:
            cancel_event: Checked between items; when set the run stops and
                the cache is left untouched
            progress_callback: Called with (done, total) after each item,
                including skipped and failed ones

        Returns:
            BatchSummary with counts, verdicts of updated items and errors
        """
        summary = BatchSummary()

        if not self.resolver.config.prefer_original_release:
            log.info("Original release date preference is disabled, skipping batch")
            return summary

        log.info("Starting original release date batch")
        cancel = cancel_event or threading.Event()

        with self._session() as session:
            albums = self.library.list_albums()
            tracks = self.library.list_tracks()
            summary.total = len(albums) + len(tracks)
            log.info(f"Found {len(albums)} albums and {len(tracks)} tracks to process")

            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                for group in group_items(albums, tracks):
                    if cancel.is_set():
                        break
                    self._run_group(group, executor, session, summary, cancel, progress_callback)

            if cancel.is_set():
                summary.cancelled = True
                session.discard()
                log.warning("Batch cancelled, processed-items cache not saved")

        log.info(
            f"Completed: {summary.albums_updated} albums updated, "
            f"{summary.updated} total items updated, {summary.skipped} items skipped, "
            f"{summary.failed} failed"
        )
        return summary

    def _run_group(
        self,
        group: list[MediaItem],
        executor: ThreadPoolExecutor,
        session: CacheSession,
        summary: BatchSummary,
        cancel: threading.Event,
        progress_callback: ProgressCallback | None,
    ) -> None:
        # An album update writes to its track files, so the tracks are only
        # read once the album has been stored
        stages = [group[:1], group[1:]] if group[0].is_album else [group]

        updated_in_group: list[str] = []
        for stage in stages:
            if not self._run_stage(
                stage, executor, session, summary, cancel, progress_callback, updated_in_group
            ):
                return

        if updated_in_group and group[0].is_album:
            summary.albums_updated += 1
            log.info(
                f"Updated album '{group[0].name}': {len(updated_in_group)} item(s) "
                "with original release dates"
            )

    def _run_stage(
        self,
        items: list[MediaItem],
        executor: ThreadPoolExecutor,
        session: CacheSession,
        summary: BatchSummary,
        cancel: threading.Event,
        progress_callback: ProgressCallback | None,
        updated: list[str],
    ) -> bool:
        """Resolve ``items`` in parallel and apply them in order; False once cancelled."""
        pending: list[tuple[MediaItem, Future[Verdict]]] = []
        for item in items:
            if session.should_skip(item):
                summary.skipped += 1
                if progress_callback:
                    progress_callback(summary.done, summary.total)
            else:
                pending.append((item, executor.submit(self.resolver.process, item)))

        for index, (item, future) in enumerate(pending):
            if cancel.is_set():
                for _, remaining in pending[index:]:
                    remaining.cancel()
                return False

            try:
                verdict = future.result()
            except Exception as e:
                log.error(f"Error resolving {item.kind} '{item.name}': {e}")
                summary.add_failure(item, e)
                summary.processed += 1
                if progress_callback:
                    progress_callback(summary.done, summary.total)
                continue

            if verdict.changed and self._persist(item, verdict, summary):
                updated.append(item.name)

            # Cache after processing, whether updated or not
            session.mark_processed(item)
            summary.processed += 1
            if progress_callback:
                progress_callback(summary.done, summary.total)
        return True

    def _persist(self, item: MediaItem, verdict: Verdict, summary: BatchSummary) -> bool:
        """Store a changed item; failures are logged and counted, never raised."""
        assert verdict.new_date is not None
        try:
            self.library.update_item(item.with_release_date(verdict.new_date))
        except Exception as e:
            log.error(f"Error updating {item.kind} '{item.name}': {e}")
            summary.add_failure(item, e)
            return False
        summary.updated += 1
        summary.verdicts.append(verdict)
        return True
