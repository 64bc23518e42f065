"""Original release date resolver.

Implements the fixed precedence chain that picks the earliest known original
release date for a track or album, and the apply decision that says whether
the item's current release date should change.

Track chain (first match wins):

1. Provider-id hints: TDOR, OriginalReleaseDate, OriginalYear
2. Vorbis ORIGINALDATE
3. Vorbis ORIGINALYEAR
4. APE ORIGINALDATE
5. ID3v2 TDOR
6. ID3v2 TORY
7. ID3v2 TXXX "original year/date" frames (skipping the current production year)
8. ID3v2 TDRL (full date only)
9. Generic year tag, only when older than the current release date

Album chain, read from one representative track: Vorbis ORIGINALDATE,
Vorbis ORIGINALYEAR, ID3v2 TXXX "original year/date" frames.

The resolver holds no state besides its configuration; calling it twice on the
same input gives the same answer.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from original_release.config import ResolverConfig
from original_release.dates import (
    is_valid_year,
    parse_date_or_year,
    parse_full_date,
    parse_year,
    year_to_date,
)
from original_release.models import DateSource, MediaItem, ResolvedDate, Verdict
from original_release.tagview import (
    ORIGINALDATE_KEYS,
    TagReadError,
    TagView,
    read_tag_view,
)

log = logging.getLogger(__name__)

# Extensions considered when picking an album's representative track
ALBUM_AUDIO_EXTENSIONS = (".mp3", ".flac", ".m4a", ".ogg")

TagReader = Callable[[Path], TagView]


def find_representative_file(directory: Path) -> Path | None:
    """
    Find the first audio file in an album directory tree.

    Walks top-down with sorted directory and file names so the choice is
    stable across runs. All tracks of an album are expected to carry the same
    original release metadata, so any one of them will do.

    Args:
        directory: Album directory

    Returns:
        Path of the first audio file, or None if there is none
    """
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if name.lower().endswith(ALBUM_AUDIO_EXTENSIONS):
                return Path(root) / name
    return None


class DateResolver:
    """
    Resolve original release dates and decide whether an item needs updating.

    Args:
        config: Resolver flags
        tag_reader: Callable opening a file and returning its TagView.
            Defaults to :func:`read_tag_view`.
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        tag_reader: TagReader | None = None,
    ):
        self.config = config or ResolverConfig()
        self._read_tags = tag_reader or read_tag_view

    def process(self, item: MediaItem) -> Verdict:
        """Resolve and decide in one step."""
        if not self.config.prefer_original_release:
            return Verdict.unchanged(item.id)
        return self.decide(item, self.resolve(item))

    def resolve(self, item: MediaItem) -> ResolvedDate:
        """Find the best-known original release date for a track or album."""
        log.debug(
            f"Resolving {item.kind} '{item.name}' "
            f"(current release date: {item.release_date.isoformat() if item.release_date else 'none'})"
        )
        if item.is_album:
            return self.resolve_album(item)
        return self.resolve_track(item)

    def decide(self, item: MediaItem, resolved: ResolvedDate) -> Verdict:
        """
        Decide whether ``resolved`` should replace the item's release date.

        An update is warranted only when a date was found and it differs from
        the current release date.
        """
        if resolved.value is None or resolved.value == item.release_date:
            return Verdict.unchanged(item.id)

        log.debug(
            f"Updating {item.kind} '{item.name}' release date from "
            f"{item.release_date.isoformat() if item.release_date else 'none'} to "
            f"{resolved.value.isoformat()} ({resolved.source})"
        )
        return Verdict(
            item_id=item.id,
            changed=True,
            new_date=resolved.value,
            new_production_year=resolved.value.year,
            source=resolved.source,
        )

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------

    def resolve_track(self, item: MediaItem) -> ResolvedDate:
        resolved = self._from_provider_ids(item)
        if resolved.found:
            return resolved

        view = self._open(item.path)
        if view is None:
            return ResolvedDate.none()
        return self.resolve_track_tags(view, item)

    def resolve_track_tags(self, view: TagView, item: MediaItem) -> ResolvedDate:
        """Run the file part of the track chain (steps 2-9) against a TagView."""
        # Vorbis comments (FLAC, Ogg)
        original_date = view.vorbis_field(*ORIGINALDATE_KEYS)
        if original_date:
            log.debug(f"Found ORIGINALDATE field: {original_date}")
            parsed = parse_date_or_year(original_date)
            if parsed is not None:
                return ResolvedDate(parsed, DateSource.VORBIS_ORIGINALDATE)

        year = parse_year(view.vorbis_field("ORIGINALYEAR"))
        if year is not None:
            return ResolvedDate(year_to_date(year), DateSource.VORBIS_ORIGINALYEAR)

        # APEv2
        ape_date = view.ape_item("ORIGINALDATE")
        if ape_date:
            log.debug(f"Found ORIGINALDATE in APE tag: {ape_date}")
            parsed = parse_date_or_year(ape_date)
            if parsed is not None:
                return ResolvedDate(parsed, DateSource.APE_ORIGINALDATE)

        # ID3v2
        tdor = view.id3_text("TDOR")
        if tdor:
            log.debug(f"Found TDOR frame: {tdor}")
            parsed = parse_date_or_year(tdor)
            if parsed is not None:
                return ResolvedDate(parsed, DateSource.ID3_TDOR)

        year = parse_year(view.id3_text("TORY"))
        if year is not None:
            return ResolvedDate(year_to_date(year), DateSource.ID3_TORY)

        for frame in view.original_user_text_frames():
            year = parse_year(frame.first_value)
            # Skip a year that merely repeats the one already stored
            if year is not None and year != item.production_year:
                log.debug(f"Found original year in TXXX frame '{frame.description}': {year}")
                return ResolvedDate(year_to_date(year), DateSource.ID3_TXXX)

        tdrl = parse_full_date(view.id3_text("TDRL"))
        if tdrl is not None:
            return ResolvedDate(tdrl, DateSource.ID3_TDRL)

        # Last resort: a plain year tag, only if it predates the current release date
        if view.year and item.release_date is not None:
            current_year = item.release_date.year
            log.debug(f"Found year tag: {view.year} (current release year: {current_year})")
            if is_valid_year(view.year) and view.year < current_year:
                return ResolvedDate(year_to_date(view.year), DateSource.TAG_YEAR)

        return ResolvedDate.none()

    def _from_provider_ids(self, item: MediaItem) -> ResolvedDate:
        tdor = parse_full_date(item.provider_id("TDOR"))
        if tdor is not None:
            log.info(f"Found TDOR in provider ids for '{item.name}': {tdor.isoformat()}")
            return ResolvedDate(tdor, DateSource.PROVIDER_TDOR)

        release_date = parse_full_date(item.provider_id("OriginalReleaseDate"))
        if release_date is not None:
            log.info(
                f"Found OriginalReleaseDate in provider ids for '{item.name}': "
                f"{release_date.isoformat()}"
            )
            return ResolvedDate(release_date, DateSource.PROVIDER_ORIGINAL_RELEASE_DATE)

        year = parse_year(item.provider_id("OriginalYear"))
        if year is not None:
            log.info(f"Found OriginalYear in provider ids for '{item.name}': {year}")
            return ResolvedDate(year_to_date(year), DateSource.PROVIDER_ORIGINAL_YEAR)

        return ResolvedDate.none()

    # ------------------------------------------------------------------
    # Albums
    # ------------------------------------------------------------------

    def resolve_album(self, item: MediaItem) -> ResolvedDate:
        if item.path is None or not item.path.is_dir():
            log.debug(f"Album '{item.name}' has no readable directory")
            return ResolvedDate.none()

        track = find_representative_file(item.path)
        view = self._open(track)
        if view is None:
            log.debug(f"No original release date found in album tracks for '{item.name}'")
            return ResolvedDate.none()

        resolved = self.resolve_album_tags(view)
        if not resolved.found:
            log.debug(f"No original release date found in album tracks for '{item.name}'")
        return resolved

    def resolve_album_tags(self, view: TagView) -> ResolvedDate:
        """Run the album sub-chain against a representative track's TagView."""
        original_date = parse_full_date(view.vorbis_field(*ORIGINALDATE_KEYS))
        if original_date is not None:
            log.debug(f"Found ORIGINALDATE in album track: {original_date.isoformat()}")
            return ResolvedDate(original_date, DateSource.VORBIS_ORIGINALDATE)

        year = parse_year(view.vorbis_field("ORIGINALYEAR"))
        if year is not None:
            log.debug(f"Found ORIGINALYEAR in album track: {year}")
            return ResolvedDate(year_to_date(year), DateSource.VORBIS_ORIGINALYEAR)

        for frame in view.original_user_text_frames():
            year = parse_year(frame.first_value)
            if year is not None:
                log.debug(f"Found TXXX original year in album track: {year}")
                return ResolvedDate(year_to_date(year), DateSource.ID3_TXXX)

        return ResolvedDate.none()

    def _open(self, file_path: Path | None) -> TagView | None:
        """Read a TagView, treating any read failure as "no tags"."""
        if file_path is None:
            return None
        if not file_path.is_file():
            log.debug("File not found: %s", file_path)
            return None
        try:
            return self._read_tags(file_path)
        except TagReadError as e:
            log.debug("Error reading metadata from %s: %s", file_path, e)
            return None
