"""
Media library collaborators.

The resolver never lists or persists items itself; a :class:`MediaLibrary`
does. :class:`FilesystemLibrary` is the implementation used by the CLI: it
treats a directory tree of audio files as a library and stores release dates
in the files' own date tags. Album dates go to a separate album date tag on
each track so track dates are only ever written by track updates.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import UTC, date, datetime
from pathlib import Path

import mutagen

from original_release.models import ItemKind, MediaItem
from original_release.resolver import find_representative_file
from original_release.tagging import read_release_date, write_release_date

log = logging.getLogger(__name__)

LIBRARY_AUDIO_EXTENSIONS = (".mp3", ".flac", ".ogg", ".m4a")


class LibraryUpdateError(Exception):
    """Raised when a library cannot persist an item update."""


class MediaLibrary(ABC):
    """
    Abstract base class for the host media library.

    Implementations list the library's albums and tracks recursively and
    persist metadata edits proposed by the resolver.
    """

    @abstractmethod
    def list_albums(self) -> list[MediaItem]:
        """All album items in the library."""

    @abstractmethod
    def list_tracks(self) -> list[MediaItem]:
        """All track items in the library, with ``parent_id`` set to their album."""

    @abstractmethod
    def update_item(self, item: MediaItem) -> None:
        """
        Persist an item's release date and production year.

        Raises:
            LibraryUpdateError: If the update could not be stored
        """


def _is_audio(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in LIBRARY_AUDIO_EXTENSIONS


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)


def _safe_read_date(path: Path, album: bool = False) -> date | None:
    try:
        return read_release_date(path, album=album)
    except (mutagen.MutagenError, OSError, ValueError) as e:
        log.debug("Could not read release date from %s: %s", path, e)
        return None


class FilesystemLibrary(MediaLibrary):
    """
    Library backed by a directory tree.

    Every directory directly containing audio files is an album; every audio
    file is a track of the album it sits in. Item ids are paths relative to
    the library root, so they stay stable between runs.
    """

    def __init__(self, root: Path):
        self.root = root

    def _album_dirs(self) -> Iterator[Path]:
        candidates = [self.root, *sorted(p for p in self.root.rglob("*") if p.is_dir())]
        for directory in candidates:
            if any(_is_audio(p) for p in directory.iterdir()):
                yield directory

    def _album_tracks(self, directory: Path) -> list[Path]:
        return sorted(p for p in directory.iterdir() if _is_audio(p))

    def _relative(self, path: Path) -> str:
        relative = path.relative_to(self.root).as_posix()
        return relative if relative != "." else self.root.name

    def album_id(self, directory: Path) -> str:
        return f"album:{self._relative(directory)}"

    def track_id(self, file_path: Path) -> str:
        return f"track:{self._relative(file_path)}"

    def album_item(self, directory: Path) -> MediaItem:
        tracks = self._album_tracks(directory)
        representative = find_representative_file(directory)
        release_date = None
        if representative is not None:
            # Albums never updated before fall back to the track date
            release_date = _safe_read_date(representative, album=True) or _safe_read_date(
                representative
            )
        return MediaItem(
            id=self.album_id(directory),
            name=directory.name,
            kind=ItemKind.ALBUM,
            path=directory,
            release_date=release_date,
            production_year=release_date.year if release_date else None,
            date_modified=max((_mtime(t) for t in tracks), default=None),
        )

    def track_item(self, file_path: Path) -> MediaItem:
        release_date = _safe_read_date(file_path)
        return MediaItem(
            id=self.track_id(file_path),
            name=file_path.stem,
            kind=ItemKind.TRACK,
            path=file_path,
            release_date=release_date,
            production_year=release_date.year if release_date else None,
            parent_id=self.album_id(file_path.parent),
            date_modified=_mtime(file_path),
        )

    def list_albums(self) -> list[MediaItem]:
        return [self.album_item(d) for d in self._album_dirs()]

    def list_tracks(self) -> list[MediaItem]:
        return [self.track_item(t) for d in self._album_dirs() for t in self._album_tracks(d)]

    def update_item(self, item: MediaItem) -> None:
        if item.path is None or item.release_date is None:
            raise LibraryUpdateError(f"Nothing to write for '{item.name}'")

        if item.is_album:
            targets = self._album_tracks(item.path)
        else:
            targets = [item.path]

        for target in targets:
            try:
                report = write_release_date(target, item.release_date, album=item.is_album)
            except (mutagen.MutagenError, OSError, ValueError) as e:
                raise LibraryUpdateError(f"Could not write {target}: {e}") from e
            if not report.ok:
                raise LibraryUpdateError(f"Could not write {target}: {'; '.join(report.errors)}")
        log.debug(f"Wrote release date {item.release_date.isoformat()} for '{item.name}'")
