"""Release date readers and writers for audio files.

Reads and writes the primary release date tag of each format:

* ID3v2 (MP3): TDRC
* Vorbis comments (FLAC, Ogg): DATE
* MP4/M4A: the ©day atom

Album dates live in a separate ``ALBUMRELEASEDATE`` tag on every track of the
album (a TXXX frame, a Vorbis comment, or an iTunes freeform atom), so an
album update never overwrites a date a track resolved for itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from original_release.dates import parse_date_or_year

ALBUM_DATE_TAG = "ALBUMRELEASEDATE"


@dataclass
class WriteReport:
    """Report of what was written."""

    file_path: Path
    fields_written: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


class DateTagWriter(ABC):
    """
    Abstract base class for format-specific release date access.

    Subclasses implement format-specific read/write logic for the track date
    tag (``field_name``) and the album date tag (``album_field_name``).
    """

    field_name = "release_date"
    album_field_name = ALBUM_DATE_TAG

    def target_field(self, album: bool) -> str:
        return self.album_field_name if album else self.field_name

    @abstractmethod
    def read_release_date(self, file_path: Path, album: bool = False) -> date | None:
        """Read the track (or album) release date stored in the file, if any."""

    @abstractmethod
    def write_release_date(
        self, file_path: Path, value: date, dry_run: bool = False, album: bool = False
    ) -> WriteReport:
        """
        Write the release date.

        Args:
            file_path: Path to audio file
            value: Release date to store
            dry_run: If True, don't write, just report what would be written
            album: Write the album date tag instead of the track date tag
        """


class ID3DateWriter(DateTagWriter):
    """
    Release date access for ID3v2.4 (MP3) files.

    Uses mutagen for low-level tag manipulation.
    """

    field_name = "TDRC"
    album_field_name = f"TXXX:{ALBUM_DATE_TAG}"

    def read_release_date(self, file_path: Path, album: bool = False) -> date | None:
        from mutagen.id3 import ID3, ID3NoHeaderError

        try:
            tags = ID3(file_path)
        except ID3NoHeaderError:
            return None

        frame = tags.get(self.target_field(album))
        if not frame or not frame.text:
            return None
        return parse_date_or_year(str(frame.text[0]))

    def write_release_date(
        self, file_path: Path, value: date, dry_run: bool = False, album: bool = False
    ) -> WriteReport:
        from mutagen.id3 import ID3, TDRC, TXXX, ID3NoHeaderError

        report = WriteReport(file_path=file_path, dry_run=dry_run)

        try:
            tags = ID3(file_path)
        except ID3NoHeaderError:
            tags = ID3()

        if not dry_run:
            tags.delall(self.target_field(album))
            if album:
                tags.add(TXXX(encoding=3, desc=ALBUM_DATE_TAG, text=[value.isoformat()]))
            else:
                tags.add(TDRC(encoding=3, text=[value.isoformat()]))
            tags.save(file_path)
        report.fields_written.append(self.target_field(album))
        return report


class VorbisDateWriter(DateTagWriter):
    """
    Release date access for FLAC/OGG files (Vorbis comments).

    Uses mutagen for low-level tag manipulation.
    """

    field_name = "DATE"

    def read_release_date(self, file_path: Path, album: bool = False) -> date | None:
        from mutagen import File

        audio = File(file_path)
        if audio is None or audio.tags is None:
            return None

        values = audio.tags.get(self.target_field(album))  # pyright: ignore[reportAttributeAccessIssue]
        if not values:
            return None
        return parse_date_or_year(values[0])

    def write_release_date(
        self, file_path: Path, value: date, dry_run: bool = False, album: bool = False
    ) -> WriteReport:
        from mutagen import File

        report = WriteReport(file_path=file_path, dry_run=dry_run)

        audio = File(file_path)
        if audio is None:
            report.errors.append("Could not open file")
            return report

        if not dry_run:
            if audio.tags is None:
                audio.add_tags()
            audio.tags[self.target_field(album)] = [value.isoformat()]  # pyright: ignore[reportOptionalSubscript]
            audio.save()
        report.fields_written.append(self.target_field(album))
        return report


class MP4DateWriter(DateTagWriter):
    """
    Release date access for MP4/M4A files.

    Uses mutagen for low-level tag manipulation.
    """

    DATE_ATOM = "\xa9day"
    field_name = DATE_ATOM
    album_field_name = f"----:com.apple.iTunes:{ALBUM_DATE_TAG}"

    def read_release_date(self, file_path: Path, album: bool = False) -> date | None:
        from mutagen.mp4 import MP4

        try:
            audio = MP4(file_path)
        except Exception:
            return None

        key = self.target_field(album)
        if audio.tags is None or key not in audio.tags:  # pyright: ignore[reportOperatorIssue]
            return None
        values = audio.tags[key]  # pyright: ignore[reportOptionalSubscript]
        if not values:
            return None
        # Freeform atoms hold bytes
        raw = values[0]
        text = bytes(raw).decode("utf-8", "replace") if isinstance(raw, bytes) else str(raw)
        return parse_date_or_year(text)

    def write_release_date(
        self, file_path: Path, value: date, dry_run: bool = False, album: bool = False
    ) -> WriteReport:
        from mutagen.mp4 import MP4, MP4FreeForm

        report = WriteReport(file_path=file_path, dry_run=dry_run)

        try:
            audio = MP4(file_path)
        except Exception as e:
            report.errors.append(f"Could not open file: {e}")
            return report

        if not dry_run:
            if audio.tags is None:
                audio.add_tags()
            if album:
                stored = [MP4FreeForm(value.isoformat().encode("utf-8"))]
            else:
                stored = [value.isoformat()]
            audio.tags[self.target_field(album)] = stored  # pyright: ignore[reportOptionalSubscript]
            audio.save()
        report.fields_written.append(self.target_field(album))
        return report


def get_writer_for_file(file_path: Path) -> DateTagWriter:
    """Get appropriate date writer for file based on extension."""
    suffix = file_path.suffix.lower()

    if suffix == ".mp3":
        return ID3DateWriter()
    elif suffix in (".flac", ".ogg"):
        return VorbisDateWriter()
    elif suffix in (".mp4", ".m4a"):
        return MP4DateWriter()
    else:
        raise ValueError(f"Unsupported audio format: {suffix}")


def read_release_date(file_path: Path, album: bool = False) -> date | None:
    """Read the release date tag (or the album date tag) from an audio file."""
    return get_writer_for_file(file_path).read_release_date(file_path, album=album)


def write_release_date(
    file_path: Path, value: date, dry_run: bool = False, album: bool = False
) -> WriteReport:
    """
    Write the release date tag (or the album date tag) to an audio file.

    Returns:
        WriteReport with details of what was written
    """
    writer = get_writer_for_file(file_path)
    return writer.write_release_date(file_path, value, dry_run=dry_run, album=album)
