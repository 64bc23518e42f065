"""Uniform read-only view over an audio file's embedded tags.

One :class:`TagView` exposes every tag dialect the resolver cares about
(Vorbis comments, APEv2, ID3v2) as optional capabilities, plus the generic
container year. Views are plain snapshots: mutagen reads the file, the
reader copies the values out, and no file handle survives the call.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import mutagen
from mutagen._vorbis import VCommentDict
from mutagen.apev2 import APENoHeaderError, APETextValue, APEv2
from mutagen.id3 import ID3, ID3FileType, ID3NoHeaderError
from mutagen.mp4 import MP4Tags

log = logging.getLogger(__name__)

# Lookup order for the MusicBrainz ORIGINALDATE field in Vorbis comments
ORIGINALDATE_KEYS = ("ORIGINALDATE", "ORIGINAL DATE", "originaldate", "original date")


class TagReadError(Exception):
    """Raised when a file cannot be opened or parsed as audio."""


@dataclass(frozen=True)
class UserTextFrame:
    """An ID3v2 user-defined text frame (TXXX)."""

    description: str
    values: tuple[str, ...] = ()

    @property
    def first_value(self) -> str | None:
        return self.values[0] if self.values else None

    def is_original_date(self) -> bool:
        """True for descriptions naming an original year or date, e.g. ``originalyear``."""
        desc = self.description.lower()
        return "original" in desc and ("year" in desc or "date" in desc)


@dataclass(frozen=True)
class VorbisComments:
    """Vorbis/Xiph comment fields in file order."""

    fields: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_mutagen(cls, tags: VCommentDict) -> VorbisComments:
        return cls(fields=tuple((key, value) for key, value in tags))

    def get(self, key: str) -> str | None:
        """First non-empty value for ``key`` (case-insensitive)."""
        wanted = key.upper()
        for name, value in self.fields:
            if name.upper() == wanted and value:
                return value
        return None

    def first(self, keys: Iterable[str]) -> str | None:
        """First non-empty value across ``keys``, tried in order."""
        for key in keys:
            value = self.get(key)
            if value:
                return value
        return None


@dataclass(frozen=True)
class ApeItems:
    """APEv2 text items keyed by upper-cased item key."""

    items: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mutagen(cls, tags: APEv2) -> ApeItems:
        items: dict[str, str] = {}
        for key, value in tags.items():
            if isinstance(value, APETextValue):
                text = list(value)
                if text:
                    items[key.upper()] = text[0]
        return cls(items=items)

    def get(self, key: str) -> str | None:
        return self.items.get(key.upper()) or None


@dataclass(frozen=True)
class ID3Frames:
    """ID3v2 text frames by frame id, plus user-defined text frames."""

    frames: dict[str, tuple[str, ...]] = field(default_factory=dict)
    user_text: tuple[UserTextFrame, ...] = ()

    @classmethod
    def from_mutagen(cls, tags: ID3) -> ID3Frames:
        frames: dict[str, list[str]] = {}
        user_text: list[UserTextFrame] = []
        for frame in tags.values():
            frame_id = frame.FrameID
            if frame_id == "TXXX":
                user_text.append(
                    UserTextFrame(
                        description=frame.desc or "",  # pyright: ignore[reportAttributeAccessIssue]
                        values=tuple(str(t) for t in frame.text),  # pyright: ignore[reportAttributeAccessIssue]
                    )
                )
            elif frame_id.startswith("T") and hasattr(frame, "text"):
                frames.setdefault(frame_id, []).extend(str(t) for t in frame.text)
        return cls(
            frames={frame_id: tuple(values) for frame_id, values in frames.items()},
            user_text=tuple(user_text),
        )

    def get_all(self, frame_id: str) -> tuple[str, ...]:
        return self.frames.get(frame_id, ())

    def get(self, frame_id: str) -> str | None:
        """First text value of the frame, if any."""
        values = self.get_all(frame_id)
        return values[0] if values else None

    def original_date_frames(self) -> Iterator[UserTextFrame]:
        """User text frames whose description names an original year/date."""
        for frame in self.user_text:
            if frame.is_original_date() and frame.values:
                yield frame


@dataclass(frozen=True)
class TagView:
    """
    Snapshot of one audio file's tags.

    Each dialect attribute is None when the file does not carry that tag type.
    """

    path: Path
    vorbis: VorbisComments | None = None
    ape: ApeItems | None = None
    id3: ID3Frames | None = None
    year: int | None = None

    def vorbis_field(self, *keys: str) -> str | None:
        if self.vorbis is None:
            return None
        return self.vorbis.first(keys)

    def ape_item(self, key: str) -> str | None:
        if self.ape is None:
            return None
        return self.ape.get(key)

    def id3_text(self, frame_id: str) -> str | None:
        if self.id3 is None:
            return None
        return self.id3.get(frame_id)

    def original_user_text_frames(self) -> Iterator[UserTextFrame]:
        if self.id3 is None:
            return iter(())
        return self.id3.original_date_frames()


def _leading_year(text: str | None) -> int | None:
    if not text:
        return None
    head = str(text).strip()[:4]
    if not (head.isascii() and head.isdigit()):
        return None
    year = int(head)
    return year or None


def _load_id3_untranslated(file_path: Path, fallback: ID3) -> ID3:
    """Reload ID3 without the v2.3 -> v2.4 upgrade so TORY/TYER survive."""
    try:
        return ID3(file_path, translate=False)
    except ID3NoHeaderError:
        # Tag embedded in a container (AIFF, WAV); keep mutagen's reading
        return fallback


def _load_appended_ape(file_path: Path) -> APEv2 | None:
    try:
        return APEv2(file_path)
    except APENoHeaderError:
        return None


def _generic_year(
    vorbis: VorbisComments | None,
    id3: ID3Frames | None,
    ape: ApeItems | None,
    mp4_day: str | None,
) -> int | None:
    candidates: list[str | None] = []
    if vorbis is not None:
        candidates += [vorbis.get("DATE"), vorbis.get("YEAR")]
    if id3 is not None:
        candidates += [id3.get("TDRC"), id3.get("TYER")]
    if ape is not None:
        candidates.append(ape.get("YEAR"))
    candidates.append(mp4_day)

    for text in candidates:
        year = _leading_year(text)
        if year is not None:
            return year
    return None


def read_tag_view(file_path: Path) -> TagView:
    """
    Open an audio file and snapshot its tags.

    Args:
        file_path: Path to audio file

    Returns:
        TagView with every dialect found in the file

    Raises:
        TagReadError: If the file is missing or not a parseable audio file
    """
    try:
        audio = mutagen.File(file_path)
    except (mutagen.MutagenError, OSError) as e:
        raise TagReadError(f"Could not read {file_path}: {e}") from e
    if audio is None:
        raise TagReadError(f"Unrecognised audio format: {file_path}")

    tags = audio.tags
    vorbis: VorbisComments | None = None
    ape: ApeItems | None = None
    id3: ID3Frames | None = None
    mp4_day: str | None = None

    try:
        if isinstance(tags, VCommentDict):
            vorbis = VorbisComments.from_mutagen(tags)
        elif isinstance(tags, APEv2):
            ape = ApeItems.from_mutagen(tags)
        elif isinstance(tags, MP4Tags):
            day = tags.get("\xa9day")
            mp4_day = str(day[0]) if day else None

        if isinstance(tags, ID3):
            id3 = ID3Frames.from_mutagen(_load_id3_untranslated(file_path, tags))

        if isinstance(audio, ID3FileType) and ape is None:
            appended = _load_appended_ape(file_path)
            if appended is not None:
                ape = ApeItems.from_mutagen(appended)
    except (mutagen.MutagenError, OSError) as e:
        raise TagReadError(f"Could not read tags from {file_path}: {e}") from e

    view = TagView(
        path=file_path,
        vorbis=vorbis,
        ape=ape,
        id3=id3,
        year=_generic_year(vorbis, id3, ape, mp4_day),
    )
    log.debug(
        "Read tags from %s (vorbis=%s, ape=%s, id3=%s, year=%s)",
        file_path,
        vorbis is not None,
        ape is not None,
        id3 is not None,
        view.year,
    )
    return view
