"""Pytest configuration and shared fixtures for original-release tests."""

from __future__ import annotations

import struct
from collections.abc import Callable
from datetime import date
from pathlib import Path

import pytest

from original_release.library import LibraryUpdateError, MediaLibrary
from original_release.models import MediaItem
from original_release.tagview import ApeItems, ID3Frames, TagView, UserTextFrame, VorbisComments

# =============================================================================
# Minimal audio files
# =============================================================================

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417 bytes per frame
_MPEG_FRAME = b"\xff\xfb\x90\x00" + b"\x00" * 413


def create_minimal_mp3(path: Path) -> None:
    """Create a tagless MP3 made of a few silent MPEG frames."""
    path.write_bytes(_MPEG_FRAME * 8)


def create_minimal_flac(path: Path) -> None:
    """Create a minimal valid FLAC file with only a STREAMINFO block."""
    # Block header: last-block flag set, type 0 (STREAMINFO), length 34
    block_header = bytes([0x80, 0x00, 0x00, 0x22])

    # sample rate (20 bits) | channels - 1 (3 bits) | bits per sample - 1 (5 bits) | samples (36 bits)
    packed = (44100 << 44) | (1 << 41) | (15 << 36)
    streaminfo = (
        struct.pack(">HH", 4096, 4096)  # block sizes
        + b"\x00\x00\x00\x00\x00\x00"  # frame sizes (unknown)
        + struct.pack(">Q", packed)
        + b"\x00" * 16  # MD5
    )
    path.write_bytes(b"fLaC" + block_header + streaminfo)


@pytest.fixture
def make_mp3(tmp_path) -> Callable[..., Path]:
    """Factory for MP3 files carrying the given ID3 text frames and TXXX frames."""
    from mutagen.id3 import ID3, TXXX, Frames

    def _make(
        name: str = "track.mp3",
        frames: dict[str, str] | None = None,
        user_text: dict[str, str] | None = None,
        version: int = 4,
    ) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        create_minimal_mp3(path)
        tags = ID3()
        for frame_id, text in (frames or {}).items():
            tags.add(Frames[frame_id](encoding=3, text=[text]))
        for desc, text in (user_text or {}).items():
            tags.add(TXXX(encoding=3, desc=desc, text=[text]))
        tags.save(path, v2_version=version)
        return path

    return _make


@pytest.fixture
def make_flac(tmp_path) -> Callable[..., Path]:
    """Factory for FLAC files carrying the given Vorbis comments."""
    from mutagen.flac import FLAC

    def _make(name: str = "track.flac", comments: dict[str, str] | None = None) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        create_minimal_flac(path)
        audio = FLAC(path)
        audio.add_tags()
        for key, value in (comments or {}).items():
            audio.tags[key] = [value]  # pyright: ignore[reportOptionalSubscript]
        audio.save()
        return path

    return _make


# =============================================================================
# Tag views without files
# =============================================================================


def make_view(
    path: Path = Path("track"),
    vorbis: dict[str, str] | None = None,
    ape: dict[str, str] | None = None,
    id3: dict[str, str] | None = None,
    txxx: dict[str, str] | None = None,
    year: int | None = None,
) -> TagView:
    """Build a TagView directly from plain dictionaries."""
    id3_frames = None
    if id3 is not None or txxx is not None:
        id3_frames = ID3Frames(
            frames={frame_id: (text,) for frame_id, text in (id3 or {}).items()},
            user_text=tuple(UserTextFrame(desc, (text,)) for desc, text in (txxx or {}).items()),
        )
    return TagView(
        path=path,
        vorbis=VorbisComments(tuple(vorbis.items())) if vorbis is not None else None,
        ape=ApeItems({k.upper(): v for k, v in ape.items()}) if ape is not None else None,
        id3=id3_frames,
        year=year,
    )


@pytest.fixture
def audio_file(tmp_path) -> Path:
    """An existing (empty) file for resolvers with an injected tag reader."""
    path = tmp_path / "track.flac"
    path.write_bytes(b"")
    return path


# =============================================================================
# Library
# =============================================================================


class FakeLibrary(MediaLibrary):
    """In-memory library recording updates."""

    def __init__(
        self,
        albums: list[MediaItem] | None = None,
        tracks: list[MediaItem] | None = None,
        failing_ids: set[str] | None = None,
    ):
        self.albums = albums or []
        self.tracks = tracks or []
        self.failing_ids = failing_ids or set()
        self.updates: list[MediaItem] = []

    def list_albums(self) -> list[MediaItem]:
        return list(self.albums)

    def list_tracks(self) -> list[MediaItem]:
        return list(self.tracks)

    def update_item(self, item: MediaItem) -> None:
        if item.id in self.failing_ids:
            raise LibraryUpdateError(f"Refusing to store '{item.name}'")
        self.updates.append(item)

    def updated_dates(self) -> dict[str, date | None]:
        return {item.id: item.release_date for item in self.updates}


@pytest.fixture
def fake_library() -> FakeLibrary:
    return FakeLibrary()
