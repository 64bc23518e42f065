"""Core data types for original release date resolution."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import StrEnum
from pathlib import Path


class ItemKind(StrEnum):
    """Kind of media item handled by the resolver."""

    TRACK = "track"
    ALBUM = "album"


class DateSource(StrEnum):
    """Where a resolved date came from. Used for diagnostics only."""

    PROVIDER_TDOR = "provider:TDOR"
    PROVIDER_ORIGINAL_RELEASE_DATE = "provider:OriginalReleaseDate"
    PROVIDER_ORIGINAL_YEAR = "provider:OriginalYear"
    VORBIS_ORIGINALDATE = "vorbis:ORIGINALDATE"
    VORBIS_ORIGINALYEAR = "vorbis:ORIGINALYEAR"
    APE_ORIGINALDATE = "ape:ORIGINALDATE"
    ID3_TDOR = "id3:TDOR"
    ID3_TORY = "id3:TORY"
    ID3_TXXX = "id3:TXXX"
    ID3_TDRL = "id3:TDRL"
    TAG_YEAR = "tag:year"


@dataclass(frozen=True)
class MediaItem:
    """
    A track or album as supplied by the host media library.

    The library owns the item; the resolver only reads it and proposes a new
    release date via :meth:`with_release_date`.
    """

    id: str
    name: str
    kind: ItemKind
    path: Path | None = None  # File for tracks, directory for albums
    release_date: date | None = None
    production_year: int | None = None
    provider_ids: Mapping[str, str] = field(default_factory=dict)
    parent_id: str | None = None
    date_modified: datetime | None = None

    @property
    def is_album(self) -> bool:
        return self.kind == ItemKind.ALBUM

    def provider_id(self, key: str) -> str | None:
        """Look up a provider-id hint, ignoring key case."""
        if key in self.provider_ids:
            return self.provider_ids[key]
        wanted = key.lower()
        for name, value in self.provider_ids.items():
            if name.lower() == wanted:
                return value
        return None

    def with_release_date(self, value: date) -> MediaItem:
        """Return a copy carrying ``value`` as release date and its year as production year."""
        return replace(self, release_date=value, production_year=value.year)


@dataclass(frozen=True)
class ResolvedDate:
    """Outcome of resolution: a date with provenance, or nothing."""

    value: date | None = None
    source: DateSource | None = None

    @property
    def found(self) -> bool:
        return self.value is not None

    @classmethod
    def none(cls) -> ResolvedDate:
        return cls()


@dataclass(frozen=True)
class Verdict:
    """Decision for a single item: whether its release date should change."""

    item_id: str
    changed: bool = False
    new_date: date | None = None
    new_production_year: int | None = None
    source: DateSource | None = None

    @classmethod
    def unchanged(cls, item_id: str) -> Verdict:
        return cls(item_id=item_id)

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON output."""
        return {
            "item_id": self.item_id,
            "changed": self.changed,
            "new_date": self.new_date.isoformat() if self.new_date else None,
            "new_production_year": self.new_production_year,
            "source": self.source.value if self.source else None,
        }
