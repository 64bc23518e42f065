"""Tests for the original release date resolver and apply decision."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from freezegun import freeze_time

from conftest import make_view
from original_release.config import ResolverConfig
from original_release.models import DateSource, ItemKind, MediaItem, ResolvedDate
from original_release.resolver import DateResolver, find_representative_file
from original_release.tagview import TagReadError, TagView


def resolver_for(view: TagView | None) -> DateResolver:
    """Resolver whose tag reader returns ``view`` for any file."""

    def read(path: Path) -> TagView:
        if view is None:
            raise TagReadError(f"unreadable: {path}")
        return view

    return DateResolver(ResolverConfig(), tag_reader=read)


def track(path: Path | None = None, **kwargs) -> MediaItem:
    defaults = {"id": "t1", "name": "Track", "kind": ItemKind.TRACK, "path": path}
    defaults.update(kwargs)
    return MediaItem(**defaults)


# =============================================================================
# Track chain
# =============================================================================


def test_original_year_hint_wins_over_file_tags(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALDATE": "1968-06-01"}))
    item = track(audio_file, provider_ids={"OriginalYear": "1975"})

    resolved = resolver.resolve(item)

    assert resolved.value == date(1975, 1, 1)
    assert resolved.source == DateSource.PROVIDER_ORIGINAL_YEAR


def test_hint_order_tdor_before_original_release_date_before_year():
    resolver = resolver_for(None)
    item = track(
        provider_ids={
            "OriginalYear": "1975",
            "OriginalReleaseDate": "1974-03-01",
            "TDOR": "1973-02-01",
        }
    )
    assert resolver.resolve(item) == ResolvedDate(date(1973, 2, 1), DateSource.PROVIDER_TDOR)

    item = track(provider_ids={"OriginalYear": "1975", "OriginalReleaseDate": "1974-03-01"})
    assert resolver.resolve(item).source == DateSource.PROVIDER_ORIGINAL_RELEASE_DATE


def test_hints_match_keys_case_insensitively():
    item = track(provider_ids={"originalyear": "1975"})
    assert resolver_for(None).resolve(item).value == date(1975, 1, 1)


def test_hint_tdor_must_be_full_date():
    item = track(provider_ids={"TDOR": "1973", "OriginalYear": "1975"})
    assert resolver_for(None).resolve(item).value == date(1975, 1, 1)


def test_hints_accept_month_first_and_written_dates():
    resolver = resolver_for(None)

    item = track(provider_ids={"OriginalReleaseDate": "June 1, 1968", "OriginalYear": "1975"})
    assert resolver.resolve(item) == ResolvedDate(
        date(1968, 6, 1), DateSource.PROVIDER_ORIGINAL_RELEASE_DATE
    )

    item = track(provider_ids={"TDOR": "06/01/1968"})
    assert resolver.resolve(item).value == date(1968, 6, 1)


def test_hints_are_checked_before_any_file_read(audio_file):
    def read(path: Path) -> TagView:
        raise AssertionError("file must not be read")

    resolver = DateResolver(tag_reader=read)
    item = track(audio_file, provider_ids={"TDOR": "1973-02-01"})

    assert resolver.resolve(item).value == date(1973, 2, 1)


def test_vorbis_originaldate_full_date(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALDATE": "1968-06-01"}))

    resolved = resolver.resolve(track(audio_file))

    assert resolved == ResolvedDate(date(1968, 6, 1), DateSource.VORBIS_ORIGINALDATE)


def test_vorbis_originaldate_year_fallback(audio_file):
    resolver = resolver_for(make_view(vorbis={"original date": "1968"}))
    assert resolver.resolve(track(audio_file)).value == date(1968, 1, 1)


def test_malformed_vorbis_originaldate_falls_through(audio_file):
    view = make_view(vorbis={"ORIGINALDATE": "unknown", "ORIGINALYEAR": "1970"})
    resolved = resolver_for(view).resolve(track(audio_file))
    assert resolved == ResolvedDate(date(1970, 1, 1), DateSource.VORBIS_ORIGINALYEAR)


def test_ape_originaldate(audio_file):
    view = make_view(ape={"OriginalDate": "1969-09-26"})
    resolved = resolver_for(view).resolve(track(audio_file))
    assert resolved == ResolvedDate(date(1969, 9, 26), DateSource.APE_ORIGINALDATE)


def test_vorbis_wins_over_ape_and_id3(audio_file):
    view = make_view(
        vorbis={"ORIGINALYEAR": "1970"},
        ape={"ORIGINALDATE": "1969"},
        id3={"TDOR": "1968"},
    )
    assert resolver_for(view).resolve(track(audio_file)).value == date(1970, 1, 1)


def test_id3_tdor_before_tory(audio_file):
    view = make_view(id3={"TDOR": "1968-06", "TORY": "1967"})
    resolved = resolver_for(view).resolve(track(audio_file))
    assert resolved == ResolvedDate(date(1968, 6, 1), DateSource.ID3_TDOR)


def test_id3_tory_year(audio_file):
    view = make_view(id3={"TORY": "1967"})
    resolved = resolver_for(view).resolve(track(audio_file))
    assert resolved == ResolvedDate(date(1967, 1, 1), DateSource.ID3_TORY)


def test_txxx_original_year(audio_file):
    view = make_view(txxx={"MusicBrainz Original Year": "1971"})
    resolved = resolver_for(view).resolve(track(audio_file, production_year=2005))
    assert resolved == ResolvedDate(date(1971, 1, 1), DateSource.ID3_TXXX)


def test_txxx_skips_current_production_year(audio_file):
    view = make_view(txxx={"originalyear": "2005", "original date": "1971"})
    resolved = resolver_for(view).resolve(track(audio_file, production_year=2005))
    assert resolved.value == date(1971, 1, 1)


def test_txxx_only_repeating_production_year_falls_through(audio_file):
    view = make_view(txxx={"originalyear": "2005"}, id3={"TDRL": "2004-10-11"})
    resolved = resolver_for(view).resolve(track(audio_file, production_year=2005))
    assert resolved == ResolvedDate(date(2004, 10, 11), DateSource.ID3_TDRL)


def test_tdrl_requires_full_date(audio_file):
    view = make_view(id3={"TDRL": "2004"})
    assert not resolver_for(view).resolve(track(audio_file)).found


def test_generic_year_accepted_when_older(audio_file):
    view = make_view(year=1999)
    item = track(audio_file, release_date=date(2010, 5, 1))
    resolved = resolver_for(view).resolve(item)
    assert resolved == ResolvedDate(date(1999, 1, 1), DateSource.TAG_YEAR)


@pytest.mark.parametrize("tag_year", [2010, 2015])
def test_generic_year_never_accepted_when_not_older(audio_file, tag_year):
    view = make_view(year=tag_year)
    item = track(audio_file, release_date=date(2010, 5, 1))
    assert not resolver_for(view).resolve(item).found


def test_generic_year_needs_current_release_date(audio_file):
    view = make_view(year=1999)
    assert not resolver_for(view).resolve(track(audio_file)).found


@freeze_time("2024-06-15")
def test_year_bound_applies_to_hints():
    resolver = resolver_for(None)
    assert not resolver.resolve(track(provider_ids={"OriginalYear": "1800"})).found
    assert resolver.resolve(track(provider_ids={"OriginalYear": "1801"})).found
    assert resolver.resolve(track(provider_ids={"OriginalYear": "2029"})).found
    assert not resolver.resolve(track(provider_ids={"OriginalYear": "2030"})).found


def test_unreadable_file_gives_no_date(audio_file):
    item = track(audio_file, release_date=date(2010, 1, 1))

    verdict = resolver_for(None).process(item)

    assert not verdict.changed
    assert verdict.new_date is None


def test_missing_file_gives_no_date(tmp_path):
    resolver = DateResolver()
    item = track(tmp_path / "gone.flac", release_date=date(2010, 1, 1))

    assert not resolver.resolve(item).found
    assert not resolver.process(item).changed


def test_track_without_path_uses_hints_only():
    assert not resolver_for(None).resolve(track()).found


def test_real_flac_file(make_flac):
    path = make_flac(comments={"ORIGINALDATE": "1968-06-01"})
    resolved = DateResolver().resolve(track(path))
    assert resolved.value == date(1968, 6, 1)


def test_real_mp3_file(make_mp3):
    path = make_mp3(frames={"TDOR": "1968"})
    resolved = DateResolver().resolve(track(path))
    assert resolved == ResolvedDate(date(1968, 1, 1), DateSource.ID3_TDOR)


# =============================================================================
# Apply decision
# =============================================================================


def test_decide_changes_when_date_differs(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALYEAR": "1971"}))
    item = track(audio_file, release_date=date(2009, 9, 9), production_year=2009)

    verdict = resolver.process(item)

    assert verdict.changed
    assert verdict.new_date == date(1971, 1, 1)
    assert verdict.new_production_year == 1971
    assert verdict.source == DateSource.VORBIS_ORIGINALYEAR


def test_decide_compares_full_dates_not_years(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALDATE": "1971-03-01"}))
    item = track(audio_file, release_date=date(1971, 1, 1))

    assert resolver.process(item).new_date == date(1971, 3, 1)


def test_decide_unchanged_when_equal(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALYEAR": "1971"}))
    item = track(audio_file, release_date=date(1971, 1, 1))

    verdict = resolver.process(item)

    assert not verdict.changed
    assert verdict.new_date is None
    assert verdict.new_production_year is None


def test_processing_is_idempotent_after_apply(audio_file):
    resolver = resolver_for(make_view(vorbis={"ORIGINALDATE": "1968-06-01"}, year=2009))
    item = track(audio_file, release_date=date(2009, 1, 1))

    first = resolver.process(item)
    assert first.changed and first.new_date is not None

    second = resolver.process(item.with_release_date(first.new_date))
    assert not second.changed


def test_disabled_preference_leaves_items_unchanged(audio_file):
    resolver = DateResolver(
        ResolverConfig(prefer_original_release=False),
        tag_reader=lambda path: make_view(vorbis={"ORIGINALYEAR": "1971"}),
    )
    item = track(audio_file, release_date=date(2009, 1, 1))

    assert not resolver.process(item).changed


# =============================================================================
# Albums
# =============================================================================


def album(path: Path, **kwargs) -> MediaItem:
    return MediaItem(id="a1", name="Album", kind=ItemKind.ALBUM, path=path, **kwargs)


def test_album_original_year_from_representative_track(tmp_path):
    (tmp_path / "01.flac").write_bytes(b"")
    resolver = resolver_for(make_view(vorbis={"ORIGINALYEAR": "1971"}))

    assert resolver.resolve(album(tmp_path)).value == date(1971, 1, 1)


def test_album_uses_real_representative_file(tmp_path, make_flac):
    make_flac("Album/01 - First.flac", comments={"ORIGINALYEAR": "1971"})
    make_flac("Album/02 - Second.flac", comments={"ORIGINALYEAR": "1999"})

    resolved = DateResolver().resolve(album(tmp_path / "Album"))

    assert resolved == ResolvedDate(date(1971, 1, 1), DateSource.VORBIS_ORIGINALYEAR)


def test_album_originaldate_requires_full_date(tmp_path):
    (tmp_path / "01.flac").write_bytes(b"")
    resolver = resolver_for(make_view(vorbis={"ORIGINALDATE": "1968", "ORIGINALYEAR": "1969"}))

    assert resolver.resolve(album(tmp_path)).value == date(1969, 1, 1)


def test_album_txxx_has_no_production_year_guard(tmp_path):
    (tmp_path / "01.mp3").write_bytes(b"")
    resolver = resolver_for(make_view(txxx={"originalyear": "2005"}))

    resolved = resolver.resolve(album(tmp_path, production_year=2005))

    assert resolved == ResolvedDate(date(2005, 1, 1), DateSource.ID3_TXXX)


def test_album_ignores_track_only_sources(tmp_path):
    (tmp_path / "01.mp3").write_bytes(b"")
    view = make_view(
        ape={"ORIGINALDATE": "1969"},
        id3={"TDOR": "1968", "TORY": "1967", "TDRL": "1966-01-01"},
        year=1965,
    )
    item = album(
        tmp_path,
        release_date=date(2000, 1, 1),
        provider_ids={"OriginalYear": "1975"},
    )

    assert not resolver_for(view).resolve(item).found


def test_album_without_audio_files(tmp_path):
    (tmp_path / "cover.jpg").write_bytes(b"")
    assert not resolver_for(make_view(vorbis={"ORIGINALYEAR": "1971"})).resolve(
        album(tmp_path)
    ).found


def test_album_with_missing_directory(tmp_path):
    assert not DateResolver().resolve(album(tmp_path / "missing")).found


def test_find_representative_file_is_sorted_and_top_down(tmp_path):
    (tmp_path / "CD2").mkdir()
    (tmp_path / "CD1").mkdir()
    (tmp_path / "CD2" / "01.flac").write_bytes(b"")
    (tmp_path / "CD1" / "02.MP3").write_bytes(b"")
    (tmp_path / "CD1" / "01.m4a").write_bytes(b"")

    assert find_representative_file(tmp_path) == tmp_path / "CD1" / "01.m4a"

    (tmp_path / "00.ogg").write_bytes(b"")
    assert find_representative_file(tmp_path) == tmp_path / "00.ogg"


def test_find_representative_file_filters_extensions(tmp_path):
    (tmp_path / "a.wav").write_bytes(b"")
    (tmp_path / "b.txt").write_bytes(b"")
    assert find_representative_file(tmp_path) is None

    (tmp_path / "c.OGG").write_bytes(b"")
    assert find_representative_file(tmp_path) == tmp_path / "c.OGG"
