"""Tests for release date tag writers."""

from __future__ import annotations

from datetime import date

import pytest

from original_release.tagging import (
    ID3DateWriter,
    MP4DateWriter,
    VorbisDateWriter,
    WriteReport,
    get_writer_for_file,
    read_release_date,
    write_release_date,
)


@pytest.mark.parametrize(
    "name,writer_type",
    [
        ("a.mp3", ID3DateWriter),
        ("a.MP3", ID3DateWriter),
        ("a.flac", VorbisDateWriter),
        ("a.ogg", VorbisDateWriter),
        ("a.m4a", MP4DateWriter),
        ("a.mp4", MP4DateWriter),
    ],
)
def test_get_writer_for_file(tmp_path, name, writer_type):
    assert isinstance(get_writer_for_file(tmp_path / name), writer_type)


def test_get_writer_for_unsupported_file(tmp_path):
    with pytest.raises(ValueError, match="Unsupported audio format"):
        get_writer_for_file(tmp_path / "a.wav")


def test_write_report_ok():
    report = WriteReport(file_path=None)  # type: ignore[arg-type]
    assert report.ok
    report.errors.append("failed")
    assert not report.ok


def test_id3_write_and_read(make_mp3):
    from mutagen.id3 import ID3

    path = make_mp3(frames={"TDOR": "1968"})

    report = write_release_date(path, date(1968, 6, 1))

    assert report.ok
    assert report.fields_written == ["TDRC"]
    assert read_release_date(path) == date(1968, 6, 1)
    # Other frames are left alone
    assert str(ID3(path)["TDOR"].text[0]) == "1968"


def test_id3_write_creates_tag(tmp_path):
    from conftest import create_minimal_mp3

    path = tmp_path / "bare.mp3"
    create_minimal_mp3(path)

    write_release_date(path, date(1971, 1, 1))

    assert read_release_date(path) == date(1971, 1, 1)


def test_id3_read_year_only(make_mp3):
    path = make_mp3(frames={"TDRC": "1999"})
    assert read_release_date(path) == date(1999, 1, 1)


def test_vorbis_write_and_read(make_flac):
    path = make_flac(comments={"DATE": "2009", "ORIGINALYEAR": "1971"})

    report = write_release_date(path, date(1971, 1, 1))

    assert report.ok
    assert report.fields_written == ["DATE"]
    assert read_release_date(path) == date(1971, 1, 1)


def test_vorbis_read_without_date(make_flac):
    assert read_release_date(make_flac()) is None


def test_dry_run_does_not_write(make_flac):
    path = make_flac(comments={"DATE": "2009"})

    report = write_release_date(path, date(1971, 1, 1), dry_run=True)

    assert report.dry_run
    assert report.fields_written == ["DATE"]
    assert read_release_date(path) == date(2009, 1, 1)


def test_mp4_write_reports_unreadable_file(tmp_path):
    path = tmp_path / "broken.m4a"
    path.write_bytes(b"not an mp4")

    report = write_release_date(path, date(1971, 1, 1))

    assert not report.ok
    assert read_release_date(path) is None


def test_id3_album_date_uses_its_own_frame(make_mp3):
    from mutagen.id3 import ID3

    path = make_mp3(frames={"TDRC": "1970-05-05"})

    report = write_release_date(path, date(1970, 1, 1), album=True)

    assert report.fields_written == ["TXXX:ALBUMRELEASEDATE"]
    assert read_release_date(path, album=True) == date(1970, 1, 1)
    assert read_release_date(path) == date(1970, 5, 5)
    assert str(ID3(path)["TXXX:ALBUMRELEASEDATE"].text[0]) == "1970-01-01"


def test_vorbis_album_date_uses_its_own_comment(make_flac):
    path = make_flac(comments={"DATE": "2009"})

    assert read_release_date(path, album=True) is None

    write_release_date(path, date(1971, 1, 1), album=True)

    assert read_release_date(path, album=True) == date(1971, 1, 1)
    assert read_release_date(path) == date(2009, 1, 1)
