"""Unit tests for CC-CEDICT source acquisition helpers."""

from __future__ import annotations

import gzip
import io
from pathlib import Path
import urllib.error
import zipfile

import pytest

from cedict_index.cedict.parser import parse_cedict_lines
from cedict_index.io import source
from cedict_index.io.source import (
    SourceUnavailableError,
    download_archive,
    extract_cedict_text,
    read_source_lines,
)

TEXT = "# header\n中國 中国 [Zhong1 guo2] /China/\n"


def test_extract_reads_member_from_zip(tmp_path: Path) -> None:
    archive = tmp_path / "cedict.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("cedict_ts.u8", TEXT.encode("utf-8"))

    assert extract_cedict_text(archive) == TEXT


def test_extract_rejects_zip_without_member(tmp_path: Path) -> None:
    archive = tmp_path / "other.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("readme.txt", "nothing here")

    with pytest.raises(SourceUnavailableError, match="cedict_ts.u8"):
        extract_cedict_text(archive)


def test_extract_reads_gzip_and_plain_text(tmp_path: Path) -> None:
    gz_path = tmp_path / "cedict_ts.u8.gz"
    with gzip.open(gz_path, "wt", encoding="utf-8") as handle:
        handle.write(TEXT)
    plain = tmp_path / "cedict_ts.u8"
    plain.write_text(TEXT, encoding="utf-8")

    assert extract_cedict_text(gz_path) == TEXT
    assert read_source_lines(plain) == ["# header", "中國 中国 [Zhong1 guo2] /China/"]


def test_extract_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        extract_cedict_text(tmp_path / "missing.u8")


def test_invalid_bytes_only_spoil_their_own_line(tmp_path: Path) -> None:
    plain = tmp_path / "cedict_ts.u8"
    plain.write_bytes(
        "中國 中国 [Zhong1 guo2] /China/\n".encode("utf-8")
        + b"\xff\xfe bad line\n"
        + "張 张 [zhang1] /to open up/\n".encode("utf-8")
    )

    lines = read_source_lines(plain)
    parsed = parse_cedict_lines(lines)

    assert len(lines) == 3
    assert "\ufffd" in lines[1]
    assert [entry.traditional for entry in parsed.entries] == ["中國", "張"]
    assert [skipped.line_number for skipped in parsed.skipped] == [2]


def test_lines_break_on_newline_only(tmp_path: Path) -> None:
    plain = tmp_path / "cedict_ts.u8"
    plain.write_bytes(
        "中國 中国 [Zhong1 guo2] /China\u2028Middle Kingdom/\r\n件 件 [jian4] /item/\n".encode("utf-8")
    )

    lines = read_source_lines(plain)
    parsed = parse_cedict_lines(lines)

    assert lines == ["中國 中国 [Zhong1 guo2] /China\u2028Middle Kingdom/\r", "件 件 [jian4] /item/"]
    assert parsed.skipped == ()
    assert parsed.entries[0].meanings == ("China\u2028Middle Kingdom",)


def test_download_retries_until_success(tmp_path: Path, monkeypatch) -> None:
    calls: list[str] = []

    def fake_urlopen(url: str, timeout: float):
        calls.append(url)
        if len(calls) < 3:
            raise urllib.error.URLError("connection reset")
        return io.BytesIO(b"archive-bytes")

    monkeypatch.setattr(source.urllib.request, "urlopen", fake_urlopen)
    dest = download_archive("https://example.invalid/cedict.zip", tmp_path / "cedict.zip")

    assert len(calls) == 3
    assert dest.read_bytes() == b"archive-bytes"


def test_download_gives_up_after_attempts(tmp_path: Path, monkeypatch) -> None:
    def fake_urlopen(url: str, timeout: float):
        raise urllib.error.URLError("offline")

    monkeypatch.setattr(source.urllib.request, "urlopen", fake_urlopen)
    dest = tmp_path / "cedict.zip"

    with pytest.raises(SourceUnavailableError, match="after 2 attempts"):
        download_archive("https://example.invalid/cedict.zip", dest, attempts=2)
    assert not dest.exists()
