"""Unit tests for index artifact serialization."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import os
from pathlib import Path
import shutil

import pytest

from cedict_index.cedict.index_builder import build_index
from cedict_index.cedict.parser import parse_cedict_lines
from cedict_index.cedict.query import CedictDictionary
from cedict_index.io import artifact_io
from cedict_index.io.artifact_io import (
    ARTIFACT_FILES,
    SIMPLIFIED_FILE,
    STAGING_PREFIX,
    TRADITIONAL_FILE,
    has_artifacts,
    load_index,
    read_status,
    write_artifacts,
)

LINES = [
    "家具 家具 [jia1 ju4] /furniture/CL:件[jian4],套[tao4]/",
    "傢具 家具 [jia1 ju4] /variant of 家具[jia1 ju4]/",
    "中國 中国 [Zhong1 guo2] /China/Middle Kingdom/",
]


@pytest.mark.parametrize("compact", [True, False], ids=["compact", "inline"])
def test_written_artifacts_load_back_equal(tmp_path: Path, compact: bool) -> None:
    index = build_index(parse_cedict_lines(LINES).entries, compact=compact)

    write_artifacts(index, tmp_path)
    loaded = load_index(tmp_path)

    assert loaded.compact is compact
    assert loaded.traditional == index.traditional
    assert loaded.simplified == index.simplified
    assert loaded.variant_lookup == index.variant_lookup
    assert loaded.classifier_lookup == index.classifier_lookup
    assert CedictDictionary(loaded).get_by_simplified("家具") == CedictDictionary(
        index
    ).get_by_simplified("家具")


def test_compact_layout_on_disk(tmp_path: Path) -> None:
    write_artifacts(build_index(parse_cedict_lines(LINES).entries), tmp_path)

    payload = json.loads((tmp_path / "all.json").read_text(encoding="utf-8"))
    simplified = json.loads((tmp_path / "simplified.json").read_text(encoding="utf-8"))

    assert payload["layout"] == "compact"
    assert payload["entries"][0] == ["家具", "家具", "jia1 ju4", "furniture", [], [0, 1]]
    assert payload["classifier_lookup"] == [["件", "件", "jian4"], ["套", "套", "tao4"]]
    assert simplified["generation"] == payload["generation"]
    assert simplified["headwords"]["家具"]["jia1 ju4"] == [[0], [1]]


def test_status_records_timestamp_and_count(tmp_path: Path) -> None:
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    write_artifacts(build_index(parse_cedict_lines(LINES).entries), tmp_path, updated_at=stamp)

    status = read_status(tmp_path)
    assert status["updated_at"] == "2024-01-02T03:04:05+00:00"
    assert status["entries"] == 3
    assert has_artifacts(tmp_path)


def test_load_index_reports_missing_artifacts(tmp_path: Path) -> None:
    assert not has_artifacts(tmp_path)
    assert read_status(tmp_path) is None
    with pytest.raises(FileNotFoundError, match="all.json"):
        load_index(tmp_path)


def test_failed_write_keeps_previous_artifacts(tmp_path: Path, monkeypatch) -> None:
    write_artifacts(build_index(parse_cedict_lines(LINES[:1]).entries), tmp_path)
    before = {name: (tmp_path / name).read_bytes() for name in ARTIFACT_FILES}

    original = artifact_io._stage_json

    def failing_stage(output_dir: Path, name: str, payload):
        if name == "simplified.json":
            raise OSError("disk full")
        return original(output_dir, name, payload)

    monkeypatch.setattr(artifact_io, "_stage_json", failing_stage)
    with pytest.raises(OSError, match="disk full"):
        write_artifacts(build_index(parse_cedict_lines(LINES).entries), tmp_path)

    assert {name: (tmp_path / name).read_bytes() for name in ARTIFACT_FILES} == before
    assert sorted(path.name for path in tmp_path.iterdir()) == sorted(ARTIFACT_FILES)


def test_failed_swap_restores_previous_artifacts(tmp_path: Path, monkeypatch) -> None:
    write_artifacts(build_index(parse_cedict_lines(LINES[2:]).entries), tmp_path)
    before = {name: (tmp_path / name).read_bytes() for name in ARTIFACT_FILES}

    real_replace = os.replace

    def failing_replace(src, dst):
        src = Path(src)
        if src.name == TRADITIONAL_FILE and src.parent.name.startswith(STAGING_PREFIX):
            raise OSError("device busy")
        real_replace(src, dst)

    monkeypatch.setattr(artifact_io.os, "replace", failing_replace)
    with pytest.raises(OSError, match="device busy"):
        write_artifacts(build_index(parse_cedict_lines(LINES).entries), tmp_path)
    monkeypatch.undo()

    assert {name: (tmp_path / name).read_bytes() for name in ARTIFACT_FILES} == before
    assert sorted(path.name for path in tmp_path.iterdir()) == sorted(ARTIFACT_FILES)
    china = CedictDictionary(load_index(tmp_path)).get_by_traditional("中國")
    assert china["Zhong1 guo2"][0].meanings == ("China", "Middle Kingdom")


def test_failed_first_publish_leaves_no_artifacts(tmp_path: Path, monkeypatch) -> None:
    real_replace = os.replace

    def failing_replace(src, dst):
        if Path(src).name == SIMPLIFIED_FILE:
            raise OSError("device busy")
        real_replace(src, dst)

    monkeypatch.setattr(artifact_io.os, "replace", failing_replace)
    with pytest.raises(OSError, match="device busy"):
        write_artifacts(build_index(parse_cedict_lines(LINES).entries), tmp_path)

    assert list(tmp_path.iterdir()) == []


def test_load_index_rejects_artifacts_from_different_builds(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    write_artifacts(build_index(parse_cedict_lines(LINES[2:]).entries), first)
    write_artifacts(build_index(parse_cedict_lines(LINES).entries), second)
    shutil.copyfile(first / TRADITIONAL_FILE, second / TRADITIONAL_FILE)

    with pytest.raises(ValueError, match="different builds"):
        load_index(second)
