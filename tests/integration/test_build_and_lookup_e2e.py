"""Integration test chaining source parsing, build, publish, and lookup."""

from __future__ import annotations

from pathlib import Path
import zipfile

import pytest

from cedict_index import CedictDictionary, load_dictionary
from cedict_index.cedict.index_builder import DuplicateEntryError
from cedict_index.io.artifact_io import has_artifacts
from cedict_index.pipeline import run_build
from cedict_index.runtime import DATA_DIR_ENV, default_dictionary

FIXTURE = "\n".join(
    [
        "# CC-CEDICT",
        "#! version=1",
        "中國 中国 [Zhong1 guo2] /China/Middle Kingdom/",
        "前邊 前边 [qian2 bian5] /front/the front side/in front of/",
        "前邊兒 前边儿 [qian2 bian5 r5] /erhua variant of 前邊|前边[qian2 bian5]/",
        "張 张 [Zhang1] /surname Zhang/",
        "張 张 [zhang1] /to open up/to spread/sheet of paper/",
        "家具 家具 [jia1 ju4] /furniture/CL:件[jian4],套[tao4]/",
        "傢俱 家俱 [jia1 ju4] /variant of 家具[jia1 ju4]/",
        "傢具 家具 [jia1 ju4] /variant of 家具[jia1 ju4]/",
        "this line is broken",
    ]
) + "\r\n"


def _zip_source(tmp_path: Path) -> Path:
    archive = tmp_path / "cedict_1_0_ts_utf-8_mdbg.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("cedict_ts.u8", FIXTURE.encode("utf-8"))
    return archive


def test_build_from_archive_then_query_published_artifacts(tmp_path: Path) -> None:
    data = tmp_path / "data"
    report = tmp_path / "report.md"

    result = run_build(_zip_source(tmp_path), output_dir=data, report_path=report)
    assert len(result.skipped) == 1
    assert "this line is broken" in report.read_text(encoding="utf-8")

    cedict = load_dictionary(data)
    assert len(cedict) == 8

    china = cedict.get_by_simplified("中国")
    assert list(china) == ["Zhong1 guo2"]
    assert china["Zhong1 guo2"][0].is_variant is False

    front = cedict.get_by_traditional("前邊", "QIAN2 bian5", case_sensitive_search=False)
    assert list(front) == ["qian2 bian5"]
    variants = [record for record in front["qian2 bian5"] if record.is_variant]
    assert [(ref.traditional, ref.pinyin) for ref in variants[0].variant_of] == [
        ("前邊", "qian2 bian5")
    ]

    zhang = cedict.get_by_traditional("張", merge_cases=True)
    assert list(zhang) == ["zhang1"]
    meanings = zhang["zhang1"][0].meanings
    assert any("surname" in meaning for meaning in meanings)
    assert any("open up" in meaning for meaning in meanings)

    furniture = cedict.get_by_simplified("家具", allow_variants=False)
    assert list(furniture) == ["jia1 ju4"]
    assert len(furniture["jia1 ju4"]) == 1
    assert len(furniture["jia1 ju4"][0].classifiers) >= 1

    assert cedict.get_by_simplified("") is None


def test_in_memory_and_published_indices_answer_alike(tmp_path: Path) -> None:
    data = tmp_path / "data"
    built = run_build(FIXTURE.splitlines(), output_dir=data, compact=False)

    fresh = CedictDictionary(built.index)
    published = load_dictionary(data)
    for word in ["中国", "前边", "张", "家具", "家俱"]:
        assert fresh.get_by_simplified(word, as_object=False) == published.get_by_simplified(
            word, as_object=False
        )


def test_duplicate_base_entry_aborts_before_publishing(tmp_path: Path) -> None:
    data = tmp_path / "data"
    lines = FIXTURE.splitlines() + ["中國 中国 [Zhong1 guo2] /Middle Kingdom (again)/"]

    with pytest.raises(DuplicateEntryError, match="中國 中国 Zhong1 guo2"):
        run_build(lines, output_dir=data)
    assert not has_artifacts(data)


def test_default_dictionary_is_shared(tmp_path: Path, monkeypatch) -> None:
    data = tmp_path / "data"
    run_build(FIXTURE.splitlines(), output_dir=data)
    monkeypatch.setenv(DATA_DIR_ENV, str(data))
    default_dictionary.cache_clear()
    try:
        first = default_dictionary()
        assert default_dictionary() is first
        assert first.get_by_simplified("中国") is not None
    finally:
        default_dictionary.cache_clear()
