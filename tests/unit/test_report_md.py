"""Unit tests for markdown build report generation."""

from __future__ import annotations

from cedict_index.cedict.index_builder import build_index
from cedict_index.cedict.parser import parse_cedict_lines
from cedict_index.models import BuildResult
from cedict_index.reporting.report_md import build_report_md, collect_index_counts


def _result() -> BuildResult:
    parsed = parse_cedict_lines(
        [
            "家具 家具 [jia1 ju4] /furniture/CL:件[jian4],套[tao4]/",
            "傢具 家具 [jia1 ju4] /variant of 家具[jia1 ju4]/",
            "bad|line without body",
        ]
    )
    return BuildResult(index=build_index(parsed.entries), skipped=parsed.skipped)


def test_collect_index_counts() -> None:
    counts = collect_index_counts(_result().index)

    assert counts == {
        "entries": 2,
        "base_entries": 1,
        "variant_entries": 1,
        "traditional_headwords": 2,
        "simplified_headwords": 1,
        "variant_lookup": 1,
        "classifier_lookup": 2,
    }


def test_build_report_md_contains_required_sections() -> None:
    markdown = build_report_md(_result())

    assert markdown.startswith("# Index Build Report\n")
    assert "## Summary" in markdown
    assert "| metric | count |" in markdown
    assert "| entries | 2 |" in markdown
    assert "## Skipped source lines" in markdown
    assert "| 3 | no definition body | bad\\|line without body |" in markdown
