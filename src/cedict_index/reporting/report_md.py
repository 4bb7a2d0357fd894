"""Markdown report generation for index build runs."""

from __future__ import annotations

from typing import Iterable, Sequence

from cedict_index.models import BuildResult, DictionaryIndex


def _markdown_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render a deterministic GitHub-flavored markdown table.

    Args:
        headers: Table header labels.
        rows: Table body rows as string sequences.

    Returns:
        Markdown table text.
    """

    line_header = "| " + " | ".join(headers) + " |"
    line_sep = "| " + " | ".join("---" for _ in headers) + " |"
    body = ["| " + " | ".join(row) + " |" for row in rows]
    return "\n".join([line_header, line_sep, *body])


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def collect_index_counts(index: DictionaryIndex) -> dict[str, int]:
    """Count entries, headwords, and lookup table sizes of an index.

    Args:
        index: Built or loaded index.

    Returns:
        Ordered mapping of metric name to count.
    """

    variant_entries = sum(1 for row in index.entries if row[4])
    return {
        "entries": len(index.entries),
        "base_entries": len(index.entries) - variant_entries,
        "variant_entries": variant_entries,
        "traditional_headwords": len(index.traditional),
        "simplified_headwords": len(index.simplified),
        "variant_lookup": len(index.variant_lookup),
        "classifier_lookup": len(index.classifier_lookup),
    }


def build_report_md(result: BuildResult) -> str:
    """Build the markdown report for one index build.

    Args:
        result: Build result with the index and skipped lines.

    Returns:
        Full markdown content with summary tables.
    """

    counts = collect_index_counts(result.index)
    count_rows = [(name, str(value)) for name, value in counts.items()]
    skipped_rows = [
        (str(item.line_number), item.reason, _escape_cell(item.text))
        for item in sorted(result.skipped, key=lambda item: item.line_number)
    ]

    sections = [
        "# Index Build Report",
        "",
        "## Summary",
        _markdown_table(["metric", "count"], count_rows),
        "",
        "## Skipped source lines",
        _markdown_table(["line", "reason", "text"], skipped_rows),
    ]

    return "\n".join(sections) + "\n"
