"""Top-level orchestration for the offline index build."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from cedict_index.cedict.index_builder import build_index
from cedict_index.cedict.parser import parse_cedict_lines
from cedict_index.io.artifact_io import write_artifacts
from cedict_index.io.source import read_source_lines
from cedict_index.models import BuildResult
from cedict_index.reporting.report_md import build_report_md
from cedict_index.validation import validate_index

logger = logging.getLogger(__name__)


def run_build(
    source: Path | Iterable[str],
    output_dir: Path | None = None,
    compact: bool = True,
    report_path: Path | None = None,
) -> BuildResult:
    """Parse a source snapshot, build the index, and publish it.

    Every step that can fail runs before artifacts are written, so a failed
    build leaves the previously published data directory as it was.

    Args:
        source: Path to a ``.u8`` file, ``.gz`` or ``.zip`` archive, or an
            iterable of raw lines.
        output_dir: Data directory to publish into; nothing is written when
            ``None``.
        compact: Use the lookup-table row layout.
        report_path: Optional markdown report destination.

    Returns:
        ``BuildResult`` with the index and skipped lines.

    Raises:
        DuplicateEntryError: If the source repeats a base entry key.
        ValueError: If the built index fails validation.
    """

    lines = read_source_lines(source) if isinstance(source, (str, Path)) else source
    parsed = parse_cedict_lines(lines)
    logger.info("Parsed %d entries, skipped %d lines", len(parsed.entries), len(parsed.skipped))

    index = build_index(parsed.entries, compact=compact)
    validate_index(index)

    if output_dir is not None:
        write_artifacts(index, output_dir)

    result = BuildResult(index=index, skipped=parsed.skipped, output_dir=output_dir)
    if report_path is not None:
        report_path.write_text(build_report_md(result), encoding="utf-8")
    return result
