"""CLI entrypoint for building and querying the CC-CEDICT index."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
import tempfile
from typing import Sequence

from cedict_index.cedict.pinyin import to_tone_marks
from cedict_index.cedict.query import CedictDictionary, SearchResults
from cedict_index.io.artifact_io import has_artifacts, load_index, read_status
from cedict_index.io.source import CEDICT_URL, SourceUnavailableError, download_archive
from cedict_index.models import DictionaryRecord, SearchConfig
from cedict_index.pipeline import run_build
from cedict_index.reporting.report_md import collect_index_counts
from cedict_index.runtime import resolve_data_dir

logger = logging.getLogger(__name__)


def _resolve_default_source_path() -> Path:
    """Resolve default CC-CEDICT source path from project layout.

    Returns:
        Preferred source path, favoring ``data/cedict_ts.u8`` when present
        and falling back to project-root ``cedict_ts.u8``.
    """

    cwd_data = Path("data") / "cedict_ts.u8"
    if cwd_data.exists():
        return cwd_data
    return Path("cedict_ts.u8")


def _format_table(headers: Sequence[str], data_rows: Sequence[Sequence[str]]) -> str:
    """Format rows as an ASCII table for terminal output.

    Args:
        headers: Table headers.
        data_rows: Row values.

    Returns:
        Monospace table string.
    """

    widths = [len(header) for header in headers]
    for row in data_rows:
        for idx, value in enumerate(row):
            widths[idx] = max(widths[idx], len(value))

    header_line = " | ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers))
    separator_line = "-+-".join("-" * width for width in widths)
    body_lines = [
        " | ".join(value.ljust(widths[idx]) for idx, value in enumerate(row)) for row in data_rows
    ]
    return "\n".join([header_line, separator_line, *body_lines])


def _format_ref(traditional: str, simplified: str, pinyin: str | None) -> str:
    chars = traditional if traditional == simplified else f"{traditional}|{simplified}"
    return f"{chars}[{pinyin}]" if pinyin else chars


def format_record(record: DictionaryRecord) -> str:
    """Render one lookup record as indented plain text."""

    flag = " (variant)" if record.is_variant else ""
    lines = [
        f"{record.traditional} {record.simplified} [{record.pinyin}] {to_tone_marks(record.pinyin)}{flag}"
    ]
    lines.extend(f"  {idx}. {meaning}" for idx, meaning in enumerate(record.meanings, start=1))
    if record.classifiers:
        lines.append("  CL: " + ", ".join(_format_ref(*ref) for ref in record.classifiers))
    if record.variant_of:
        lines.append("  variant of: " + ", ".join(_format_ref(*ref) for ref in record.variant_of))
    return "\n".join(lines)


def format_results(results: SearchResults) -> str:
    """Render grouped or flat lookup results as plain text."""

    if isinstance(results, dict):
        blocks = []
        for pinyin, records in results.items():
            blocks.append(f"== {pinyin}")
            blocks.extend(format_record(record) for record in records)
        return "\n".join(blocks)
    return "\n".join(format_record(record) for record in results or ())


def results_to_json(results: SearchResults) -> str:
    """Serialize lookup results to JSON text."""

    if isinstance(results, dict):
        payload = {key: [record.to_dict() for record in records] for key, records in results.items()}
    else:
        payload = [record.to_dict() for record in results or ()]
    return json.dumps(payload, ensure_ascii=False, indent=2)


def build_arg_parser() -> argparse.ArgumentParser:
    """Construct CLI argument parser.

    Returns:
        Configured parser with ``build`` and ``lookup`` commands.
    """

    parser = argparse.ArgumentParser(description="Build and query a CC-CEDICT lookup index.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build index artifacts from CC-CEDICT text.")
    source = build.add_mutually_exclusive_group()
    source.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Path to cedict_ts.u8, or a .zip/.gz archive containing it.",
    )
    source.add_argument(
        "--url",
        nargs="?",
        const=CEDICT_URL,
        default=None,
        help="Download the source archive first (default: MDBG export).",
    )
    build.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Artifact directory (default: $CEDICT_INDEX_DATA or ./data).",
    )
    build.add_argument(
        "--inline",
        action="store_true",
        help="Store reference triples inline instead of in lookup tables.",
    )
    build.add_argument("--report", type=Path, default=None, help="Markdown build report path.")

    lookup = subparsers.add_parser("lookup", help="Look up a headword.")
    lookup.add_argument("word", help="Headword characters.")
    lookup.add_argument("--pinyin", default=None, help="Numbered pinyin filter, e.g. 'zhang1'.")
    lookup.add_argument(
        "--traditional", action="store_true", help="Search traditional headwords (default: simplified)."
    )
    lookup.add_argument(
        "--case-insensitive", action="store_true", help="Match the pinyin filter ignoring case."
    )
    lookup.add_argument("--merge-cases", action="store_true", help="Merge pinyin case variants.")
    lookup.add_argument("--flat", action="store_true", help="Return a flat list instead of groups.")
    lookup.add_argument("--no-variants", action="store_true", help="Exclude variant entries.")
    lookup.add_argument("--json", action="store_true", help="Print JSON.")
    lookup.add_argument("--data", type=Path, default=None, help="Artifact directory.")
    return parser


def _print_build_summary(counts: dict[str, int], skipped: int) -> None:
    rows = [[name, str(value)] for name, value in counts.items()]
    rows.append(["skipped_lines", str(skipped)])
    print(_format_table(["metric", "count"], rows))


def _run_build(args: argparse.Namespace) -> int:
    output_dir = resolve_data_dir(args.output)

    with tempfile.TemporaryDirectory() as workdir:
        try:
            if args.url:
                source = download_archive(args.url, Path(workdir) / "cedict.zip")
            else:
                source = args.source if args.source is not None else _resolve_default_source_path()
            result = run_build(
                source,
                output_dir=output_dir,
                compact=not args.inline,
                report_path=args.report,
            )
        except (SourceUnavailableError, FileNotFoundError, ValueError) as exc:
            logger.error("Build failed: %s", exc)
            if has_artifacts(output_dir):
                status = read_status(output_dir) or {}
                print(
                    "WARNING: keeping previously published artifacts in "
                    f"{output_dir} (updated_at={status.get('updated_at', 'unknown')})"
                )
            return 1

    print(f"Wrote index artifacts to {output_dir}")
    if args.report is not None:
        print(f"Wrote report to {args.report}")
    _print_build_summary(collect_index_counts(result.index), len(result.skipped))
    return 0


def _run_lookup(args: argparse.Namespace) -> int:
    data_dir = resolve_data_dir(args.data)
    try:
        dictionary = CedictDictionary(load_index(data_dir))
    except FileNotFoundError as exc:
        raise SystemExit(f"{exc}. Run 'cedict-index build' first.") from exc
    except ValueError as exc:
        raise SystemExit(f"{exc}. Run 'cedict-index build' again.") from exc

    config = SearchConfig(
        case_sensitive_search=not args.case_insensitive,
        merge_cases=args.merge_cases,
        as_object=not args.flat,
        allow_variants=not args.no_variants,
    )
    results = dictionary.lookup(not args.traditional, args.word, args.pinyin, config)
    if results is None:
        print(f"No entries found for {args.word}", file=sys.stderr)
        return 1

    print(results_to_json(results) if args.json else format_results(results))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI workflow from arguments.

    Returns:
        Zero exit status on success, one when a build fails or a lookup finds
        nothing.
    """

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    if args.command == "build":
        return _run_build(args)
    return _run_lookup(args)


if __name__ == "__main__":
    raise SystemExit(main())
