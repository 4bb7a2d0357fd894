"""Parsing utilities for CC-CEDICT source text."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable

from cedict_index.cedict.subgrammar import scan_segment
from cedict_index.models import CedictEntry, HeadwordRef, SkippedLine

logger = logging.getLogger(__name__)

COMMENT_MARKER = "#"


class MalformedLineError(ValueError):
    """Raised for a non-comment line that does not form an entry."""


@dataclass(frozen=True)
class ParsedSource:
    """Entries parsed from one source snapshot plus the lines it rejected."""

    entries: tuple[CedictEntry, ...]
    skipped: tuple[SkippedLine, ...] = ()


def _dedupe_refs(refs: Iterable[HeadwordRef]) -> tuple[HeadwordRef, ...]:
    seen: dict[HeadwordRef, None] = {}
    for ref in refs:
        seen.setdefault(ref, None)
    return tuple(seen)


def parse_definitions(body: str) -> tuple[tuple[str, ...], tuple[HeadwordRef, ...], tuple[HeadwordRef, ...]]:
    """Split a slash-delimited definition body into meanings and references.

    Empty segments are discarded and the rest trimmed. A segment that is
    entirely a recognized reference is not kept as a meaning; any other
    segment is kept verbatim even when a reference was extracted from it.

    Args:
        body: Text after the first ``/`` of a line.

    Returns:
        Tuple of ``(meanings, variant_of, classifiers)``; references are
        deduplicated in first-seen order.
    """

    meanings: list[str] = []
    variant_of: list[HeadwordRef] = []
    classifiers: list[HeadwordRef] = []
    for raw_segment in body.split("/"):
        segment = raw_segment.strip()
        if not segment:
            continue
        matches = scan_segment(segment)
        variant_of.extend(matches.variant_of)
        classifiers.extend(matches.classifiers)
        if not matches.consumed:
            meanings.append(segment)
    return tuple(meanings), _dedupe_refs(variant_of), _dedupe_refs(classifiers)


def _parse_line_strict(line: str) -> CedictEntry | None:
    """Parse one line, raising :class:`MalformedLineError` on bad syntax.

    Returns ``None`` for blank and comment lines.
    """

    line = line.strip()
    if not line or line.startswith(COMMENT_MARKER):
        return None

    head, slash, body = line.partition("/")
    if not slash:
        raise MalformedLineError("no definition body")

    chars, bracket, rest = head.partition("[")
    if not bracket:
        raise MalformedLineError("no pinyin bracket")
    pinyin = rest.split("]", 1)[0]
    if not pinyin:
        raise MalformedLineError("empty pinyin")

    forms = chars.strip().split(" ")
    if len(forms) < 2 or not forms[0] or not forms[1]:
        raise MalformedLineError("expected 'TRADITIONAL SIMPLIFIED' headword pair")

    meanings, variant_of, classifiers = parse_definitions(body)
    return CedictEntry(
        traditional=forms[0],
        simplified=forms[1],
        pinyin=pinyin,
        meanings=meanings,
        variant_of=variant_of,
        classifiers=classifiers,
    )


def parse_line(line: str) -> CedictEntry | None:
    """Parse one CC-CEDICT line.

    Lines look like ``TRAD SIMP [pin1 yin1] /meaning one/meaning two/``. The
    pinyin is stored verbatim, case included.

    Args:
        line: Raw line, trailing whitespace and carriage returns allowed.

    Returns:
        Parsed entry, or ``None`` for blank, comment, and malformed lines.
        Malformed lines are logged.
    """

    try:
        return _parse_line_strict(line)
    except MalformedLineError as exc:
        logger.warning("Skipping malformed CC-CEDICT line %r: %s", line.strip(), exc)
        return None


def parse_cedict_lines(lines: Iterable[str]) -> ParsedSource:
    """Parse CC-CEDICT lines into entries, skipping bad lines.

    A malformed line is logged and recorded; it never aborts the parse.

    Args:
        lines: Iterable of raw dictionary lines.

    Returns:
        Entries in source order plus the skipped lines.
    """

    entries: list[CedictEntry] = []
    skipped: list[SkippedLine] = []
    for line_number, line in enumerate(lines, start=1):
        try:
            entry = _parse_line_strict(line)
        except MalformedLineError as exc:
            logger.warning("Skipping malformed CC-CEDICT line %d: %s", line_number, exc)
            skipped.append(SkippedLine(line_number=line_number, text=line.strip(), reason=str(exc)))
            continue
        if entry is not None:
            entries.append(entry)

    return ParsedSource(entries=tuple(entries), skipped=tuple(skipped))
