"""Data models shared by the indexing pipeline and the query engine.

Entries, index buckets, and the published index are immutable. The builder
accumulates into plain lists and dicts, then freezes everything into the types
below before anything reads from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple


class HeadwordRef(NamedTuple):
    """Reference to another headword embedded in a definition.

    CC-CEDICT writes these as ``TRAD|SIMP[pinyin]``. When only one form is
    written, both fields hold the same characters. ``pinyin`` is ``None`` when
    the reference carries no pinyin bracket.
    """

    traditional: str
    simplified: str
    pinyin: str | None


@dataclass(frozen=True)
class CedictEntry:
    """One parsed dictionary line.

    ``meanings`` keeps the source order; the first meaning is the primary one.
    """

    traditional: str
    simplified: str
    pinyin: str
    meanings: tuple[str, ...]
    variant_of: tuple[HeadwordRef, ...] = ()
    classifiers: tuple[HeadwordRef, ...] = ()

    @property
    def key(self) -> tuple[str, str, str]:
        """Return the ``(traditional, simplified, pinyin)`` identity triple."""

        return (self.traditional, self.simplified, self.pinyin)


@dataclass(frozen=True)
class SkippedLine:
    """Source line rejected by the parser."""

    line_number: int
    text: str
    reason: str


@dataclass(frozen=True)
class IndexBucket:
    """Entry table positions filed under one headword and pinyin.

    ``base`` holds entries that vary from nothing; ``variants`` holds entries
    known to be variants sharing this headword and pinyin. The two never
    overlap.
    """

    base: tuple[int, ...] = ()
    variants: tuple[int, ...] = ()


PinyinIndex = Mapping[str, IndexBucket]
CharacterIndex = Mapping[str, PinyinIndex]

# Serialized entry row: [traditional, simplified, pinyin, meanings, variant refs,
# classifier refs]. Meanings is a tuple or, in the compact layout, a bare string;
# refs are triples inline or integer lookup positions when compacted.
RawRow = tuple[Any, ...]


def freeze_character_index(index: Mapping[str, Mapping[str, IndexBucket]]) -> CharacterIndex:
    """Wrap a headword index and its pinyin maps in read-only views."""

    return MappingProxyType(
        {headword: MappingProxyType(dict(pinyin_index)) for headword, pinyin_index in index.items()}
    )


def _freeze_refs(refs: Any) -> tuple[Any, ...]:
    return tuple(ref if isinstance(ref, int) else HeadwordRef(*ref) for ref in refs or ())


def freeze_row(row: Any) -> RawRow:
    """Return ``row`` with every nested list replaced by a tuple."""

    traditional, simplified, pinyin, meanings, variant_refs, classifier_refs = row
    return (
        traditional,
        simplified,
        pinyin,
        meanings if isinstance(meanings, str) else tuple(meanings),
        _freeze_refs(variant_refs),
        _freeze_refs(classifier_refs),
    )


@dataclass(frozen=True)
class DictionaryIndex:
    """Published, read-only index consumed by the query engine.

    ``compact`` rows reference ``variant_lookup`` and ``classifier_lookup`` by
    position and may store a single meaning as a bare string; inline rows hold
    meaning tuples and reference triples.

    Construction freezes the contents: rows become nested tuples and both
    character indices become read-only mapping views.
    """

    entries: tuple[RawRow, ...]
    traditional: CharacterIndex
    simplified: CharacterIndex
    variant_lookup: tuple[HeadwordRef, ...] = ()
    classifier_lookup: tuple[HeadwordRef, ...] = ()
    compact: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(freeze_row(row) for row in self.entries))
        object.__setattr__(self, "traditional", freeze_character_index(self.traditional))
        object.__setattr__(self, "simplified", freeze_character_index(self.simplified))
        object.__setattr__(self, "variant_lookup", _freeze_refs(self.variant_lookup))
        object.__setattr__(self, "classifier_lookup", _freeze_refs(self.classifier_lookup))


@dataclass(frozen=True)
class SearchConfig:
    """Per-lookup options.

    Attributes:
        case_sensitive_search: Match the pinyin filter exactly; otherwise match
            every pinyin key equal to it after lowercasing.
        merge_cases: Group and report pinyin in lowercase, so ``Zhang1`` and
            ``zhang1`` collapse into one group.
        as_object: Return a pinyin-keyed mapping instead of a flat tuple.
        allow_variants: Include variant entries.
    """

    case_sensitive_search: bool = True
    merge_cases: bool = False
    as_object: bool = True
    allow_variants: bool = True


@dataclass(frozen=True)
class DictionaryRecord:
    """Materialized lookup result for one entry."""

    traditional: str
    simplified: str
    pinyin: str
    meanings: tuple[str, ...]
    classifiers: tuple[HeadwordRef, ...] = ()
    variant_of: tuple[HeadwordRef, ...] = ()
    is_variant: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the record."""

        return {
            "traditional": self.traditional,
            "simplified": self.simplified,
            "pinyin": self.pinyin,
            "english": list(self.meanings),
            "classifiers": [list(ref) for ref in self.classifiers],
            "variant_of": [ref._asdict() for ref in self.variant_of],
            "is_variant": self.is_variant,
        }


@dataclass(frozen=True)
class BuildResult:
    """Result bundle returned by :func:`cedict_index.pipeline.run_build`.

    Attributes:
        index: Published dictionary index.
        skipped: Source lines the parser rejected.
        output_dir: Directory the artifacts were written to, if any.
    """

    index: DictionaryIndex
    skipped: tuple[SkippedLine, ...] = field(default_factory=tuple)
    output_dir: Path | None = None
