"""Two-pass construction of the entry table and character indices."""

from __future__ import annotations

import logging
from typing import Iterable

from cedict_index.models import (
    CedictEntry,
    CharacterIndex,
    DictionaryIndex,
    HeadwordRef,
    IndexBucket,
    RawRow,
)

logger = logging.getLogger(__name__)

_BASE = 0
_VARIANT = 1


class DuplicateEntryError(ValueError):
    """Raised when two base entries share ``(traditional, simplified, pinyin)``."""

    def __init__(self, key: tuple[str, str, str], first: int, second: int) -> None:
        self.key = key
        self.first = first
        self.second = second
        super().__init__(
            f"Duplicate base entry {' '.join(key)!r} at table positions {first} and {second}"
        )


_WorkingIndex = dict[str, dict[str, tuple[list[int], list[int]]]]


def _register(index: _WorkingIndex, headword: str, pinyin: str, position: int, slot: int) -> None:
    """File ``position`` under ``headword``/``pinyin``, creating the bucket on demand.

    A position already present in either list of the bucket is not added again.
    """

    buckets = index.setdefault(headword, {}).setdefault(pinyin, ([], []))
    if position in buckets[_BASE] or position in buckets[_VARIANT]:
        return
    buckets[slot].append(position)


def _freeze(index: _WorkingIndex) -> CharacterIndex:
    return {
        headword: {
            pinyin: IndexBucket(base=tuple(base), variants=tuple(variants))
            for pinyin, (base, variants) in pinyin_index.items()
        }
        for headword, pinyin_index in index.items()
    }


class IndexBuilder:
    """Accumulates parsed entries into an entry table and character indices.

    Pass 1 happens in :meth:`add`: every entry is appended to the table, and
    entries without variant references are filed as base members under their
    own headword and pinyin. Entries carrying variant references are queued.

    Pass 2 happens in :meth:`build`: each queued entry is filed as a variant
    under its own headword and pinyin and under the headword and pinyin of
    every original it references. A reference without pinyin is filed under
    every pinyin the referenced headword already has. On a headword with
    several readings such a reference is therefore filed under readings it may
    not belong to.
    """

    def __init__(self) -> None:
        self._entries: list[CedictEntry] = []
        self._base_positions: dict[tuple[str, str, str], int] = {}
        self._variant_queue: list[int] = []
        self._traditional: _WorkingIndex = {}
        self._simplified: _WorkingIndex = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: CedictEntry) -> int:
        """Append an entry to the table and run pass 1 for it.

        Args:
            entry: Parsed entry.

        Returns:
            The entry's table position.

        Raises:
            DuplicateEntryError: If a base entry with the same key exists.
        """

        position = len(self._entries)
        if entry.variant_of:
            self._variant_queue.append(position)
        else:
            existing = self._base_positions.get(entry.key)
            if existing is not None:
                raise DuplicateEntryError(entry.key, existing, position)
            self._base_positions[entry.key] = position
            _register(self._traditional, entry.traditional, entry.pinyin, position, _BASE)
            _register(self._simplified, entry.simplified, entry.pinyin, position, _BASE)
        self._entries.append(entry)
        return position

    def extend(self, entries: Iterable[CedictEntry]) -> None:
        """Run :meth:`add` for each entry in order."""

        for entry in entries:
            self.add(entry)

    def _register_reference(self, ref: HeadwordRef, position: int) -> None:
        """File ``position`` as a variant under the headword ``ref`` names.

        Without pinyin the reference is filed under every reading the headword
        has so far, so ``variant of 說`` lands under ``shuo1``, ``shui4`` and
        ``yue4`` alike. References to unknown headwords are dropped.
        """

        for index, headword in ((self._traditional, ref.traditional), (self._simplified, ref.simplified)):
            if ref.pinyin is not None:
                _register(index, headword, ref.pinyin, position, _VARIANT)
                continue
            known = index.get(headword)
            if not known:
                logger.debug("Variant reference %s without pinyin has no known headword", headword)
                continue
            for pinyin in list(known):
                _register(index, headword, pinyin, position, _VARIANT)

    def _link_variants(self) -> None:
        for position in self._variant_queue:
            entry = self._entries[position]
            _register(self._traditional, entry.traditional, entry.pinyin, position, _VARIANT)
            _register(self._simplified, entry.simplified, entry.pinyin, position, _VARIANT)
            for ref in entry.variant_of:
                self._register_reference(ref, position)

    def build(self, compact: bool = True) -> DictionaryIndex:
        """Run pass 2 and publish an immutable index.

        The builder should not be reused afterwards.

        Args:
            compact: Serialize rows against deduplicated lookup tables.

        Returns:
            Frozen dictionary index.
        """

        self._link_variants()
        if compact:
            rows, variant_lookup, classifier_lookup = compact_rows(self._entries)
        else:
            rows, variant_lookup, classifier_lookup = inline_rows(self._entries), (), ()

        logger.info(
            "Indexed %d entries (%d variants), %d traditional and %d simplified headwords",
            len(self._entries),
            len(self._variant_queue),
            len(self._traditional),
            len(self._simplified),
        )
        return DictionaryIndex(
            entries=rows,
            traditional=_freeze(self._traditional),
            simplified=_freeze(self._simplified),
            variant_lookup=variant_lookup,
            classifier_lookup=classifier_lookup,
            compact=compact,
        )


def inline_rows(entries: Iterable[CedictEntry]) -> tuple[RawRow, ...]:
    """Serialize entries with meaning tuples and inline reference triples."""

    return tuple(
        (
            entry.traditional,
            entry.simplified,
            entry.pinyin,
            entry.meanings,
            entry.variant_of,
            entry.classifiers,
        )
        for entry in entries
    )


class _LookupTable:
    """First-seen ordered table of distinct reference triples."""

    def __init__(self) -> None:
        self._positions: dict[HeadwordRef, int] = {}

    def position(self, ref: HeadwordRef) -> int:
        return self._positions.setdefault(ref, len(self._positions))

    def freeze(self) -> tuple[HeadwordRef, ...]:
        return tuple(self._positions)


def compact_rows(
    entries: Iterable[CedictEntry],
) -> tuple[tuple[RawRow, ...], tuple[HeadwordRef, ...], tuple[HeadwordRef, ...]]:
    """Serialize entries against deduplicated reference lookup tables.

    Each distinct variant and classifier triple gets a stable position in its
    table, assigned in first-seen order, and rows hold those positions. A
    single meaning is stored as a bare string.

    Args:
        entries: Entries in table order.

    Returns:
        Tuple of ``(rows, variant_lookup, classifier_lookup)``.
    """

    variants = _LookupTable()
    classifiers = _LookupTable()
    rows: list[RawRow] = []
    for entry in entries:
        meanings: str | tuple[str, ...] = (
            entry.meanings[0] if len(entry.meanings) == 1 else entry.meanings
        )
        rows.append(
            (
                entry.traditional,
                entry.simplified,
                entry.pinyin,
                meanings,
                tuple(variants.position(ref) for ref in entry.variant_of),
                tuple(classifiers.position(ref) for ref in entry.classifiers),
            )
        )
    return tuple(rows), variants.freeze(), classifiers.freeze()


def build_index(entries: Iterable[CedictEntry], compact: bool = True) -> DictionaryIndex:
    """Build a dictionary index from parsed entries in one call.

    Args:
        entries: Parsed entries in source order.
        compact: Use the lookup-table row layout.

    Returns:
        Frozen dictionary index.

    Raises:
        DuplicateEntryError: If the source repeats a base entry key.
    """

    builder = IndexBuilder()
    builder.extend(entries)
    return builder.build(compact=compact)
