"""Query engine answering headword lookups over a published index.

All reads are over immutable structures; a single :class:`CedictDictionary`
can be shared by any number of threads.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Sequence, Union

from cedict_index.models import (
    DictionaryIndex,
    DictionaryRecord,
    HeadwordRef,
    PinyinIndex,
    SearchConfig,
)

SearchResultsObject = dict[str, tuple[DictionaryRecord, ...]]
SearchResultsArray = tuple[DictionaryRecord, ...]
SearchResults = Union[SearchResultsObject, SearchResultsArray, None]


def _resolve_refs(refs: Iterable, lookup: Sequence[HeadwordRef]) -> tuple[HeadwordRef, ...]:
    resolved: list[HeadwordRef] = []
    for ref in refs or ():
        if isinstance(ref, int):
            resolved.append(lookup[ref])
        else:
            resolved.append(HeadwordRef(*ref))
    return tuple(resolved)


def _ordinal_sorted(keys: Iterable[str]) -> list[str]:
    # str ordering compares code points, independent of locale.
    return sorted(keys)


class CedictDictionary:
    """Read-only CC-CEDICT lookup over a :class:`DictionaryIndex`.

    Args:
        index: Published index, either freshly built or loaded from artifacts.
        default_config: Options applied when a lookup does not override them.
    """

    def __init__(self, index: DictionaryIndex, default_config: SearchConfig | None = None) -> None:
        self._index = index
        self._default_config = default_config or SearchConfig()

    @property
    def index(self) -> DictionaryIndex:
        return self._index

    @property
    def default_config(self) -> SearchConfig:
        return self._default_config

    def __len__(self) -> int:
        return len(self._index.entries)

    def expand(self, position: int, is_variant: bool) -> DictionaryRecord:
        """Materialize the entry at ``position`` into a record.

        Handles both the inline and the compact row layout.
        """

        traditional, simplified, pinyin, meanings, variant_refs, classifier_refs = self._index.entries[
            position
        ]
        return DictionaryRecord(
            traditional=traditional,
            simplified=simplified,
            pinyin=pinyin,
            meanings=(meanings,) if isinstance(meanings, str) else tuple(meanings),
            classifiers=_resolve_refs(classifier_refs, self._index.classifier_lookup),
            variant_of=_resolve_refs(variant_refs, self._index.variant_lookup),
            is_variant=is_variant,
        )

    @staticmethod
    def candidate_keys(
        pinyin_index: PinyinIndex, pinyin: str | None, case_sensitive: bool
    ) -> list[str]:
        """Select and order the pinyin keys a lookup reads.

        Without a filter every key is read. A case-sensitive filter reads only
        the exact key; a case-insensitive one reads every key equal to it after
        lowercasing. Keys come back in ordinal order.
        """

        if not pinyin:
            keys: Iterable[str] = pinyin_index.keys()
        elif case_sensitive:
            keys = [pinyin] if pinyin in pinyin_index else []
        else:
            wanted = pinyin.lower()
            keys = [key for key in pinyin_index if key.lower() == wanted]
        return _ordinal_sorted(keys)

    @staticmethod
    def _gather(
        pinyin_index: PinyinIndex, keys: Sequence[str], config: SearchConfig
    ) -> tuple[dict[str, list[int]], set[int]]:
        """Collect table positions per output group key.

        Variant-bucket positions are recorded in the returned set whether or
        not variants are allowed, so a position seen as a variant under any key
        stays marked.
        """

        groups: dict[str, list[int]] = {}
        variant_positions: set[int] = set()
        for key in keys:
            bucket = pinyin_index[key]
            variant_positions.update(bucket.variants)
            group_key = key.lower() if config.merge_cases else key
            positions = groups.setdefault(group_key, [])
            positions.extend(bucket.base)
            if config.allow_variants:
                positions.extend(bucket.variants)
        return groups, variant_positions

    def _group_records(
        self, positions: Sequence[int], variant_positions: set[int], config: SearchConfig
    ) -> list[DictionaryRecord]:
        """Expand, merge, and sort the records of one group.

        Records sharing ``(traditional, pinyin)`` merge into the first one
        gathered; later meanings are appended to it in gather order.
        """

        kept: dict[tuple[str, str], DictionaryRecord] = {}
        merged_meanings: dict[tuple[str, str], list[str]] = {}
        seen: set[int] = set()
        for position in positions:
            if position in seen:
                continue
            seen.add(position)
            is_variant = position in variant_positions
            if is_variant and not config.allow_variants:
                continue

            record = self.expand(position, is_variant)
            if config.merge_cases:
                record = replace(record, pinyin=record.pinyin.lower())

            dedup_key = (record.traditional, record.pinyin)
            if dedup_key in kept:
                merged_meanings[dedup_key].extend(record.meanings)
                continue
            kept[dedup_key] = record
            merged_meanings[dedup_key] = list(record.meanings)

        records = [
            replace(record, meanings=tuple(merged_meanings[key])) for key, record in kept.items()
        ]
        records.sort(key=lambda record: record.pinyin)
        return records

    def resolve_config(self, config: SearchConfig | None = None, **overrides: bool) -> SearchConfig:
        """Combine a base config (or the default one) with keyword overrides."""

        base = config if config is not None else self._default_config
        return replace(base, **overrides) if overrides else base

    def lookup(
        self,
        by_simplified: bool,
        word: str,
        pinyin: str | None = None,
        config: SearchConfig | None = None,
        **overrides: bool,
    ) -> SearchResults:
        """Look up a headword.

        Args:
            by_simplified: Search the simplified index instead of the
                traditional one.
            word: Headword characters.
            pinyin: Optional pinyin filter such as ``zhang1``.
            config: Options for this lookup; defaults to the dictionary's.
            **overrides: Individual :class:`SearchConfig` fields to override.

        Returns:
            A mapping of pinyin to records when ``as_object`` is set, otherwise
            a flat tuple of records in group order. ``None`` when nothing
            matched.
        """

        config = self.resolve_config(config, **overrides)
        character_index = self._index.simplified if by_simplified else self._index.traditional
        pinyin_index = character_index.get(word)
        if not pinyin_index:
            return None

        keys = self.candidate_keys(pinyin_index, pinyin, config.case_sensitive_search)
        groups, variant_positions = self._gather(pinyin_index, keys, config)

        grouped: SearchResultsObject = {}
        for group_key, positions in groups.items():
            records = self._group_records(positions, variant_positions, config)
            if records:
                grouped[group_key] = tuple(records)

        if not grouped:
            return None
        if config.as_object:
            return grouped
        return tuple(record for records in grouped.values() for record in records)

    def get_by_simplified(
        self,
        word: str,
        pinyin: str | None = None,
        config: SearchConfig | None = None,
        **overrides: bool,
    ) -> SearchResults:
        """Look up ``word`` in the simplified index."""

        return self.lookup(True, word, pinyin, config, **overrides)

    def get_by_traditional(
        self,
        word: str,
        pinyin: str | None = None,
        config: SearchConfig | None = None,
        **overrides: bool,
    ) -> SearchResults:
        """Look up ``word`` in the traditional index."""

        return self.lookup(False, word, pinyin, config, **overrides)
