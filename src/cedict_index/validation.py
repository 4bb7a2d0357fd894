"""Integrity checks for a built dictionary index."""

from __future__ import annotations

from typing import Sequence

from cedict_index.models import CharacterIndex, DictionaryIndex, HeadwordRef

PREVIEW_LIMIT = 25


def _raise_if_errors(label: str, errors: Sequence[str]) -> None:
    if not errors:
        return
    preview = "\n".join(f"- {item}" for item in errors[:PREVIEW_LIMIT])
    rest = len(errors) - min(PREVIEW_LIMIT, len(errors))
    more = f"\n- ... and {rest} more" if rest > 0 else ""
    raise ValueError(f"{label} validation failed with {len(errors)} errors:\n{preview}{more}")


def _has_variant_refs(row) -> bool:
    return bool(row[4])


def _check_character_index(name: str, index: CharacterIndex, rows: Sequence) -> list[str]:
    errors: list[str] = []
    for headword, pinyin_index in index.items():
        for pinyin, bucket in pinyin_index.items():
            where = f"{name} {headword} [{pinyin}]"
            positions = [*bucket.base, *bucket.variants]
            if len(set(positions)) != len(positions):
                errors.append(f"{where}: duplicate table position")
            for position in positions:
                if not 0 <= position < len(rows):
                    errors.append(f"{where}: position {position} out of range")
            for position in bucket.base:
                if 0 <= position < len(rows) and _has_variant_refs(rows[position]):
                    errors.append(f"{where}: base position {position} carries variant references")
            for position in bucket.variants:
                if 0 <= position < len(rows) and not _has_variant_refs(rows[position]):
                    errors.append(f"{where}: variant position {position} has no variant references")
    return errors


def _check_lookup(name: str, lookup: Sequence[HeadwordRef], rows: Sequence, column: int) -> list[str]:
    errors: list[str] = []
    if len(set(lookup)) != len(lookup):
        errors.append(f"{name}: duplicate triples")
    for row_number, row in enumerate(rows):
        for ref in row[column]:
            if not 0 <= ref < len(lookup):
                errors.append(f"row {row_number}: {name} position {ref} out of range")
    return errors


def validate_index(index: DictionaryIndex) -> None:
    """Validate a built index against its structural invariants.

    Checks that no bucket repeats a table position, that base buckets hold
    only entries without variant references and variant buckets only entries
    with them, that every position is in range, and (for the compact layout)
    that lookup tables hold distinct triples and every row reference resolves.

    Args:
        index: Index to validate.

    Raises:
        ValueError: If any invariant is violated.
    """

    rows = index.entries
    errors: list[str] = []
    errors.extend(_check_character_index("traditional", index.traditional, rows))
    errors.extend(_check_character_index("simplified", index.simplified, rows))
    if index.compact:
        errors.extend(_check_lookup("variant lookup", index.variant_lookup, rows, 4))
        errors.extend(_check_lookup("classifier lookup", index.classifier_lookup, rows, 5))
    _raise_if_errors("Index", errors)
