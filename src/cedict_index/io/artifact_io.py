"""JSON read/write helpers for published index artifacts.

A data directory holds four files:

* ``all.json``: entry rows, row layout, and the two lookup tables.
* ``traditional.json`` / ``simplified.json``: ``headword -> pinyin ->
  [[base positions], [variant positions]]`` under ``headwords``.
* ``status.json``: build timestamp and entry count.

Every file carries the ``generation`` id of the build that wrote it; the
loader refuses a set whose files disagree.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Any
import uuid

from cedict_index.models import CharacterIndex, DictionaryIndex, IndexBucket

logger = logging.getLogger(__name__)

ALL_FILE = "all.json"
TRADITIONAL_FILE = "traditional.json"
SIMPLIFIED_FILE = "simplified.json"
STATUS_FILE = "status.json"
ARTIFACT_FILES = (ALL_FILE, TRADITIONAL_FILE, SIMPLIFIED_FILE, STATUS_FILE)
INDEX_FILES = ARTIFACT_FILES[:3]

LAYOUT_COMPACT = "compact"
LAYOUT_INLINE = "inline"

STAGING_PREFIX = ".staging-"
_PREVIOUS_DIR = "previous"


def _character_index_to_json(index: CharacterIndex) -> dict[str, dict[str, list[list[int]]]]:
    return {
        headword: {
            pinyin: [list(bucket.base), list(bucket.variants)]
            for pinyin, bucket in pinyin_index.items()
        }
        for headword, pinyin_index in index.items()
    }


def _character_index_from_json(payload: dict[str, Any]) -> dict[str, dict[str, IndexBucket]]:
    return {
        headword: {
            pinyin: IndexBucket(base=tuple(base), variants=tuple(variants))
            for pinyin, (base, variants) in pinyin_index.items()
        }
        for headword, pinyin_index in payload.items()
    }


def _stage_json(staging_dir: Path, name: str, payload: Any) -> Path:
    """Write ``payload`` as ``name`` inside the private staging directory."""

    path = staging_dir / name
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
    return path


def _swap_into_place(staging_dir: Path, output_dir: Path) -> None:
    """Move staged files over the published ones, rolling back on failure.

    Each published file is first moved aside into the staging directory. If
    any move fails, files already swapped are restored from those copies (or
    removed when there was no previous version) before the error propagates.
    """

    previous_dir = staging_dir / _PREVIOUS_DIR
    previous_dir.mkdir()
    swapped: list[str] = []
    try:
        for name in ARTIFACT_FILES:
            target = output_dir / name
            if target.exists():
                os.replace(target, previous_dir / name)
            swapped.append(name)
            os.replace(staging_dir / name, target)
    except BaseException:
        for name in reversed(swapped):
            previous = previous_dir / name
            if previous.exists():
                os.replace(previous, output_dir / name)
            else:
                (output_dir / name).unlink(missing_ok=True)
        logger.error("Publishing to %s failed; previous artifacts restored", output_dir)
        raise


def write_artifacts(
    index: DictionaryIndex, output_dir: Path, updated_at: datetime | None = None
) -> Path:
    """Publish an index into ``output_dir``.

    All files are staged in a temporary directory inside ``output_dir`` and
    then swapped in. A failure while staging or swapping leaves the previously
    published artifacts in place and removes every staged file.

    Args:
        index: Index to publish.
        output_dir: Data directory; created when missing.
        updated_at: Timestamp recorded in ``status.json``; defaults to now (UTC).

    Returns:
        The data directory path.
    """

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = updated_at or datetime.now(timezone.utc)
    generation = uuid.uuid4().hex

    payloads = {
        ALL_FILE: {
            "generation": generation,
            "layout": LAYOUT_COMPACT if index.compact else LAYOUT_INLINE,
            "entries": [list(row) for row in index.entries],
            "variant_lookup": [list(ref) for ref in index.variant_lookup],
            "classifier_lookup": [list(ref) for ref in index.classifier_lookup],
        },
        TRADITIONAL_FILE: {
            "generation": generation,
            "headwords": _character_index_to_json(index.traditional),
        },
        SIMPLIFIED_FILE: {
            "generation": generation,
            "headwords": _character_index_to_json(index.simplified),
        },
        STATUS_FILE: {
            "generation": generation,
            "updated_at": timestamp.isoformat(),
            "entries": len(index.entries),
        },
    }

    staging_dir = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=output_dir))
    try:
        for name, payload in payloads.items():
            _stage_json(staging_dir, name, payload)
        _swap_into_place(staging_dir, output_dir)
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    logger.info("Wrote %d entries to %s (generation %s)", len(index.entries), output_dir, generation)
    return output_dir


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def has_artifacts(data_dir: Path) -> bool:
    """Return whether ``data_dir`` holds a complete set of index artifacts."""

    return all((Path(data_dir) / name).exists() for name in INDEX_FILES)


def load_index(data_dir: Path) -> DictionaryIndex:
    """Load a published index without reparsing source text.

    Args:
        data_dir: Directory written by :func:`write_artifacts`.

    Returns:
        Frozen dictionary index.

    Raises:
        FileNotFoundError: If an artifact file is missing.
        ValueError: If the artifact files were written by different builds.
    """

    data_dir = Path(data_dir)
    for name in INDEX_FILES:
        if not (data_dir / name).exists():
            raise FileNotFoundError(f"Dictionary artifact not found: {data_dir / name}")

    payload = _read_json(data_dir / ALL_FILE)
    traditional = _read_json(data_dir / TRADITIONAL_FILE)
    simplified = _read_json(data_dir / SIMPLIFIED_FILE)
    generations = {payload.get("generation"), traditional.get("generation"), simplified.get("generation")}
    if len(generations) != 1:
        raise ValueError(f"Index artifacts in {data_dir} come from different builds")

    return DictionaryIndex(
        entries=tuple(payload["entries"]),
        traditional=_character_index_from_json(traditional["headwords"]),
        simplified=_character_index_from_json(simplified["headwords"]),
        variant_lookup=tuple(payload.get("variant_lookup", ())),
        classifier_lookup=tuple(payload.get("classifier_lookup", ())),
        compact=payload.get("layout") == LAYOUT_COMPACT,
    )


def read_status(data_dir: Path) -> dict[str, Any] | None:
    """Return the parsed ``status.json``, or ``None`` when absent."""

    path = Path(data_dir) / STATUS_FILE
    if not path.exists():
        return None
    return _read_json(path)
