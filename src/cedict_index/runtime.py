"""Process-wide dictionary construction."""

from __future__ import annotations

import functools
import os
from pathlib import Path

from cedict_index.cedict.query import CedictDictionary
from cedict_index.io.artifact_io import load_index

DATA_DIR_ENV = "CEDICT_INDEX_DATA"


def resolve_data_dir(data_dir: Path | None = None) -> Path:
    """Resolve the artifact directory.

    Returns:
        ``data_dir`` when given, else ``$CEDICT_INDEX_DATA``, else ``./data``.
    """

    if data_dir is not None:
        return Path(data_dir)
    from_env = os.environ.get(DATA_DIR_ENV)
    if from_env:
        return Path(from_env)
    return Path("data")


def load_dictionary(data_dir: Path | None = None) -> CedictDictionary:
    """Load a new dictionary from published artifacts."""

    return CedictDictionary(load_index(resolve_data_dir(data_dir)))


@functools.lru_cache(maxsize=1)
def default_dictionary() -> CedictDictionary:
    """Return the shared process-wide dictionary, loading it on first use.

    The instance is never mutated. To pick up rebuilt artifacts, load a new
    dictionary with :func:`load_dictionary` and swap references, or call
    ``default_dictionary.cache_clear()``.
    """

    return load_dictionary()
