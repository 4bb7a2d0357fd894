"""CC-CEDICT indexing pipeline and lookup engine."""

from .cedict.query import CedictDictionary
from .models import CedictEntry, DictionaryIndex, DictionaryRecord, HeadwordRef, SearchConfig
from .runtime import default_dictionary, load_dictionary

__all__ = [
    "CedictDictionary",
    "CedictEntry",
    "DictionaryIndex",
    "DictionaryRecord",
    "HeadwordRef",
    "SearchConfig",
    "default_dictionary",
    "load_dictionary",
]
