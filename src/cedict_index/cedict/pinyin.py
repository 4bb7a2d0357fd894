"""Numbered pinyin helpers for CC-CEDICT pinyin payloads."""

from __future__ import annotations

import string

from pypinyin.contrib.tone_convert import to_tone

_SYLLABLE_CHARS = frozenset(string.ascii_letters + ":")


def numbered_syllables(text: str) -> tuple[str, ...]:
    """Tokenize tone-numbered syllables out of free text.

    A syllable is a run of ASCII letters or colons immediately followed by a
    single digit (``ni3``, ``lu:4``, ``r5``). Characters that do not belong to
    such a run are dropped.

    Args:
        text: Raw bracket payload such as ``qian2 bian5``.

    Returns:
        Syllables in source order.
    """

    syllables: list[str] = []
    run: list[str] = []
    for ch in text:
        if ch in _SYLLABLE_CHARS:
            run.append(ch)
            continue
        if ch.isascii() and ch.isdigit() and run:
            syllables.append("".join(run) + ch)
        run = []
    return tuple(syllables)


def join_syllables(text: str) -> str | None:
    """Return tokenized syllables joined by single spaces, or ``None``."""

    syllables = numbered_syllables(text)
    if not syllables:
        return None
    return " ".join(syllables)


def _syllable_to_tone_mark(token: str) -> str:
    lowered = token.lower().replace("u:", "v")
    marked = to_tone(lowered)
    if token[:1].isupper():
        return marked[:1].upper() + marked[1:]
    return marked


def to_tone_marks(pinyin: str) -> str:
    """Render numbered pinyin with tone marks for display.

    ``Zhong1 guo2`` becomes ``Zhōng guó``. Tokens that are not a single
    numbered syllable (punctuation, letters such as ``xx``) pass through.

    Args:
        pinyin: Space-separated numbered pinyin as stored in the dictionary.

    Returns:
        Tone-marked pinyin string.
    """

    rendered: list[str] = []
    for token in pinyin.split(" "):
        if numbered_syllables(token) == (token,):
            rendered.append(_syllable_to_tone_mark(token))
        else:
            rendered.append(token)
    return " ".join(rendered)
