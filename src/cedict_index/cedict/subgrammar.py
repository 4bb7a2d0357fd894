"""Scanner for headword references embedded in CC-CEDICT definitions.

Two micro-grammars appear inside definition segments:

* ``variant of TRAD|SIMP[pinyin]`` marks the entry as a variant of another
  headword. The ``|SIMP`` part and the bracket are optional.
* ``CL:TRAD|SIMP[pinyin],...`` lists classifiers (measure words). Every item
  carries a bracket.

Both are scanned by hand over the segment text, one pass per marker
occurrence, without backtracking.
"""

from __future__ import annotations

from dataclasses import dataclass
import unicodedata

from cedict_index.cedict.pinyin import join_syllables
from cedict_index.models import HeadwordRef

VARIANT_MARKER = "variant of "
CLASSIFIER_MARKER = "CL:"
EXTRA_IDEOGRAPHS = frozenset("〆〇")
# Compatibility-block code points that Unicode still classes as unified ideographs.
COMPATIBILITY_IDEOGRAPHS = frozenset(
    "\uFA0E\uFA0F\uFA11\uFA13\uFA14\uFA1F\uFA21\uFA23\uFA24\uFA27\uFA28\uFA29"
)


@dataclass(frozen=True)
class HeadwordExpression:
    """Raw ``TRAD|SIMP[pinyin]`` expression located in a segment.

    ``pinyin_payload`` is the bracket content before re-tokenization, or
    ``None`` when no bracket was present. ``end`` is the offset just past the
    recognized text.
    """

    first: str
    second: str
    pinyin_payload: str | None
    end: int

    def to_ref(self) -> HeadwordRef | None:
        """Convert to a :class:`HeadwordRef`, or ``None`` when empty."""

        if not self.first:
            return None
        pinyin = join_syllables(self.pinyin_payload) if self.pinyin_payload is not None else None
        return HeadwordRef(self.first, self.second or self.first, pinyin)


@dataclass(frozen=True)
class SegmentMatches:
    """References recognized in one definition segment.

    ``consumed`` is true when a single recognized span covers the whole
    segment; such a segment carries no meaning text of its own.
    """

    variant_of: tuple[HeadwordRef, ...] = ()
    classifiers: tuple[HeadwordRef, ...] = ()
    consumed: bool = False


def is_ideograph(ch: str) -> bool:
    """Return whether ``ch`` is a CJK unified ideograph (or 〆/〇)."""

    if ch in EXTRA_IDEOGRAPHS or ch in COMPATIBILITY_IDEOGRAPHS:
        return True
    return unicodedata.name(ch, "").startswith("CJK UNIFIED IDEOGRAPH")


def is_variation_selector(ch: str) -> bool:
    """Return whether ``ch`` is a standardized or ideographic variation selector."""

    cp = ord(ch)
    return 0xFE00 <= cp <= 0xFE0F or 0xE0100 <= cp <= 0xE01EF


def scan_ideographs(text: str, pos: int) -> int:
    """Return the offset past a run of ideographs starting at ``pos``.

    Each ideograph may be followed by one variation selector. Returns ``pos``
    unchanged when no ideograph starts there.
    """

    end = pos
    while end < len(text) and is_ideograph(text[end]):
        end += 1
        if end < len(text) and is_variation_selector(text[end]):
            end += 1
    return end


def scan_expression(text: str, pos: int, *, require_bracket: bool) -> HeadwordExpression | None:
    """Scan one ``TRAD|SIMP[pinyin]`` expression starting at ``pos``.

    Args:
        text: Segment text.
        pos: Offset where the expression starts.
        require_bracket: Classifier mode. The bracket must be present and
            closed, and the closing ``]`` belongs to the expression. In variant
            mode the bracket is optional, may be left open, and the recognized
            text stops before the closing ``]``.

    Returns:
        Located expression, or ``None`` when the text does not match.
    """

    first_end = scan_ideographs(text, pos)
    first = text[pos:first_end]
    end = first_end

    second = ""
    if end < len(text) and text[end] == "|":
        second_end = scan_ideographs(text, end + 1)
        if second_end > end + 1:
            second = text[end + 1 : second_end]
            end = second_end

    if end < len(text) and text[end] == "[":
        close = text.find("]", end + 1)
        if close == -1:
            if require_bracket:
                return None
            return HeadwordExpression(first, second, text[end + 1 :], len(text))
        payload = text[end + 1 : close]
        return HeadwordExpression(first, second, payload, close + 1 if require_bracket else close)

    if require_bracket:
        return None
    return HeadwordExpression(first, second, None, end)


def _find_markers(text: str, marker: str):
    start = 0
    while True:
        idx = text.find(marker, start)
        if idx == -1:
            return
        yield idx
        start = idx + 1


def scan_variant_refs(text: str) -> tuple[list[HeadwordRef], bool]:
    """Extract every ``variant of`` reference in ``text``.

    Returns:
        Tuple of ``(refs, consumed)`` where ``consumed`` reports whether one
        reference spans the entire text.
    """

    refs: list[HeadwordRef] = []
    consumed = False
    for idx in _find_markers(text, VARIANT_MARKER):
        expression = scan_expression(text, idx + len(VARIANT_MARKER), require_bracket=False)
        if expression is None:
            continue
        if idx == 0 and expression.end == len(text):
            consumed = True
        ref = expression.to_ref()
        if ref is not None:
            refs.append(ref)
    return refs, consumed


def scan_classifier_refs(text: str) -> tuple[list[HeadwordRef], bool]:
    """Extract every ``CL:`` classifier item in ``text``.

    Items without ideographs or without any tone-numbered syllable are
    dropped. A ``CL:`` marker followed by no bracketed item is not a list.

    Returns:
        Tuple of ``(refs, consumed)`` as for :func:`scan_variant_refs`.
    """

    refs: list[HeadwordRef] = []
    consumed = False
    for idx in _find_markers(text, CLASSIFIER_MARKER):
        pos = idx + len(CLASSIFIER_MARKER)
        matched = False
        while True:
            expression = scan_expression(text, pos, require_bracket=True)
            if expression is None:
                break
            matched = True
            pos = expression.end
            if pos < len(text) and text[pos] == ",":
                pos += 1
            ref = expression.to_ref()
            if ref is not None and ref.pinyin is not None:
                refs.append(ref)
        if matched and idx == 0 and pos == len(text):
            consumed = True
    return refs, consumed


def scan_segment(segment: str) -> SegmentMatches:
    """Recognize variant references and classifier lists in one segment.

    Args:
        segment: One trimmed, non-empty definition segment.

    Returns:
        Recognized references plus whether the segment was fully consumed.
    """

    variant_of, variant_consumed = scan_variant_refs(segment)
    classifiers, classifier_consumed = scan_classifier_refs(segment)
    return SegmentMatches(
        variant_of=tuple(variant_of),
        classifiers=tuple(classifiers),
        consumed=variant_consumed or classifier_consumed,
    )
