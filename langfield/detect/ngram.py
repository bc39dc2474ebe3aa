"""Character normalization and the sliding n-gram window.

The folding rules live in an immutable ``FoldingTable`` so that callers can
swap in a different table (for example with a CJK representative map loaded
from disk) without touching module state.
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from langfield.detect.errors import ProfileFormatError, ProfileLoadError

N_GRAM = 3

_SPACE = " "


def _frozen(mapping: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class FoldingTable:
    """Per-character script folding rules.

    Blocks are inclusive code point ranges. ``char_map`` wins over the block
    rules; ``cjk_map`` folds ideographs onto a representative of their class.
    """

    blank_chars: frozenset[str] = frozenset("\u00a0\u00ab\u00b0\u00bb")
    blank_blocks: tuple[tuple[int, int], ...] = (
        (0x2000, 0x206F),  # General Punctuation
    )
    char_map: Mapping[str, str] = field(default_factory=lambda: _frozen({
        "\u0219": "\u015f",  # Romanian s with comma below
        "\u021b": "\u0163",  # Romanian t with comma below
        "\u06cc": "\u064a",  # Farsi yeh
    }))
    block_map: tuple[tuple[int, int, str], ...] = (
        (0x1EA0, 0x1EFF, "\u1ec3"),  # Latin Extended Additional (Vietnamese)
        (0x3040, 0x309F, "\u3042"),  # Hiragana
        (0x30A0, 0x30FF, "\u30a2"),  # Katakana
        (0x3100, 0x312F, "\u3105"),  # Bopomofo
        (0x31A0, 0x31BF, "\u3105"),  # Bopomofo Extended
        (0xAC00, 0xD7AF, "\uac00"),  # Hangul Syllables
    )
    cjk_block: tuple[int, int] = (0x4E00, 0x9FFF)
    cjk_map: Mapping[str, str] = field(default_factory=_frozen)
    diacritic_bases: str = (
        "AEIOUYaeiouy\u00c2\u00ca\u00d4\u00e2\u00ea\u00f4"
        "\u0102\u0103\u01a0\u01a1\u01af\u01b0"
    )
    diacritic_marks: str = "\u0300\u0301\u0303\u0309\u0323"

    def with_cjk_map(self, cjk_map: Mapping[str, str]) -> FoldingTable:
        """Return a copy of this table using the given ideograph map."""
        return replace(self, cjk_map=_frozen(cjk_map))


DEFAULT_FOLDING = FoldingTable()


def load_cjk_map(path: str | Path) -> dict[str, str]:
    """Read ideograph classes from a JSON list of strings.

    The first character of each string is the representative every other
    character of that string folds to.
    """
    path = Path(path)
    try:
        stream = open(path, encoding="utf-8")
    except OSError as e:
        raise ProfileLoadError(f"can't open CJK map '{path}': {e}") from e
    with stream:
        try:
            classes = json.load(stream)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProfileFormatError(f"CJK map format error in '{path}': {e}") from e
    if not isinstance(classes, list):
        raise ProfileFormatError(f"CJK map must be a JSON list of strings: {path}")

    mapping: dict[str, str] = {}
    for members in classes:
        if not isinstance(members, str) or not members:
            raise ProfileFormatError(f"invalid CJK class entry in {path}: {members!r}")
        for ch in members:
            mapping[ch] = members[0]
    return mapping


class Normalizer:
    """Applies a ``FoldingTable`` to text and to single characters."""

    def __init__(self, table: FoldingTable = DEFAULT_FOLDING) -> None:
        self.table = table
        self._compose = self._build_compositions(table)
        self._with_mark = re.compile(
            f"([{re.escape(table.diacritic_bases)}])([{re.escape(table.diacritic_marks)}])"
        )

    @staticmethod
    def _build_compositions(table: FoldingTable) -> Mapping[str, str]:
        compose: dict[str, str] = {}
        for base in table.diacritic_bases:
            for mark in table.diacritic_marks:
                composed = unicodedata.normalize("NFC", base + mark)
                if len(composed) == 1:
                    compose[base + mark] = composed
        return MappingProxyType(compose)

    def normalize(self, text: str) -> str:
        """Compose Vietnamese letter + combining mark pairs into one character."""
        return self._with_mark.sub(
            lambda m: self._compose.get(m.group(0), m.group(0)), text
        )

    def normalize_char(self, ch: str) -> str:
        """Fold one character according to the table."""
        code = ord(ch)
        if code < 0x80:
            # Basic Latin keeps letters only
            return ch if ("A" <= ch <= "Z" or "a" <= ch <= "z") else _SPACE

        table = self.table
        if ch in table.blank_chars:
            return _SPACE
        if ch in table.char_map:
            return table.char_map[ch]
        lo, hi = table.cjk_block
        if lo <= code <= hi:
            return table.cjk_map.get(ch, ch)
        for lo, hi in table.blank_blocks:
            if lo <= code <= hi:
                return _SPACE
        for lo, hi, folded in table.block_map:
            if lo <= code <= hi:
                return folded
        return ch


DEFAULT_NORMALIZER = Normalizer()


class NGramWindow:
    """Sliding window over normalized characters yielding 1..3-grams.

    The window starts from a space sentinel and restarts at each word
    boundary, so no gram spans two spaces. A fresh window is needed per text.
    """

    def __init__(self, normalizer: Normalizer = DEFAULT_NORMALIZER) -> None:
        self._normalizer = normalizer
        self._grams = _SPACE
        self._capital_word = False

    def add_char(self, ch: str) -> None:
        """Push one character into the window."""
        ch = self._normalizer.normalize_char(ch)
        last = self._grams[-1]
        if last == _SPACE:
            self._grams = _SPACE
            self._capital_word = False
            if ch == _SPACE:
                return
        elif len(self._grams) >= N_GRAM:
            self._grams = self._grams[1:]
        self._grams += ch

        if ch.isupper():
            if last.isupper():
                self._capital_word = True
        else:
            self._capital_word = False

    def get(self, n: int) -> str | None:
        """Return the trailing n-gram, or None when it is not available."""
        if self._capital_word:
            return None
        length = len(self._grams)
        if n < 1 or n > N_GRAM or length < n:
            return None
        if n == 1:
            ch = self._grams[-1]
            return None if ch == _SPACE else ch
        return self._grams[length - n:]


def iter_grams(text: str, normalizer: Normalizer = DEFAULT_NORMALIZER) -> Iterator[str]:
    """Drive a fresh window across ``text`` and yield every available gram."""
    window = NGramWindow(normalizer)
    for ch in text:
        window.add_char(ch)
        for n in range(1, N_GRAM + 1):
            gram = window.get(n)
            if gram is not None:
                yield gram
