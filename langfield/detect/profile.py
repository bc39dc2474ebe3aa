"""Language profile: per-language n-gram frequencies.

A profile is built offline by feeding training text through ``update`` and
pruning with ``omit_less_freq``, then saved as a JSON record::

    {"name": "en", "freq": {"a": 3, "ab": 1, ...}, "n_words": [9, 0, 0]}

``n_words[L-1]`` is the total count of grams of length L.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

from langfield.detect.errors import ProfileFormatError, ProfileLoadError
from langfield.detect.ngram import DEFAULT_NORMALIZER, N_GRAM, Normalizer, iter_grams

logger = logging.getLogger(__name__)

MINIMUM_FREQ = 2
LESS_FREQ_RATIO = 100_000

_ROMAN_CHAR_RE = re.compile(r"^[A-Za-z]$")
_ROMAN_SUBSTR_RE = re.compile(r"[A-Za-z]")


@dataclass
class LanguageProfile:
    """N-gram frequency table for one language."""

    name: str | None = None
    freq: dict[str, int] = field(default_factory=dict)
    n_words: list[int] = field(default_factory=lambda: [0] * N_GRAM)

    # ─── Training ────────────────────────────────────────────────

    def add(self, gram: str | None) -> None:
        """Count one gram. Ignored without a name or for lengths outside 1..3."""
        if self.name is None or gram is None:
            return
        length = len(gram)
        if length < 1 or length > N_GRAM:
            return
        self.n_words[length - 1] += 1
        self.freq[gram] = self.freq.get(gram, 0) + 1

    def update(self, text: str | None, normalizer: Normalizer = DEFAULT_NORMALIZER) -> None:
        """Add every gram of a (fragment of) training text."""
        if text is None:
            return
        for gram in iter_grams(normalizer.normalize(text), normalizer):
            self.add(gram)

    def omit_less_freq(self) -> None:
        """Drop rare grams, then Latin noise if the language is not Latin-script."""
        if self.name is None:
            return
        threshold = max(self.n_words[0] // LESS_FREQ_RATIO, MINIMUM_FREQ)

        roman = 0
        for gram, count in list(self.freq.items()):
            if count <= threshold:
                self.n_words[len(gram) - 1] -= count
                del self.freq[gram]
            elif _ROMAN_CHAR_RE.match(gram):
                roman += count

        if roman < self.n_words[0] // 3:
            for gram, count in list(self.freq.items()):
                if _ROMAN_SUBSTR_RE.search(gram):
                    self.n_words[len(gram) - 1] -= count
                    del self.freq[gram]

        logger.debug(f"Pruned profile '{self.name}' to {len(self.freq)} grams")

    def total(self, length: int) -> int:
        """Total count of grams of the given length."""
        return self.n_words[length - 1]

    # ─── Serialization ───────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Any) -> LanguageProfile:
        """Build a profile from a decoded JSON record, validating its shape."""
        if not isinstance(data, dict):
            raise ProfileFormatError("profile record must be a JSON object")

        name = data.get("name")
        freq = data.get("freq")
        n_words = data.get("n_words")
        if not isinstance(name, str) or not name:
            raise ProfileFormatError("profile 'name' must be a non-empty string")
        if not isinstance(freq, dict):
            raise ProfileFormatError(f"profile '{name}': 'freq' must be an object")
        if (
            not isinstance(n_words, list)
            or len(n_words) != N_GRAM
            or not all(isinstance(n, int) and not isinstance(n, bool) for n in n_words)
        ):
            raise ProfileFormatError(
                f"profile '{name}': 'n_words' must be a list of {N_GRAM} integers"
            )
        for gram, count in freq.items():
            if not isinstance(count, int) or isinstance(count, bool):
                raise ProfileFormatError(
                    f"profile '{name}': count for {gram!r} is not an integer"
                )

        return cls(name=name, freq=dict(freq), n_words=list(n_words))

    def to_dict(self) -> dict:
        """Convert to the JSON record layout."""
        return {"name": self.name, "freq": dict(self.freq), "n_words": list(self.n_words)}

    @classmethod
    def read(cls, stream: BinaryIO, source: str = "<stream>") -> LanguageProfile:
        """Decode a profile record from a readable byte source."""
        try:
            raw = stream.read()
        except OSError as e:
            raise ProfileLoadError(f"can't read '{source}': {e}") from e
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProfileFormatError(f"profile format error in '{source}': {e}") from e
        try:
            return cls.from_dict(data)
        except ProfileFormatError as e:
            raise ProfileFormatError(f"profile format error in '{source}': {e}") from e

    @classmethod
    def load(cls, path: str | Path) -> LanguageProfile:
        """Load a profile record from a file."""
        path = Path(path)
        try:
            stream = open(path, "rb")
        except OSError as e:
            raise ProfileLoadError(f"can't open '{path.name}': {e}") from e
        with stream:
            return cls.read(stream, source=path.name)

    def save(self, path: str | Path) -> None:
        """Write the profile as a JSON record."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False)
