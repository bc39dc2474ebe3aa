"""Detector: randomized naive Bayes language identification.

Usage::

    store = ProfileStore.from_directory("profiles/")
    detector = store.new_detector()
    detector.append("text to classify")
    detector.detect()             # "en"
    detector.get_probabilities()  # [Language(lang="en", prob=0.99...)]

A detector is single-use: the first result call classifies the buffered text
and the outcome is memoized.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Mapping, TextIO

from langfield.detect.errors import (
    DetectorStateError,
    InvalidPriorError,
    NoFeaturesError,
)
from langfield.detect.language import UNKNOWN_LANG, DetectionResult, Language
from langfield.detect.ngram import iter_grams
from langfield.detect.random_source import RandomSource, default_random_source

if TYPE_CHECKING:
    from langfield.detect.store import ProfileStore

logger = logging.getLogger(__name__)

ALPHA_DEFAULT = 0.5
ALPHA_WIDTH = 0.05
ITERATION_LIMIT = 1000
PROB_THRESHOLD = 0.1
CONV_THRESHOLD = 0.99999
BASE_FREQ = 10000
N_TRIAL = 7
MAX_TEXT_LENGTH = 10000

_URL_RE = re.compile(r"https?://[-_.?&~;+=/#0-9A-Za-z]{1,2076}")
_MAIL_RE = re.compile(r"[-_.0-9A-Za-z]{1,64}@[-_0-9A-Za-z]{1,255}[-_.0-9A-Za-z]{1,255}")


class DetectorState(str, Enum):
    """Classification state of a detector."""

    PENDING = "pending"
    CLASSIFIED = "classified"


def _is_ascii_letter(ch: str) -> bool:
    return "A" <= ch <= "Z" or "a" <= ch <= "z"


def _is_non_latin(ch: str) -> bool:
    # Combining marks and beyond, except Latin Extended Additional
    code = ord(ch)
    return code >= 0x0300 and not (0x1E00 <= code <= 0x1EFF)


def _normalize_prob(prob: list[float]) -> float:
    """Normalize in place and return the largest entry."""
    total = sum(prob)
    max_p = 0.0
    for i, p in enumerate(prob):
        p /= total
        prob[i] = p
        if p > max_p:
            max_p = p
    return max_p


class Detector:
    """Accumulates text for one request and classifies it on first read."""

    def __init__(
        self,
        store: ProfileStore,
        alpha: float = ALPHA_DEFAULT,
        max_text_length: int = MAX_TEXT_LENGTH,
        prior: Mapping[str, float] | None = None,
        seed: int | None = None,
        random_source: RandomSource | None = None,
        trials: int = N_TRIAL,
    ) -> None:
        self._table = store.probability_table
        self._languages = store.languages
        self._normalizer = store.normalizer
        self.alpha = alpha
        self.max_text_length = max_text_length
        self.seed = seed
        self.trials = trials
        self._random_source = random_source
        self._prior: list[float] | None = None
        self._buffer: list[str] = []
        self._scores: list[float] = []
        self.state = DetectorState.PENDING
        if prior is not None:
            self.set_prior(prior)

    # ─── Configuration ───────────────────────────────────────────

    def set_prior(self, prior: Mapping[str, float]) -> None:
        """Use per-language weights as the initial distribution.

        Languages missing from the store are ignored; the weights are
        normalized to sum to one.
        """
        weights = [0.0] * len(self._languages)
        for i, lang in enumerate(self._languages):
            if lang in prior:
                p = float(prior[lang])
                if p < 0:
                    raise InvalidPriorError(f"prior probability for '{lang}' must be non-negative")
                weights[i] = p
        total = sum(weights)
        if total <= 0:
            raise InvalidPriorError("at least one prior probability must be non-zero")
        self._prior = [w / total for w in weights]

    @property
    def text(self) -> str:
        """The buffered, masked and normalized text."""
        return "".join(self._buffer)

    # ─── Input ───────────────────────────────────────────────────

    def append(self, text: str) -> None:
        """Buffer text for detection.

        URLs and e-mail addresses are masked, runs of spaces collapsed and
        anything past ``max_text_length`` is dropped.
        """
        if self.state is DetectorState.CLASSIFIED:
            raise DetectorStateError("detector already classified its text")

        text = _URL_RE.sub(" ", text)
        text = _MAIL_RE.sub(" ", text)
        text = self._normalizer.normalize(text)

        room = self.max_text_length - len(self._buffer)
        pre = self._buffer[-1] if self._buffer else ""
        for ch in text:
            if room <= 0:
                break
            if ch != " " or pre != " ":
                self._buffer.append(ch)
                room -= 1
            pre = ch

    def append_stream(self, reader: TextIO) -> None:
        """Buffer text read from a stream until it ends or the buffer is full."""
        chunk_size = max(self.max_text_length // 2, 1)
        while len(self._buffer) < self.max_text_length:
            chunk = reader.read(chunk_size)
            if not chunk:
                break
            self.append(chunk)

    # ─── Results ─────────────────────────────────────────────────

    def detect(self) -> str:
        """Return the most probable language, or ``"unknown"``."""
        probabilities = self.get_probabilities()
        if probabilities:
            return probabilities[0].lang
        return UNKNOWN_LANG

    def get_probabilities(self) -> list[Language]:
        """Return candidates above the threshold, most probable first."""
        if self.state is DetectorState.PENDING:
            self._scores = self._detect_block()
            self.state = DetectorState.CLASSIFIED
        return self._sort_probability(self._scores)

    def classify(self) -> DetectionResult:
        """Classify and report failures as a value instead of raising."""
        try:
            probabilities = self.get_probabilities()
        except NoFeaturesError as e:
            return DetectionResult(success=False, error=e.kind, message=str(e))
        return DetectionResult(
            language=probabilities[0].lang if probabilities else UNKNOWN_LANG,
            probabilities=probabilities,
        )

    # ─── Algorithm ───────────────────────────────────────────────

    def _cleaned_text(self) -> str:
        """Drop Latin letters when the text is mostly written in another script."""
        latin = sum(1 for ch in self._buffer if _is_ascii_letter(ch))
        non_latin = sum(1 for ch in self._buffer if _is_non_latin(ch))
        if latin * 2 < non_latin:
            return "".join(ch for ch in self._buffer if not _is_ascii_letter(ch))
        return "".join(self._buffer)

    def _extract_features(self, text: str) -> list[str]:
        return [g for g in iter_grams(text, self._normalizer) if g in self._table]

    def _init_probability(self) -> list[float]:
        if self._prior is not None:
            return list(self._prior)
        n = len(self._languages)
        return [1.0 / n] * n

    def _detect_block(self) -> list[float]:
        features = self._extract_features(self._cleaned_text())
        if not features:
            raise NoFeaturesError("no features in text")

        rand = self._random_source or default_random_source(self.seed)
        scores = [0.0] * len(self._languages)
        for t in range(self.trials):
            prob = self._init_probability()
            weight = (self.alpha + rand.gauss(0.0, ALPHA_WIDTH)) / BASE_FREQ

            i = 0
            while True:
                vector = self._table[features[rand.randrange(len(features))]]
                for j, p in enumerate(vector):
                    prob[j] *= weight + p
                if i % 5 == 0:
                    if _normalize_prob(prob) > CONV_THRESHOLD or i >= ITERATION_LIMIT:
                        break
                i += 1

            for j, p in enumerate(prob):
                scores[j] += p / self.trials
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"trial {t} ({i} iterations): {self._sort_probability(prob)}")

        return scores

    def _sort_probability(self, prob: list[float]) -> list[Language]:
        # sorted() is stable, so ties keep language-list order
        ranked = sorted(range(len(prob)), key=lambda j: prob[j], reverse=True)
        return [
            Language(self._languages[j], prob[j])
            for j in ranked
            if prob[j] > PROB_THRESHOLD
        ]


def detect_language(store: ProfileStore, text: str, **options) -> DetectionResult:
    """One-shot classification of ``text`` against ``store``."""
    detector = store.new_detector(**options)
    detector.append(text)
    return detector.classify()
