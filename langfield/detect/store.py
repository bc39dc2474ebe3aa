"""Profile store: the shared gram to per-language probability table.

A store is built once per process from a complete set of profiles and is
read-only afterwards, so any number of detectors can share it.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from langfield.detect.detector import Detector
from langfield.detect.errors import (
    DuplicateLanguageError,
    NoProfilesLoadedError,
    ProfileFormatError,
    ProfileLoadError,
)
from langfield.detect.ngram import DEFAULT_NORMALIZER, N_GRAM, Normalizer
from langfield.detect.profile import LanguageProfile

logger = logging.getLogger(__name__)

DEFAULT_BUNDLE = "langfield"


class ProfileStore:
    """Ordered language list plus the probability table built from it.

    Slot ``i`` of every table vector belongs to ``languages[i]``; the order is
    the profile load order and never changes.
    """

    def __init__(
        self,
        profiles: Iterable[LanguageProfile] = (),
        normalizer: Normalizer = DEFAULT_NORMALIZER,
    ) -> None:
        self.normalizer = normalizer
        self.seed: int | None = None
        languages, table = self._build(list(profiles))
        self._languages = tuple(languages)
        self._table: Mapping[str, tuple[float, ...]] = MappingProxyType(table)

    @staticmethod
    def _build(
        profiles: list[LanguageProfile],
    ) -> tuple[list[str], dict[str, tuple[float, ...]]]:
        size = len(profiles)
        languages: list[str] = []
        vectors: dict[str, list[float]] = {}

        for index, profile in enumerate(profiles):
            lang = profile.name
            if not isinstance(lang, str) or not lang:
                raise ProfileFormatError(f"profile #{index} has no language name")
            if lang in languages:
                raise DuplicateLanguageError(f"duplicate language profile: '{lang}'")
            languages.append(lang)

            for gram, count in profile.freq.items():
                length = len(gram)
                if length < 1 or length > N_GRAM:
                    continue
                total = profile.total(length)
                if total <= 0:
                    continue
                vector = vectors.get(gram)
                if vector is None:
                    vector = vectors[gram] = [0.0] * size
                vector[index] = count / total

        return languages, {gram: tuple(vec) for gram, vec in vectors.items()}

    # ─── Sources ─────────────────────────────────────────────────

    @classmethod
    def from_profiles(cls, profiles: Iterable[LanguageProfile], **kwargs: Any) -> ProfileStore:
        """Build a store from in-memory profiles."""
        return cls(profiles, **kwargs)

    @classmethod
    def from_directory(cls, directory: str | Path, **kwargs: Any) -> ProfileStore:
        """Load every profile record in a directory.

        Hidden entries and anything that is not a regular file are skipped.
        Files are read in name order, which fixes the language order.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ProfileLoadError(f"profile directory not found: {directory}")

        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise ProfileLoadError(f"can't list profile directory '{directory}': {e}") from e

        profiles = []
        for path in entries:
            if path.name.startswith(".") or not path.is_file():
                continue
            profiles.append(LanguageProfile.load(path))

        store = cls(profiles, **kwargs)
        logger.info(f"Loaded {len(store.languages)} language profiles from {directory}")
        return store

    @classmethod
    def from_resources(
        cls, *langs: str, package: str = DEFAULT_BUNDLE, **kwargs: Any
    ) -> ProfileStore:
        """Load the named profiles bundled as ``profiles/<lang>`` in a package."""
        try:
            bundle = resources.files(package) / "profiles"
        except ModuleNotFoundError as e:
            raise ProfileLoadError(f"profile bundle not found: {package}") from e

        profiles = []
        for lang in langs:
            source = f"profiles/{lang}"
            try:
                stream = bundle.joinpath(lang).open("rb")
            except OSError as e:
                raise ProfileLoadError(f"can't open '{source}': {e}") from e
            with stream:
                profiles.append(LanguageProfile.read(stream, source=source))

        store = cls(profiles, **kwargs)
        logger.info(f"Loaded {len(store.languages)} bundled profiles from {package}")
        return store

    # ─── Access ──────────────────────────────────────────────────

    @property
    def languages(self) -> tuple[str, ...]:
        """Languages in load order."""
        return self._languages

    @property
    def probability_table(self) -> Mapping[str, tuple[float, ...]]:
        """Read-only mapping of gram to probability vector."""
        return self._table

    def __len__(self) -> int:
        return len(self._languages)

    def __contains__(self, gram: object) -> bool:
        return gram in self._table

    def set_seed(self, seed: int | None) -> None:
        """Seed every detector created from now on."""
        self.seed = seed

    def new_detector(self, **options: Any) -> Detector:
        """Create a detector bound to this store."""
        if not self._languages:
            raise NoProfilesLoadedError("need to load profiles before detecting")
        options.setdefault("seed", self.seed)
        return Detector(self, **options)
