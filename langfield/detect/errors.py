"""Error taxonomy for language detection.

Every failure raised by the detection core is a ``LangDetectError`` tagged with
an ``ErrorKind``. Load-time kinds abort construction of the whole profile set;
``NO_FEATURES`` is an expected per-request outcome.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of detection failures."""

    PROFILE_LOAD = "profile_load"
    PROFILE_FORMAT = "profile_format"
    DUPLICATE_LANGUAGE = "duplicate_language"
    NO_PROFILES_LOADED = "no_profiles_loaded"
    INVALID_PRIOR = "invalid_prior"
    NO_FEATURES = "no_features"
    DETECTOR_STATE = "detector_state"


class LangDetectError(Exception):
    """Base class for all language detection errors."""

    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def is_load_error(self) -> bool:
        """True for errors that invalidate a whole profile set."""
        return self.kind in (
            ErrorKind.PROFILE_LOAD,
            ErrorKind.PROFILE_FORMAT,
            ErrorKind.DUPLICATE_LANGUAGE,
        )


class ProfileLoadError(LangDetectError):
    """A profile source could not be read."""

    kind = ErrorKind.PROFILE_LOAD


class ProfileFormatError(LangDetectError):
    """A profile source was read but its content is malformed."""

    kind = ErrorKind.PROFILE_FORMAT


class DuplicateLanguageError(LangDetectError):
    """Two profiles in one set share a language name."""

    kind = ErrorKind.DUPLICATE_LANGUAGE


class NoProfilesLoadedError(LangDetectError):
    """A detector was requested from an empty profile store."""

    kind = ErrorKind.NO_PROFILES_LOADED


class InvalidPriorError(LangDetectError):
    """Prior weights are negative or all zero."""

    kind = ErrorKind.INVALID_PRIOR


class NoFeaturesError(LangDetectError):
    """The text yields no recognized n-gram after cleaning."""

    kind = ErrorKind.NO_FEATURES


class DetectorStateError(LangDetectError):
    """Text was appended to a detector that already classified its buffer."""

    kind = ErrorKind.DETECTOR_STATE
