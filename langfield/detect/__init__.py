"""Language detection core: profiles, n-gram features and the detector."""

from langfield.detect.detector import Detector, DetectorState, detect_language
from langfield.detect.errors import (
    DetectorStateError,
    DuplicateLanguageError,
    ErrorKind,
    InvalidPriorError,
    LangDetectError,
    NoFeaturesError,
    NoProfilesLoadedError,
    ProfileFormatError,
    ProfileLoadError,
)
from langfield.detect.language import UNKNOWN_LANG, DetectionResult, Language
from langfield.detect.ngram import (
    DEFAULT_FOLDING,
    FoldingTable,
    NGramWindow,
    Normalizer,
    iter_grams,
    load_cjk_map,
)
from langfield.detect.profile import LanguageProfile
from langfield.detect.store import ProfileStore

__all__ = [
    "DEFAULT_FOLDING",
    "UNKNOWN_LANG",
    "DetectionResult",
    "Detector",
    "DetectorState",
    "DetectorStateError",
    "DuplicateLanguageError",
    "ErrorKind",
    "FoldingTable",
    "InvalidPriorError",
    "LangDetectError",
    "Language",
    "LanguageProfile",
    "NGramWindow",
    "NoFeaturesError",
    "NoProfilesLoadedError",
    "Normalizer",
    "ProfileFormatError",
    "ProfileLoadError",
    "ProfileStore",
    "detect_language",
    "iter_grams",
    "load_cjk_map",
]
