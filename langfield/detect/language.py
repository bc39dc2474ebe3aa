"""Detection result records."""

from __future__ import annotations

from dataclasses import dataclass, field

from langfield.detect.errors import ErrorKind

UNKNOWN_LANG = "unknown"


@dataclass(frozen=True)
class Language:
    """A candidate language and its probability."""

    lang: str
    prob: float

    def __str__(self) -> str:
        return f"{self.lang}:{self.prob}"


@dataclass
class DetectionResult:
    """Outcome of one classification request.

    Failures are carried as values: ``error`` holds the kind and ``language``
    falls back to ``"unknown"``.
    """

    success: bool = True
    language: str = UNKNOWN_LANG
    probabilities: list[Language] = field(default_factory=list)
    error: ErrorKind | None = None
    message: str = ""

    @property
    def is_unknown(self) -> bool:
        """True when no candidate cleared the probability threshold."""
        return self.language == UNKNOWN_LANG
