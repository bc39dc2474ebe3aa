"""Random number sources used by the randomized trials."""

from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    """The two draws a detector needs."""

    def gauss(self, mu: float, sigma: float) -> float:
        ...

    def randrange(self, stop: int) -> int:
        ...


def default_random_source(seed: int | None = None) -> RandomSource:
    """Return a ``random.Random`` instance, seeded when ``seed`` is given."""
    return random.Random(seed)
