from __future__ import annotations

import math
import random
from collections.abc import Mapping
from typing import Generic, TypeVar

from .models import WriterStyle

T = TypeVar("T")

DEFAULT_STYLE_WEIGHTS: dict[WriterStyle, float] = {
    WriterStyle.SHORT: 0.4,
    WriterStyle.CASUAL: 0.4,
    WriterStyle.DETAILED: 0.2,
}


class DiscreteSampler(Generic[T]):
    """Sample from a fixed probability table with one uniform draw.

    Outcomes occupy consecutive bands of [0, 1) in table order, so with the
    default style table ``[0, 0.4)`` is short, ``[0.4, 0.8)`` casual and
    ``[0.8, 1)`` detailed.
    """

    def __init__(self, table: Mapping[T, float]) -> None:
        if not table:
            raise ValueError("Probability table is empty")
        if any(weight < 0 for weight in table.values()):
            raise ValueError("Probabilities must be non-negative")
        total = math.fsum(table.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Probabilities must sum to 1 (got {total})")
        self._outcomes = list(table.keys())
        self._bounds: list[float] = []
        running = 0.0
        for weight in table.values():
            running += weight
            self._bounds.append(running)

    @property
    def outcomes(self) -> list[T]:
        return list(self._outcomes)

    def pick(self, draw: float) -> T:
        if not 0.0 <= draw < 1.0:
            raise ValueError(f"Draw must be in [0, 1): {draw}")
        for outcome, bound in zip(self._outcomes, self._bounds):
            if draw < bound:
                return outcome
        # float rounding can leave the last bound a hair under 1.0
        return self._outcomes[-1]

    def sample(self, rng: random.Random | None = None) -> T:
        source = rng or random
        return self.pick(source.random())


STYLE_SAMPLER: DiscreteSampler[WriterStyle] = DiscreteSampler(DEFAULT_STYLE_WEIGHTS)


def select_style(rng: random.Random | None = None) -> WriterStyle:
    """Draw a writer style for one request."""
    return STYLE_SAMPLER.sample(rng)
