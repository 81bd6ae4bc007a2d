from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class RNG:
    """
    Seeded source for every draw in a run: presence walk, product label,
    visitor timing and decisions. One seed replays the whole run.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._r = random.Random(seed)

    def random(self) -> float:
        return self._r.random()

    def randint(self, a: int, b: int) -> int:
        # inclusive of both bounds
        return self._r.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._r.choice(seq)

    def chance(self, p: float) -> bool:
        return p > 0 and self._r.random() < p

    def exponential(self, mean: float) -> float:
        """Exponential draw with the given mean; 0.0 when mean <= 0."""
        if mean <= 0:
            return 0.0
        return self._r.expovariate(1.0 / mean)
