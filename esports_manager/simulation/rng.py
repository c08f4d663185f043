"""
Seeded RNG for deterministic, replayable simulations.

Every random decision in the simulator flows through a SeededRNG so a season
can be reproduced from its seed.
"""
from __future__ import annotations

import random
from typing import Any, Sequence


class SeededRNG:
    """Wrapper around random.Random for reproducible simulations."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def chance(self, p: float) -> bool:
        """Bernoulli draw with success probability p."""
        return self._rng.random() < p

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def gauss(self, mu: float, sigma: float) -> float:
        return self._rng.gauss(mu, sigma)

    def choice(self, seq: Sequence[Any]) -> Any:
        return self._rng.choice(seq)

    def choices(self, population, weights=None, *, cum_weights=None, k=1):
        return self._rng.choices(population, weights=weights, cum_weights=cum_weights, k=k)

    def sample(self, population: Sequence[Any], k: int) -> list[Any]:
        return self._rng.sample(population, k)

    def shuffle(self, items: list[Any]) -> None:
        self._rng.shuffle(items)

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def spawn_seed(self) -> int:
        """Draw a seed for an independent child stream (e.g. one match)."""
        return self._rng.randrange(2**31)

    def getstate(self):
        return self._rng.getstate()

    def setstate(self, state) -> None:
        self._rng.setstate(state)

    def export_state(self) -> list:
        """JSON-friendly form of getstate()."""
        version, internal, gauss_next = self._rng.getstate()
        return [version, list(internal), gauss_next]

    def import_state(self, state: list) -> None:
        version, internal, gauss_next = state
        self._rng.setstate((version, tuple(internal), gauss_next))
