from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

import numpy as np
from numpy.typing import NDArray

T = TypeVar("T")

_MASK_31 = 0x7FFFFFFF


def seed_from_key(key: str) -> int:
    """Fold a string key into a non-zero 31-bit seed."""
    seed = 0
    for ch in key:
        seed = (seed * 31 + ord(ch)) & _MASK_31
    return seed or 1


class SeededRng:
    """Deterministic linear congruential stream keyed by asset identity.

    Composition decisions (steps, rests, picks) come from the LCG stream.
    Bulk per-sample randomness (noise) comes from a numpy generator seeded
    with the same 31-bit seed, so a key fully determines the rendered audio.
    """

    def __init__(self, key: str) -> None:
        self.seed = seed_from_key(key)
        self._state = self.seed
        self._noise_rng: np.random.Generator | None = None

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """Next float in [0, 1)."""
        self._state = (self._state * 1103515245 + 12345) & _MASK_31
        return (self._state >> 16) / 32768

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        return low + int(self.next() * (high - low + 1))

    def pick(self, items: Sequence[T]) -> T:
        return items[int(self.next() * len(items))]

    @property
    def numpy(self) -> np.random.Generator:
        if self._noise_rng is None:
            self._noise_rng = np.random.default_rng(self.seed)
        return self._noise_rng

    def noise(self, size: int) -> NDArray[np.float64]:
        """White noise in [-1, 1)."""
        return self.numpy.uniform(-1.0, 1.0, size)

    def uniforms(self, size: int) -> NDArray[np.float64]:
        return self.numpy.random(size)
