from __future__ import annotations

_MULTIPLIER = 1664525
_INCREMENT = 1013904223
_MODULUS = 1 << 32


class LcgRng:
    """Linear-congruential stream with the Numerical Recipes constants.

    Pure integer arithmetic: a seed gives the same sequence on every platform.
    """

    def __init__(self, seed: int):
        self._seed = int(seed) % _MODULUS
        self._state = self._seed

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._state = self._seed

    def next_u32(self) -> int:
        self._state = (_MULTIPLIER * self._state + _INCREMENT) % _MODULUS
        return self._state

    def next_float(self) -> float:
        return self.next_u32() / _MODULUS

    def next_range(self, low: float, high: float) -> float:
        return low + (high - low) * self.next_float()
