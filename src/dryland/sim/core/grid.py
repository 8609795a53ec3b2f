from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from numbers import Integral, Real

import numpy as np

from ..utils.rng import LcgRng
from .errors import ConfigurationError
from .parameters import InitConfig

FIELD_DTYPE = np.float32


class FieldView(str, Enum):
    VEGETATION = "vegetation"
    WATER = "water"
    SOIL = "soil"


@dataclass(slots=True)
class GridState:
    """Vegetation, water and soil quality on an N x N torus.

    Arrays are indexed ``[y, x]`` and stored as float32.
    """

    v: np.ndarray
    w: np.ndarray
    sigma: np.ndarray

    def __post_init__(self) -> None:
        self.v = np.ascontiguousarray(self.v, dtype=FIELD_DTYPE)
        self.w = np.ascontiguousarray(self.w, dtype=FIELD_DTYPE)
        self.sigma = np.ascontiguousarray(self.sigma, dtype=FIELD_DTYPE)
        shape = self.v.shape
        if len(shape) != 2 or shape[0] != shape[1] or shape[0] == 0:
            raise ConfigurationError(f"fields must be non-empty square 2-D arrays, got shape {shape}")
        if self.w.shape != shape or self.sigma.shape != shape:
            raise ConfigurationError(
                f"field shapes differ: v={shape}, w={self.w.shape}, sigma={self.sigma.shape}"
            )

    @classmethod
    def empty(cls, size: int) -> "GridState":
        _check_size(size)
        return cls(
            v=np.zeros((size, size), dtype=FIELD_DTYPE),
            w=np.zeros((size, size), dtype=FIELD_DTYPE),
            sigma=np.zeros((size, size), dtype=FIELD_DTYPE),
        )

    @property
    def size(self) -> int:
        return self.v.shape[0]

    def copy(self) -> "GridState":
        return GridState(v=self.v.copy(), w=self.w.copy(), sigma=self.sigma.copy())

    def translated(self, dx: int, dy: int) -> "GridState":
        """Return a copy whose content is moved by (dx, dy) with wraparound."""
        shift = (int(dy), int(dx))
        return GridState(
            v=np.roll(self.v, shift, axis=(0, 1)),
            w=np.roll(self.w, shift, axis=(0, 1)),
            sigma=np.roll(self.sigma, shift, axis=(0, 1)),
        )

    def field(self, view: FieldView | str) -> np.ndarray:
        view = FieldView(view)
        if view is FieldView.VEGETATION:
            return self.v
        if view is FieldView.WATER:
            return self.w
        return self.sigma


def _check_size(size: int) -> None:
    if isinstance(size, bool) or not isinstance(size, Integral) or size <= 0:
        raise ConfigurationError(f"grid size must be a positive integer, got {size!r}")


def initialize_state(size: int, seed: int, density: float, init: InitConfig | None = None) -> GridState:
    """Seed a grid from the LCG stream.

    Cells are filled in row-major order and every cell consumes exactly four
    draws (presence, vegetation, water, soil), so the stream position of a cell
    does not depend on the density.
    """
    _check_size(size)
    if isinstance(seed, bool) or not isinstance(seed, Integral):
        raise ConfigurationError(f"seed must be an integer, got {seed!r}")
    if isinstance(density, bool) or not isinstance(density, Real) or not 0.0 <= density <= 1.0:
        raise ConfigurationError(f"density must lie in [0, 1], got {density!r}")
    init = init or InitConfig()
    rng = LcgRng(seed)

    state = GridState.empty(size)
    v, w, sigma = state.v, state.w, state.sigma
    for y in range(size):
        for x in range(size):
            present = rng.next_float() < density
            amount = rng.next_range(*init.vegetation_range)
            if present:
                v[y, x] = amount
                w[y, x] = rng.next_range(*init.vegetated_water_range)
                sigma[y, x] = rng.next_range(*init.vegetated_soil_range)
            else:
                w[y, x] = rng.next_range(*init.bare_water_range)
                sigma[y, x] = rng.next_range(*init.bare_soil_range)
    return state
