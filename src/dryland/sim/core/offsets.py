from __future__ import annotations

from numbers import Integral
from typing import Tuple

from .errors import ConfigurationError

Offset = Tuple[int, int]


def build_disk_offsets(radius: int) -> Tuple[Offset, ...]:
    """All integer offsets (dx, dy) with dx*dx + dy*dy <= radius*radius.

    The centre (0, 0) is always included, so the result is never empty and a
    neighbourhood mean never divides by zero.
    """
    if isinstance(radius, bool) or not isinstance(radius, Integral):
        raise ConfigurationError(f"radius must be an integer, got {radius!r}")
    if radius < 0:
        raise ConfigurationError(f"radius must be >= 0, got {radius}")
    r = int(radius)
    r_sq = r * r
    return tuple(
        (dx, dy)
        for dy in range(-r, r + 1)
        for dx in range(-r, r + 1)
        if dx * dx + dy * dy <= r_sq
    )
