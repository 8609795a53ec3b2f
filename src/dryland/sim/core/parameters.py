from __future__ import annotations

import math
from dataclasses import MISSING, asdict, dataclass, fields
from enum import Enum
from numbers import Integral, Real
from typing import Any, Dict, Mapping, Tuple

from .errors import ConfigurationError


class GrowthModel(str, Enum):
    LINEAR = "linear"
    AUTOCATALYTIC = "autocatalytic"


_UNIT_INTERVAL_FIELDS = (
    "evaporation",
    "mortality",
    "seed_dispersal",
    "soil_recovery",
    "soil_degradation",
    "water_diffusion",
)
_NON_NEGATIVE_FIELDS = ("rainfall", "alpha", "beta", "long_competition", "uptake_rate")
_RADIUS_FIELDS = ("water_radius", "seed_radius")


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    result = float(value)
    if not math.isfinite(result):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return result


def _as_radius(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {value}")
    return int(value)


@dataclass(frozen=True)
class ParameterSet:
    """Model constants read by the step kernel.

    Ranges: ``rainfall``, ``alpha``, ``beta``, ``long_competition`` and
    ``uptake_rate`` are >= 0; ``evaporation``, ``mortality``,
    ``seed_dispersal``, the two soil rates and ``water_diffusion`` lie in
    [0, 1]; radii are non-negative integers; ``water_max`` is > 0.
    ``uptake_rate`` scales plant water use (1.0 is the plain model).
    """

    rainfall: float
    evaporation: float
    alpha: float
    beta: float
    mortality: float
    seed_dispersal: float
    soil_recovery: float
    soil_degradation: float
    water_radius: int
    seed_radius: int
    water_diffusion: float = 0.5
    long_competition: float = 0.0
    uptake_rate: float = 1.0
    water_max: float = 1.0
    model: GrowthModel = GrowthModel.LINEAR
    water_gated_seeding: bool = True

    def __post_init__(self) -> None:
        for name in _UNIT_INTERVAL_FIELDS:
            value = _as_float(name, getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
            object.__setattr__(self, name, value)
        for name in _NON_NEGATIVE_FIELDS:
            value = _as_float(name, getattr(self, name))
            if value < 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")
            object.__setattr__(self, name, value)
        for name in _RADIUS_FIELDS:
            object.__setattr__(self, name, _as_radius(name, getattr(self, name)))

        water_max = _as_float("water_max", self.water_max)
        if water_max <= 0.0:
            raise ConfigurationError(f"water_max must be > 0, got {water_max}")
        object.__setattr__(self, "water_max", water_max)

        try:
            object.__setattr__(self, "model", GrowthModel(self.model))
        except ValueError:
            raise ConfigurationError(f"Unknown growth model: {self.model!r}") from None

        if not isinstance(self.water_gated_seeding, bool):
            raise ConfigurationError(f"water_gated_seeding must be a bool, got {self.water_gated_seeding!r}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], base: "ParameterSet | None" = None) -> "ParameterSet":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(f"Unknown parameter(s): {', '.join(unknown)}")

        values: Dict[str, Any] = asdict(base) if base is not None else {}
        values.update(raw)
        required = {f.name for f in fields(cls) if f.default is MISSING and f.default_factory is MISSING}
        missing = sorted(name for name in required if name not in values)
        if missing:
            raise ConfigurationError(f"Missing required parameter(s): {', '.join(missing)}")
        return cls(**values)

    def with_changes(self, **changes: Any) -> "ParameterSet":
        return ParameterSet.from_mapping(changes, base=self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["model"] = self.model.value
        return data


def _pair(name: str, value: Any) -> Tuple[float, float]:
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        raise ConfigurationError(f"{name} must be a (low, high) pair, got {value!r}")
    low = _as_float(name, value[0])
    high = _as_float(name, value[1])
    if not 0.0 <= low <= high <= 1.0:
        raise ConfigurationError(f"{name} must satisfy 0 <= low <= high <= 1, got {value!r}")
    return (low, high)


@dataclass(frozen=True)
class InitConfig:
    """Value ranges for the state initializer.

    Vegetated cells start soil-rich and slightly water-depleted; swap the
    ranges to model the opposite physical variant.
    """

    vegetation_range: Tuple[float, float] = (0.2, 0.8)
    vegetated_water_range: Tuple[float, float] = (0.3, 0.5)
    bare_water_range: Tuple[float, float] = (0.4, 0.6)
    vegetated_soil_range: Tuple[float, float] = (0.5, 0.7)
    bare_soil_range: Tuple[float, float] = (0.2, 0.4)

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _pair(f.name, getattr(self, f.name)))
