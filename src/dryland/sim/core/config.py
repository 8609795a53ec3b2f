from __future__ import annotations

from dataclasses import dataclass, field, fields
from numbers import Integral, Real
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .parameters import InitConfig, ParameterSet
from .presets import DEFAULT_PRESET, get_preset


@dataclass
class SimulationConfig:
    grid_size: int = 60
    seed: int = 42
    initial_density: float = 0.28
    steps_per_frame: int = 3
    metrics_interval: int = 5
    history_capacity: int = 300
    frame_interval: float = 1.0 / 30.0
    cluster_threshold: float = 0.15
    config_version: str = "v1"
    preset: str = DEFAULT_PRESET
    parameters: ParameterSet = field(default_factory=lambda: get_preset(DEFAULT_PRESET))
    init: InitConfig = field(default_factory=InitConfig)

    def __post_init__(self) -> None:
        for name in ("grid_size", "steps_per_frame", "metrics_interval", "history_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, Integral):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")
        if not isinstance(self.initial_density, Real) or not 0.0 <= self.initial_density <= 1.0:
            raise ConfigurationError(f"initial_density must lie in [0, 1], got {self.initial_density!r}")
        if not isinstance(self.frame_interval, Real) or self.frame_interval <= 0.0:
            raise ConfigurationError(f"frame_interval must be > 0, got {self.frame_interval!r}")
        if not isinstance(self.cluster_threshold, Real) or not 0.0 <= self.cluster_threshold <= 1.0:
            raise ConfigurationError(f"cluster_threshold must lie in [0, 1], got {self.cluster_threshold!r}")
        if not isinstance(self.parameters, ParameterSet):
            raise ConfigurationError("parameters must be a ParameterSet")
        if not isinstance(self.init, InitConfig):
            raise ConfigurationError("init must be an InitConfig")

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data or {})


def load_config(raw: Mapping[str, Any]) -> SimulationConfig:
    """Build a config from a plain mapping (the parsed YAML document).

    ``preset`` picks the base parameter set and ``parameters`` overrides single
    fields of it. Without a preset, ``parameters`` must be complete.
    """
    values = dict(raw)
    preset = values.pop("preset", None)
    params_raw = values.pop("parameters", None) or {}
    init_raw = values.pop("init", None) or {}

    if preset is None and not params_raw:
        preset = DEFAULT_PRESET
    base = get_preset(preset) if preset is not None else None
    parameters = ParameterSet.from_mapping(params_raw, base=base)

    init_names = {f.name for f in fields(InitConfig)}
    unknown_init = sorted(set(init_raw) - init_names)
    if unknown_init:
        raise ConfigurationError(f"Unknown init option(s): {', '.join(unknown_init)}")
    init = InitConfig(**init_raw)

    sim_names = {f.name for f in fields(SimulationConfig)} - {"preset", "parameters", "init"}
    unknown = sorted(set(values) - sim_names)
    if unknown:
        raise ConfigurationError(f"Unknown config option(s): {', '.join(unknown)}")

    return SimulationConfig(preset=preset or "custom", parameters=parameters, init=init, **values)
