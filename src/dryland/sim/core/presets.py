from __future__ import annotations

from typing import Dict

from .errors import ConfigurationError
from .parameters import GrowthModel, ParameterSet

# dense_cover and near_collapse share every constant except rainfall, so the
# pair brackets the rainfall-driven collapse of the vegetated state.
_DRYLAND_BASE = ParameterSet(
    rainfall=0.8,
    evaporation=0.2,
    alpha=4.0,
    beta=2.0,
    mortality=0.1,
    seed_dispersal=0.5,
    soil_recovery=0.06,
    soil_degradation=0.04,
    water_radius=6,
    seed_radius=1,
    water_diffusion=0.5,
    long_competition=0.2,
)

PRESETS: Dict[str, ParameterSet] = {
    "dense_cover": _DRYLAND_BASE,
    "labyrinth": _DRYLAND_BASE.with_changes(rainfall=0.15, long_competition=0.6),
    "near_collapse": _DRYLAND_BASE.with_changes(rainfall=0.002),
    # Constants of the single-page browser model; seeding is not water gated there.
    "reference": ParameterSet(
        rainfall=0.25,
        evaporation=0.45,
        alpha=4.0,
        beta=2.0,
        mortality=0.18,
        seed_dispersal=0.01,
        soil_recovery=0.06,
        soil_degradation=0.04,
        water_radius=6,
        seed_radius=1,
        water_diffusion=0.8,
        long_competition=0.6,
        water_gated_seeding=False,
    ),
    "autocatalytic": ParameterSet(
        rainfall=0.12,
        evaporation=0.1,
        alpha=1.2,
        beta=0.0,
        mortality=0.12,
        seed_dispersal=0.05,
        soil_recovery=0.02,
        soil_degradation=0.01,
        water_radius=4,
        seed_radius=1,
        water_diffusion=0.6,
        long_competition=0.1,
        water_max=2.0,
        model=GrowthModel.AUTOCATALYTIC,
    ),
}

DEFAULT_PRESET = "dense_cover"


def get_preset(name: str) -> ParameterSet:
    try:
        return PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown preset {name!r}; choose from {', '.join(sorted(PRESETS))}") from None
