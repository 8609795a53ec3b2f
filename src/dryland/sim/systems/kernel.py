from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from ..core.errors import ConfigurationError, NumericalInstabilityError
from ..core.grid import GridState
from ..core.parameters import GrowthModel, ParameterSet

Offsets = Sequence[Tuple[int, int]]


def neighbourhood_mean(fields: np.ndarray, offsets: Offsets) -> np.ndarray:
    """Mean over ``offsets`` for every cell of one or more stacked fields.

    ``fields`` has shape (k, N, N); the result at ``[:, y, x]`` averages
    ``fields[:, (y + dy) % N, (x + dx) % N]``. Summation runs in float64 in the
    order of ``offsets``.
    """
    if len(offsets) == 0:
        raise ConfigurationError("offset list must contain at least the centre cell")
    total = np.zeros(fields.shape, dtype=np.float64)
    for dx, dy in offsets:
        total += np.roll(fields, (-dy, -dx), axis=(1, 2))
    return total / len(offsets)


def _rates(params: ParameterSet, v: np.ndarray, w: np.ndarray, sigma: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    if params.model is GrowthModel.LINEAR:
        uptake = params.uptake_rate * v * w * (1.0 + sigma)
        growth = params.alpha * w * sigma * v / (1.0 + params.beta * w)
    else:
        v_sq = v * v
        uptake = params.uptake_rate * v_sq * w
        growth = params.alpha * v_sq * w * (1.0 + 0.5 * sigma)
    return uptake, growth


def _store(name: str, values: np.ndarray, upper: float, target: np.ndarray) -> None:
    if not np.isfinite(values).all():
        raise NumericalInstabilityError(f"non-finite {name} values after update")
    np.clip(values, 0.0, upper, out=values)
    np.copyto(target, values, casting="same_kind")


def step(
    state: GridState,
    params: ParameterSet,
    water_offsets: Offsets,
    seed_offsets: Offsets,
    out: GridState | None = None,
) -> GridState:
    """Advance the grid by one explicit Euler step.

    Every new value is computed from the old state only; ``state`` is left
    untouched. Results go into ``out`` when given (it must be a different
    buffer of the same size), otherwise into a fresh state.
    """
    if out is not None:
        pairs = ((out.v, state.v), (out.w, state.w), (out.sigma, state.sigma))
        if any(np.shares_memory(new, old) for new, old in pairs):
            raise ValueError("out must not share buffers with the current state")
        if out.size != state.size:
            raise ValueError(f"out has size {out.size}, state has size {state.size}")
    target = out if out is not None else GridState.empty(state.size)

    v = state.v.astype(np.float64)
    w = state.w.astype(np.float64)
    sigma = state.sigma.astype(np.float64)

    w_avg, v_long = neighbourhood_mean(np.stack((w, v)), water_offsets)
    v_seed = neighbourhood_mean(v[np.newaxis], seed_offsets)[0]

    uptake, growth = _rates(params, v, w, sigma)
    colonization = params.seed_dispersal * v_seed * (1.0 - v)
    if params.water_gated_seeding:
        colonization = colonization * w

    new_w = (
        w
        + params.rainfall
        - params.evaporation * w
        - uptake
        - params.long_competition * v_long * w
        + params.water_diffusion * (w_avg - w)
    )
    new_v = v + growth - params.mortality * v + colonization
    new_sigma = sigma + params.soil_recovery * v * (1.0 - sigma) - params.soil_degradation * (1.0 - v) * sigma

    _store("water", new_w, params.water_max, target.w)
    _store("vegetation", new_v, 1.0, target.v)
    _store("soil", new_sigma, 1.0, target.sigma)
    return target
