from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, List, Tuple

from ..systems import kernel
from ..systems.metrics import compute_metrics
from ..types.metrics import MetricsRecord
from ..types.snapshot import Snapshot, SnapshotMetadata
from .config import SimulationConfig
from .errors import ConfigurationError
from .grid import FieldView, GridState, initialize_state
from .offsets import Offset, build_disk_offsets
from .parameters import ParameterSet

logger = logging.getLogger(__name__)


class Simulation:
    """Drives the step kernel for one grid.

    Owns the two state buffers (swapped after every step), the offset lists
    for the current radii and a bounded history of metrics records taken
    every ``metrics_interval`` steps.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._params = config.parameters
        self._seed = config.seed
        self._density = config.initial_density
        self._water_radius = -1
        self._seed_radius = -1
        self._water_offsets: Tuple[Offset, ...] = ()
        self._seed_offsets: Tuple[Offset, ...] = ()
        self._refresh_offsets()
        self._current = initialize_state(config.grid_size, self._seed, self._density, config.init)
        self._next = GridState.empty(config.grid_size)
        self._history: Deque[MetricsRecord] = deque(maxlen=config.history_capacity)
        self._latest: MetricsRecord | None = None
        self._tick = 0

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def parameters(self) -> ParameterSet:
        return self._params

    @property
    def state(self) -> GridState:
        """The current buffer. It is reused two steps later; copy it to keep it."""
        return self._current

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def history(self) -> List[MetricsRecord]:
        return list(self._history)

    @property
    def latest_metrics(self) -> MetricsRecord | None:
        return self._latest

    @property
    def water_offsets(self) -> Tuple[Offset, ...]:
        return self._water_offsets

    @property
    def seed_offsets(self) -> Tuple[Offset, ...]:
        return self._seed_offsets

    def set_parameters(self, params: ParameterSet) -> None:
        if not isinstance(params, ParameterSet):
            raise ConfigurationError(f"expected a ParameterSet, got {type(params).__name__}")
        self._params = params
        self._refresh_offsets()

    def _refresh_offsets(self) -> None:
        if self._params.water_radius != self._water_radius:
            self._water_radius = self._params.water_radius
            self._water_offsets = build_disk_offsets(self._water_radius)
            logger.debug("water kernel radius=%d (%d offsets)", self._water_radius, len(self._water_offsets))
        if self._params.seed_radius != self._seed_radius:
            self._seed_radius = self._params.seed_radius
            self._seed_offsets = build_disk_offsets(self._seed_radius)
            logger.debug("seed kernel radius=%d (%d offsets)", self._seed_radius, len(self._seed_offsets))

    def step(self) -> MetricsRecord | None:
        kernel.step(self._current, self._params, self._water_offsets, self._seed_offsets, out=self._next)
        self._current, self._next = self._next, self._current
        self._tick += 1
        if self._tick % self._config.metrics_interval != 0:
            return None
        record = self.metrics()
        self._history.append(record)
        self._latest = record
        return record

    def advance_frame(self) -> MetricsRecord | None:
        latest = None
        for _ in range(self._config.steps_per_frame):
            record = self.step()
            if record is not None:
                latest = record
        return latest

    def run(self, steps: int, should_stop: Callable[[], bool] | None = None) -> int:
        """Step up to ``steps`` times; checks ``should_stop`` before each step."""
        done = 0
        while done < steps:
            if should_stop is not None and should_stop():
                break
            self.step()
            done += 1
        return done

    def metrics(self) -> MetricsRecord:
        return compute_metrics(self._current, self._tick, self._config.cluster_threshold)

    def field(self, view: FieldView | str = FieldView.VEGETATION):
        return self._current.field(view)

    def reset(self, seed: int | None = None, density: float | None = None) -> None:
        seed = self._seed if seed is None else seed
        density = self._density if density is None else density
        self._current = initialize_state(self._config.grid_size, seed, density, self._config.init)
        self._seed = seed
        self._density = density
        self._history.clear()
        self._latest = None
        self._tick = 0
        logger.info("reset grid=%d seed=%d density=%.3f", self._config.grid_size, seed, density)

    def snapshot(self, view: FieldView | str = FieldView.VEGETATION) -> Snapshot:
        view = FieldView(view)
        return Snapshot(
            tick=self._tick,
            metrics=self.metrics(),
            view=view.value,
            field=self._current.field(view).tolist(),
            metadata=SnapshotMetadata(
                grid_size=self._config.grid_size,
                seed=self._seed,
                preset=self._config.preset,
                config_version=self._config.config_version,
                water_max=self._params.water_max,
                parameters=self._params.to_dict(),
            ),
        )
