import dataclasses

import numpy as np
import pytest

from dryland.sim.core.config import SimulationConfig
from dryland.sim.core.errors import ConfigurationError
from dryland.sim.core.grid import FieldView
from dryland.sim.core.presets import get_preset
from dryland.sim.core.simulation import Simulation


def _small_config(**overrides) -> SimulationConfig:
    values = dict(grid_size=16, seed=5, metrics_interval=2, history_capacity=4)
    values.update(overrides)
    return SimulationConfig(**values)


@pytest.mark.parametrize(
    ("preset", "check"),
    [
        ("dense_cover", lambda v_mean: v_mean > 0.6),
        ("near_collapse", lambda v_mean: v_mean < 0.1),
    ],
)
def test_rainfall_controls_vegetation_cover(preset, check):
    config = SimulationConfig(grid_size=60, seed=42, initial_density=0.28, preset=preset, parameters=get_preset(preset))
    simulation = Simulation(config)
    simulation.run(300)
    assert simulation.tick == 300
    assert check(simulation.metrics().v_mean)


def test_history_keeps_only_latest_records():
    simulation = Simulation(_small_config())
    simulation.run(20)
    assert [record.tick for record in simulation.history] == [14, 16, 18, 20]
    assert simulation.latest_metrics.tick == 20


def test_step_reports_metrics_every_interval():
    simulation = Simulation(_small_config(metrics_interval=3))
    results = [simulation.step() for _ in range(6)]
    assert [record is not None for record in results] == [False, False, True, False, False, True]
    assert results[2].tick == 3
    assert results[5].tick == 6


def test_advance_frame_runs_steps_per_frame():
    simulation = Simulation(_small_config(steps_per_frame=4, metrics_interval=2))
    record = simulation.advance_frame()
    assert simulation.tick == 4
    assert record is not None and record.tick == 4


def test_run_checks_stop_request_before_each_step():
    simulation = Simulation(_small_config())
    calls = []

    def should_stop() -> bool:
        calls.append(simulation.tick)
        return simulation.tick >= 3

    assert simulation.run(10, should_stop=should_stop) == 3
    assert simulation.tick == 3
    assert calls == [0, 1, 2, 3]


def test_offsets_are_rebuilt_only_when_a_radius_changes():
    simulation = Simulation(_small_config())
    water_offsets = simulation.water_offsets
    seed_offsets = simulation.seed_offsets

    simulation.set_parameters(simulation.parameters.with_changes(rainfall=0.3))
    assert simulation.water_offsets is water_offsets
    assert simulation.seed_offsets is seed_offsets

    simulation.set_parameters(simulation.parameters.with_changes(water_radius=2))
    assert simulation.water_offsets is not water_offsets
    assert len(simulation.water_offsets) == 13
    assert simulation.seed_offsets is seed_offsets


def test_set_parameters_rejects_other_types():
    simulation = Simulation(_small_config())
    with pytest.raises(ConfigurationError):
        simulation.set_parameters({"rainfall": 0.3})


def test_parameter_change_takes_effect_on_next_step():
    simulation = Simulation(_small_config())
    simulation.set_parameters(simulation.parameters.with_changes(rainfall=5.0))
    simulation.step()
    # heavy rain saturates every cell
    assert np.all(simulation.field(FieldView.WATER) == np.float32(1.0))


def test_buffers_are_swapped_between_steps():
    simulation = Simulation(_small_config())
    first = simulation.state
    simulation.step()
    second = simulation.state
    simulation.step()
    assert second is not first
    assert simulation.state is first


def test_runs_are_deterministic():
    first = Simulation(_small_config())
    second = Simulation(_small_config())
    first.run(25)
    second.run(25)
    assert first.state.v.tobytes() == second.state.v.tobytes()
    assert first.state.w.tobytes() == second.state.w.tobytes()
    assert first.history == second.history


def test_reset_restores_initial_state():
    simulation = Simulation(_small_config())
    initial = simulation.state.copy()
    simulation.run(10)
    simulation.reset()

    assert simulation.tick == 0
    assert simulation.history == []
    assert simulation.latest_metrics is None
    assert np.array_equal(simulation.state.v, initial.v)


def test_reset_with_new_seed_and_density():
    simulation = Simulation(_small_config())
    simulation.reset(seed=99, density=0.0)
    assert simulation.seed == 99
    assert simulation.metrics().v_mean == 0.0
    with pytest.raises(ConfigurationError):
        simulation.reset(density=1.5)


def test_snapshot_describes_current_view():
    config = dataclasses.replace(_small_config(), preset="autocatalytic", parameters=get_preset("autocatalytic"))
    simulation = Simulation(config)
    simulation.run(4)
    snapshot = simulation.snapshot("water")

    assert snapshot.tick == 4
    assert snapshot.view == "water"
    assert len(snapshot.field) == 16 and len(snapshot.field[0]) == 16
    assert snapshot.field[3][5] == pytest.approx(float(simulation.state.w[3, 5]))
    assert snapshot.metadata.preset == "autocatalytic"
    assert snapshot.metadata.water_max == 2.0
    assert snapshot.metadata.parameters["model"] == "autocatalytic"
    assert snapshot.metrics.tick == 4
