from __future__ import annotations

import argparse
import csv
import dataclasses
import json
import logging
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.presets import PRESETS, get_preset
from ..sim.core.simulation import Simulation
from ..sim.types.metrics import MetricsRecord

logger = logging.getLogger(__name__)

HEADER = [
    "tick",
    "v_mean",
    "w_mean",
    "sigma_mean",
    "v_variance",
    "spatial_autocorr",
    "cluster_count",
    "max_cluster_size",
    "mean_cluster_size",
]


def _format_row(record: MetricsRecord) -> list[object]:
    return [
        record.tick,
        f"{record.v_mean:.6f}",
        f"{record.w_mean:.6f}",
        f"{record.sigma_mean:.6f}",
        f"{record.v_variance:.6f}",
        f"{record.spatial_autocorr:.6f}",
        record.cluster_count,
        record.max_cluster_size,
        f"{record.mean_cluster_size:.4f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0}
    return {
        "min": float(min(values)),
        "max": float(max(values)),
        "avg": float(sum(values) / len(values)),
    }


def build_config(
    seed: Optional[int] = None,
    preset: Optional[str] = None,
    config_path: Optional[Path] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if preset is not None:
        config = dataclasses.replace(config, preset=preset, parameters=get_preset(preset))
    if seed is not None:
        config = dataclasses.replace(config, seed=seed)
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    preset: Optional[str] = None,
    config_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
) -> Simulation:
    config = build_config(seed, preset, config_path)
    simulation = Simulation(config)
    logger.info(
        "running %d steps: grid=%d seed=%d preset=%s",
        steps,
        config.grid_size,
        config.seed,
        config.preset,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(HEADER)

    try:
        for _ in range(steps):
            record = simulation.step()
            if record is not None and writer:
                writer.writerow(_format_row(record))
    finally:
        if csv_file:
            csv_file.close()

    final = simulation.metrics()
    logger.info("finished at tick %d: v_mean=%.4f clusters=%d", final.tick, final.v_mean, final.cluster_count)

    if summary_path:
        history = simulation.history
        summary = {
            "steps": steps,
            "seed": config.seed,
            "preset": config.preset,
            "grid_size": config.grid_size,
            "metrics_interval": config.metrics_interval,
            "final": dataclasses.asdict(final),
            "v_mean": _summary_stats([record.v_mean for record in history]),
            "spatial_autocorr": _summary_stats([record.spatial_autocorr for record in history]),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return simulation


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless dryland vegetation simulation")
    parser.add_argument("--steps", type=int, default=300)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics records")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        preset=args.preset,
        config_path=args.config,
        summary_path=args.summary,
    )


if __name__ == "__main__":
    main()
