"""Live pygame viewer for the dryland simulation.

Controls:
    SPACE      Pause / resume
    S          Single step (while paused)
    R          Reset to the configured seed
    1 / 2 / 3  Show vegetation / water / soil quality
    UP / DOWN  Raise / lower rainfall
    Q / ESC    Quit
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Sequence, Tuple

import numpy as np
import pygame

from ..sim.core.config import SimulationConfig
from ..sim.core.grid import FieldView
from ..sim.core.presets import PRESETS
from ..sim.core.simulation import Simulation
from ..sim.types.metrics import MetricsRecord
from .headless import build_config

logger = logging.getLogger(__name__)

WINDOW_SCALE = 6
PANEL_HEIGHT = 64
FPS = 30
RAINFALL_STEP = 0.01
BG_COLOR = (8, 8, 12)
TEXT_COLOR = (220, 220, 220)

_VIEW_KEYS = {pygame.K_1: FieldView.VEGETATION, pygame.K_2: FieldView.WATER, pygame.K_3: FieldView.SOIL}


def make_colormap(keypoints: Sequence[Tuple[float, int, int, int]]) -> np.ndarray:
    """256-entry RGB table interpolated between (position, r, g, b) keypoints."""
    positions = [point[0] for point in keypoints]
    t = np.linspace(0.0, 1.0, 256)
    channels = [np.interp(t, positions, [point[c] for point in keypoints]) for c in (1, 2, 3)]
    return np.stack(channels, axis=1).astype(np.uint8)


COLORMAPS: Dict[FieldView, np.ndarray] = {
    FieldView.VEGETATION: make_colormap([(0.0, 40, 28, 16), (0.15, 110, 90, 40), (0.5, 70, 150, 40), (1.0, 20, 230, 60)]),
    FieldView.WATER: make_colormap([(0.0, 10, 10, 20), (0.5, 30, 90, 190), (1.0, 170, 220, 255)]),
    FieldView.SOIL: make_colormap([(0.0, 20, 14, 8), (0.5, 120, 80, 35), (1.0, 230, 180, 110)]),
}


def colorize(field: np.ndarray, view: FieldView | str, ceiling: float = 1.0) -> np.ndarray:
    """Map a raw field to an (N, N, 3) uint8 image through the view's colormap."""
    normalized = np.clip(field / max(ceiling, 1e-8), 0.0, 1.0)
    indices = (normalized * 255).astype(np.uint8)
    return COLORMAPS[FieldView(view)][indices]


def field_surface(rgb: np.ndarray, scale: int) -> pygame.Surface:
    h, w = rgb.shape[:2]
    # surfarray is indexed [x][y], numpy images are [y][x]
    surface = pygame.surfarray.make_surface(rgb.transpose(1, 0, 2))
    return pygame.transform.scale(surface, (w * scale, h * scale))


def _status_lines(simulation: Simulation, view: FieldView, running: bool, record: MetricsRecord | None) -> list[str]:
    params = simulation.parameters
    state = "running" if running else "paused"
    lines = [f"tick {simulation.tick}  {state}  view {view.value}  rainfall {params.rainfall:.3f}"]
    if record is not None:
        lines.append(
            f"mean v {record.v_mean:.3f}  var {record.v_variance:.5f}  autocorr {record.spatial_autocorr:.3f}  "
            f"clusters {record.cluster_count} (max {record.max_cluster_size}, mean {record.mean_cluster_size:.1f})"
        )
    return lines


def run_viewer(config: SimulationConfig, scale: int = WINDOW_SCALE) -> None:
    simulation = Simulation(config)
    size = config.grid_size * scale

    pygame.init()
    try:
        screen = pygame.display.set_mode((size, size + PANEL_HEIGHT))
        pygame.display.set_caption("Dryland vegetation")
        font = pygame.font.SysFont("monospace", 14)
        clock = pygame.time.Clock()

        view = FieldView.VEGETATION
        running = True
        record = simulation.metrics()
        done = False
        while not done:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    done = True
                elif event.type == pygame.KEYDOWN:
                    if event.key in (pygame.K_q, pygame.K_ESCAPE):
                        done = True
                    elif event.key == pygame.K_SPACE:
                        running = not running
                    elif event.key == pygame.K_s and not running:
                        record = simulation.step() or record
                    elif event.key == pygame.K_r:
                        simulation.reset()
                        record = simulation.metrics()
                    elif event.key in _VIEW_KEYS:
                        view = _VIEW_KEYS[event.key]
                    elif event.key in (pygame.K_UP, pygame.K_DOWN):
                        delta = RAINFALL_STEP if event.key == pygame.K_UP else -RAINFALL_STEP
                        rainfall = max(0.0, simulation.parameters.rainfall + delta)
                        simulation.set_parameters(simulation.parameters.with_changes(rainfall=rainfall))

            if running:
                record = simulation.advance_frame() or record

            ceiling = simulation.parameters.water_max if view is FieldView.WATER else 1.0
            screen.fill(BG_COLOR)
            screen.blit(field_surface(colorize(simulation.field(view), view, ceiling), scale), (0, 0))
            for row, line in enumerate(_status_lines(simulation, view, running, record)):
                screen.blit(font.render(line, True, TEXT_COLOR), (8, size + 8 + row * 20))
            pygame.display.flip()
            clock.tick(FPS)
    finally:
        pygame.quit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Live dryland vegetation viewer")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--preset", choices=sorted(PRESETS), default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--scale", type=int, default=WINDOW_SCALE, help="pixels per grid cell")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_viewer(build_config(args.seed, args.preset, args.config), scale=max(1, args.scale))


if __name__ == "__main__":
    main()
