from __future__ import annotations

from typing import List

import numpy as np

from ..core.grid import GridState
from ..types.metrics import MetricsRecord

VEGETATED_THRESHOLD = 0.15
_VARIANCE_EPSILON = 1e-12


def spatial_variance(field: np.ndarray) -> float:
    """Population variance (divided by the cell count, not count - 1)."""
    values = field.astype(np.float64)
    deviation = values - values.mean()
    return float(np.mean(deviation * deviation))


def spatial_autocorrelation(field: np.ndarray) -> float:
    """Lag-1 autocorrelation over the +x and +y neighbour pair of every cell.

    A cheap stand-in for Moran's I: only two unit-lag pairs per cell with
    wraparound instead of a full weight matrix, so it is biased towards the
    axis directions. Returns 0.0 for a (numerically) uniform field.
    """
    values = field.astype(np.float64)
    deviation = values - values.mean()
    variance = float(np.mean(deviation * deviation))
    if variance <= _VARIANCE_EPSILON:
        return 0.0
    pair_sum = np.sum(deviation * np.roll(deviation, -1, axis=1)) + np.sum(deviation * np.roll(deviation, -1, axis=0))
    return float(pair_sum / (2 * deviation.size * variance))


def find_clusters(field: np.ndarray, threshold: float = VEGETATED_THRESHOLD) -> List[int]:
    """Sizes of the 4-connected clusters of cells with ``field >= threshold``.

    Neighbours wrap around the grid edges. The flood fill keeps an explicit
    stack, so large clusters never hit the recursion limit.
    """
    rows, cols = field.shape
    mask = (field >= threshold).tolist()
    visited = [[False] * cols for _ in range(rows)]
    sizes: List[int] = []
    stack: List[tuple[int, int]] = []

    for y in range(rows):
        mask_row = mask[y]
        visited_row = visited[y]
        for x in range(cols):
            if not mask_row[x] or visited_row[x]:
                continue
            visited_row[x] = True
            stack.append((x, y))
            count = 0
            while stack:
                cx, cy = stack.pop()
                count += 1
                left = cx - 1 if cx > 0 else cols - 1
                right = cx + 1 if cx < cols - 1 else 0
                up = cy - 1 if cy > 0 else rows - 1
                down = cy + 1 if cy < rows - 1 else 0
                for nx, ny in ((right, cy), (left, cy), (cx, down), (cx, up)):
                    if mask[ny][nx] and not visited[ny][nx]:
                        visited[ny][nx] = True
                        stack.append((nx, ny))
            sizes.append(count)
    return sizes


def compute_metrics(state: GridState, tick: int = 0, threshold: float = VEGETATED_THRESHOLD) -> MetricsRecord:
    v = state.v
    clusters = find_clusters(v, threshold)
    return MetricsRecord(
        tick=tick,
        v_mean=float(np.mean(v, dtype=np.float64)),
        w_mean=float(np.mean(state.w, dtype=np.float64)),
        sigma_mean=float(np.mean(state.sigma, dtype=np.float64)),
        v_variance=spatial_variance(v),
        spatial_autocorr=spatial_autocorrelation(v),
        cluster_count=len(clusters),
        max_cluster_size=max(clusters, default=0),
        mean_cluster_size=(sum(clusters) / len(clusters)) if clusters else 0.0,
    )
