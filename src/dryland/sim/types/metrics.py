from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class MetricsRecord:
    tick: int
    v_mean: float
    w_mean: float
    sigma_mean: float
    v_variance: float
    spatial_autocorr: float
    cluster_count: int
    max_cluster_size: int
    mean_cluster_size: float
