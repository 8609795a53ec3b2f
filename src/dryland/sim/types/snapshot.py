from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import MetricsRecord


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: MetricsRecord
    view: str
    field: List[List[float]]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotMetadata:
    grid_size: int
    seed: int
    preset: str
    config_version: str
    water_max: float
    parameters: Dict[str, Any]
