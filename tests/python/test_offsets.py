from __future__ import annotations

import pytest

from dryland.sim.core.errors import ConfigurationError
from dryland.sim.core.offsets import build_disk_offsets


def test_radius_zero_is_centre_only():
    assert build_disk_offsets(0) == ((0, 0),)


def test_radius_one_is_von_neumann_cross():
    assert set(build_disk_offsets(1)) == {(0, 0), (1, 0), (-1, 0), (0, 1), (0, -1)}


@pytest.mark.parametrize("radius, expected", [(2, 13), (3, 29), (6, 113)])
def test_disk_sizes_match_lattice_point_counts(radius, expected):
    offsets = build_disk_offsets(radius)
    assert len(offsets) == expected
    assert len(set(offsets)) == expected
    assert (0, 0) in offsets
    assert all(dx * dx + dy * dy <= radius * radius for dx, dy in offsets)
    assert {(-dx, -dy) for dx, dy in offsets} == set(offsets)


def test_offsets_are_materialized_and_repeatable():
    first = build_disk_offsets(4)
    assert isinstance(first, tuple)
    assert build_disk_offsets(4) == first


@pytest.mark.parametrize("radius", [-1, 1.5, "2", True])
def test_invalid_radius_rejected(radius):
    with pytest.raises(ConfigurationError):
        build_disk_offsets(radius)
