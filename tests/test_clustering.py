"""Tests for the grid-density clusterer."""
import math

import pytest

from patentmap.models.schemas import ConstellationPoint
from patentmap.services.clustering import DensityClusterer


def _point(idx: int, x: float, y: float, domain: str = "") -> ConstellationPoint:
    return ConstellationPoint(id=f"pt-{idx}", x=x, y=y, tech_domain=domain)


def _two_groups():
    group_a = [(0.0, 0.0), (0.1, 0.0), (0.0, 0.1)]
    group_b = [(10.0, 10.0), (10.1, 10.0), (10.0, 10.1), (9.9, 10.0)]
    points = [_point(i, x, y, "C07D") for i, (x, y) in enumerate(group_a)]
    points += [
        _point(10 + i, x, y, "G16B" if i % 2 else "A61K") for i, (x, y) in enumerate(group_b)
    ]
    points.append(_point(99, 0.0, 10.0, "A61P"))
    return points


def test_too_few_points_yield_no_clusters():
    clusterer = DensityClusterer()
    assert clusterer.detect_clusters([_point(0, 0, 0), _point(1, 1, 1)]) == []


@pytest.mark.parametrize("n, expected", [(3, 2), (8, 2), (30, 4), (300, 10), (3000, 20)])
def test_grid_size_is_bounded(n, expected):
    assert DensityClusterer().grid_size(n) == expected


def test_dense_cells_become_clusters():
    clusters = DensityClusterer().detect_clusters(_two_groups())

    # The lone point in the top-left cell is below the density threshold
    assert len(clusters) == 2
    big, small = clusters
    assert big.point_count == 4
    assert small.point_count == 3
    assert big.cluster_id == "cluster-1-1-1"
    assert small.cluster_id == "cluster-0-0-0"

    assert big.center_x == pytest.approx(10.0)
    assert big.center_y == pytest.approx(10.025)
    assert big.tech_domains == ["A61K", "G16B"]
    assert big.label == "A61K"
    assert small.label == "C07D"


def test_cluster_radius_and_density():
    clusters = DensityClusterer().detect_clusters(_two_groups())
    small = clusters[1]
    cx = cy = 0.1 / 3
    expected_radius = math.hypot(0.1 - cx, 0.0 - cy)
    assert small.radius == pytest.approx(expected_radius)
    assert small.density == pytest.approx(3 / (math.pi * expected_radius ** 2))


def test_clusters_sorted_by_size():
    clusters = DensityClusterer().detect_clusters(_two_groups())
    counts = [c.point_count for c in clusters]
    assert counts == sorted(counts, reverse=True)


def test_identical_points_form_single_zero_radius_cluster():
    points = [_point(i, 1.0, 1.0) for i in range(5)]
    clusters = DensityClusterer().detect_clusters(points)

    assert len(clusters) == 1
    cluster = clusters[0]
    assert cluster.point_count == 5
    assert cluster.radius == 0.0
    assert cluster.density == 0.0
    assert cluster.label == "cluster"


def test_explicit_min_points_is_kept():
    clusterer = DensityClusterer(min_points=0, max_grid=2)
    assert clusterer.min_points == 0
    assert clusterer.max_grid == 2
    assert DensityClusterer().min_points == 3
