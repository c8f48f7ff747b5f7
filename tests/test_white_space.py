"""Tests for white-space detection."""
import math

import pytest

from patentmap.models.schemas import ConstellationCluster, ConstellationPoint
from patentmap.services.white_space import WhiteSpaceDetector, describe_opportunity

_CLUSTER_XY = [
    (0.0, 0.0), (0.2, 0.0), (0.0, 0.2), (0.2, 0.2), (0.1, 0.1),
    (0.3, 0.1), (0.1, 0.3), (0.3, 0.3), (0.2, 0.1), (0.1, 0.2),
]


def _points():
    points = [
        ConstellationPoint(id=f"pt-{i}", x=x, y=y, tech_domain="A61K")
        for i, (x, y) in enumerate(_CLUSTER_XY)
    ]
    points.append(ConstellationPoint(id="far", x=10.0, y=10.0, tech_domain="G16B"))
    return points


def _cluster():
    return ConstellationCluster(
        cluster_id="cluster-0-0-0",
        label="A61K",
        center_x=0.15,
        center_y=0.15,
        radius=0.2,
        point_count=10,
        tech_domains=["A61K"],
        density=80.0,
    )


def test_too_few_points():
    points = _points()[:4]
    assert WhiteSpaceDetector().identify(points, [_cluster()]) == []


def test_degenerate_axis_yields_nothing():
    points = [ConstellationPoint(id=str(i), x=1.0, y=float(i)) for i in range(6)]
    assert WhiteSpaceDetector().identify(points, [_cluster()]) == []


def test_regions_are_ranked_and_capped():
    regions = WhiteSpaceDetector().identify(_points(), [_cluster()])

    assert len(regions) == 20
    scores = [w.score for w in regions]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 < s <= 1.0 for s in scores)


def test_regions_are_empty_and_near_a_cluster():
    detector = WhiteSpaceDetector()
    points = _points()
    r = detector.search_radius(100.0, len(points))
    cluster = _cluster()

    for region in detector.identify(points, [cluster]):
        d = math.hypot(region.center_x - cluster.center_x, region.center_y - cluster.center_y)
        assert d <= 5 * r
        assert region.score == pytest.approx(1.0 / (1.0 + d / r))
        assert all(math.hypot(p.x - region.center_x, p.y - region.center_y) > r for p in points)
        assert region.area == pytest.approx(0.25)


def test_closest_region_names_adjacent_domains():
    regions = WhiteSpaceDetector().identify(_points(), [_cluster()])
    top = regions[0]
    assert top.nearest_tech_domains == ["A61K"]
    assert top.opportunity_description == "Sparse region adjacent to A61K"


def test_without_clusters_scores_are_zero():
    regions = WhiteSpaceDetector().identify(_points(), [])
    assert len(regions) == 20
    assert all(w.score == 0.0 for w in regions)


def test_max_regions_is_configurable():
    regions = WhiteSpaceDetector(max_regions=5).identify(_points(), [_cluster()])
    assert len(regions) == 5


def test_search_radius_floor():
    assert WhiteSpaceDetector().search_radius(0.0, 10) == 1.0


def test_describe_opportunity():
    assert describe_opportunity([]) == "Sparse region with no classified activity nearby"
    assert describe_opportunity(["A61K", "C07D"]) == "Sparse region adjacent to A61K, C07D"


def test_explicit_zero_factors_are_kept():
    detector = WhiteSpaceDetector(density_factor=0.0, actionable_factor=0.0)
    assert detector.density_factor == 0.0
    assert detector.actionable_factor == 0.0
    # a zero density threshold leaves no candidate cells
    assert detector.identify(_points(), [_cluster()]) == []


def test_unset_factors_use_settings():
    detector = WhiteSpaceDetector()
    assert detector.density_factor == 0.3
    assert detector.actionable_factor == 5.0
