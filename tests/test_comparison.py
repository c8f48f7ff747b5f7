"""Tests for the competitor comparison engine."""
import math
from datetime import date

import pytest

from patentmap.models.schemas import Advantage
from patentmap.services.comparison import (
    classify_advantage,
    compare_portfolios,
    competition_intensity,
    zone_strength,
)
from tests.conftest import FIXED_NOW, make_patent


def _own(value: float = 5.0):
    return [
        make_patent("o1", "A61K", value=value),
        make_patent("o2", "A61K", value=value),
        make_patent("o3", "C07D", value=value),
    ]


def _competitor(value: float = 5.0):
    return [
        make_patent("c1", "A61K", assignee="Rival", value=value),
        make_patent("c2", "G16B", assignee="Rival", value=value),
        make_patent("c3", "G16B", assignee="Rival", value=value),
    ]


def test_zones_are_classified_by_domain():
    result = compare_portfolios(_own(), _competitor(), now=FIXED_NOW)

    assert len(result.overlap_zones) == 1
    overlap = result.overlap_zones[0]
    assert overlap.tech_domain == "A61K"
    assert overlap.zone_id == "overlap-A61K"
    assert (overlap.own_patent_count, overlap.competitor_patent_count) == (2, 1)
    assert overlap.competition_intensity == pytest.approx(2 / 3)

    assert [z.tech_domain for z in result.own_exclusive] == ["C07D"]
    assert [z.tech_domain for z in result.competitor_exclusive] == ["G16B"]
    assert result.competitor_exclusive[0].patent_count == 2
    assert result.strength_index > 0


def test_summary_counts():
    result = compare_portfolios(_own(), _competitor(), now=FIXED_NOW)
    summary = result.summary
    assert summary.total_own_patents == 3
    assert summary.total_competitor_patents == 3
    assert summary.overlap_domain_count == 1
    assert summary.own_exclusive_domain_count == 1
    assert summary.competitor_exclusive_domain_count == 1
    assert summary.advantage_score == result.strength_index


def test_higher_value_tips_advantage():
    result = compare_portfolios(_own(value=9.0), _competitor(value=3.0), now=FIXED_NOW)
    # volume 0, overlap dominance 1/3, value ratio 0.5
    assert result.strength_index == pytest.approx(0.3 / 3 + 0.15)
    assert result.summary.overall_advantage == Advantage.OWN


def test_self_comparison_is_neutral():
    own = _own()
    result = compare_portfolios(own, own, now=FIXED_NOW)
    assert result.strength_index == 0.0
    assert result.summary.overall_advantage == Advantage.NEUTRAL
    assert all(z.competition_intensity == 1.0 for z in result.overlap_zones)


def test_empty_sides():
    result = compare_portfolios([], [], now=FIXED_NOW)
    assert result.strength_index == 0.0
    assert result.overlap_zones == []

    only_own = compare_portfolios(_own(), [], now=FIXED_NOW)
    # volume 1, no overlap, value ratio 1
    assert only_own.strength_index == pytest.approx(0.7)
    assert len(only_own.own_exclusive) == 2

    only_comp = compare_portfolios([], _competitor(), now=FIXED_NOW)
    assert only_comp.strength_index == pytest.approx(-0.7)
    assert only_comp.summary.overall_advantage == Advantage.COMPETITOR


def test_unclassified_bucket():
    result = compare_portfolios([make_patent("o1", "")], [make_patent("c1", "")], now=FIXED_NOW)
    assert [z.tech_domain for z in result.overlap_zones] == ["unclassified"]


@pytest.mark.parametrize("own, comp", [(1, 1), (1, 9), (7, 2), (100, 1)])
def test_competition_intensity_bounds(own, comp):
    assert 0.0 < competition_intensity(own, comp) <= 1.0


def test_zone_strength_recency_and_value():
    fresh = make_patent("f", filing_date=FIXED_NOW.date(), value=2.0)
    assert zone_strength([fresh], FIXED_NOW) == pytest.approx(4.0 * (1 + math.log(2)))

    old = make_patent("o", filing_date=date(1990, 1, 1), value=0.0)
    assert zone_strength([old], FIXED_NOW) == pytest.approx(1 + math.log(2))

    undated = make_patent("u", filing_date=None, value=3.0)
    assert zone_strength([undated], FIXED_NOW) == pytest.approx(3.0 * (1 + math.log(2)))

    pair = zone_strength([old, undated], FIXED_NOW)
    assert pair == pytest.approx(2.0 * (1 + math.log(3)))

    assert zone_strength([], FIXED_NOW) == 0.0


@pytest.mark.parametrize(
    "index, expected",
    [(0.5, Advantage.OWN), (0.1, Advantage.NEUTRAL), (-0.1, Advantage.NEUTRAL), (-0.11, Advantage.COMPETITOR)],
)
def test_classify_advantage(index, expected):
    assert classify_advantage(index) == expected


_DOMAINS = ["A61K", "C07D", "G16B", "A61P", ""]


def _spread(prefix: str, count: int, value: float, assignee: str, offset: int):
    return [
        make_patent(
            f"{prefix}{i}",
            _DOMAINS[(i + offset) % len(_DOMAINS)],
            assignee=assignee,
            filing_date=None if i % 4 == 3 else date(2000 + i % 25, 6, 1),
            value=value,
        )
        for i in range(count)
    ]


@pytest.mark.parametrize(
    "own_count, comp_count, own_value, comp_value",
    [
        (1, 50, 9.0, -3.0),
        (50, 1, -5.0, 2.0),
        (0, 7, -1.0, -1.0),
        (12, 0, 100.0, 0.0),
        (3, 3, -2.0, 8.0),
        (40, 2, 0.0, 0.0),
        (2, 40, 1e6, -1e6),
        (5, 9, -7.5, -0.5),
    ],
)
def test_strength_stays_bounded_for_lopsided_portfolios(own_count, comp_count, own_value, comp_value):
    own = _spread("o", own_count, own_value, "OwnCorp", offset=0)
    competitor = _spread("c", comp_count, comp_value, "Rival", offset=2)

    result = compare_portfolios(own, competitor, now=FIXED_NOW)

    assert -1.0 <= result.strength_index <= 1.0
    assert result.summary.advantage_score == result.strength_index
    for zone in result.own_exclusive + result.competitor_exclusive:
        assert zone.strength_score >= 0.0
    for zone in result.overlap_zones:
        assert 0.0 < zone.competition_intensity <= 1.0
