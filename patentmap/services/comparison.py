"""
Competitive comparison between two patent sets, by technology domain.

Every domain held by either side is classified as

* an **overlap zone** when both sides hold patents there, with
  ``intensity = 1 - |own - comp| / (own + comp)``;
* an **own-exclusive** or **competitor-exclusive zone** otherwise, with a
  strength score blending value and recency, scaled by breadth.

The overall strength index combines volume, overlap dominance and value:

    index = 0.4 * volume_ratio + 0.3 * overlap_dominance + 0.3 * value_ratio

clamped to [-1, 1]; positive favours the own portfolio.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from patentmap.models.schemas import (
    Advantage,
    ComparisonSummary,
    ExclusiveZone,
    OverlapZone,
    PatentRecord,
)
from patentmap.utils.helpers import clamp, safe_divide, sorted_union, to_string_set

logger = logging.getLogger(__name__)

UNCLASSIFIED = "unclassified"
RECENCY_HORIZON_YEARS = 20.0
ADVANTAGE_THRESHOLD = 0.1
_DAYS_PER_YEAR = 365.25


@dataclass
class ComparisonResult:
    overlap_zones: List[OverlapZone] = field(default_factory=list)
    own_exclusive: List[ExclusiveZone] = field(default_factory=list)
    competitor_exclusive: List[ExclusiveZone] = field(default_factory=list)
    strength_index: float = 0.0
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------

def domain_of(patent: PatentRecord) -> str:
    return patent.primary_tech_domain or UNCLASSIFIED


def group_by_domain(patents: Iterable[PatentRecord]) -> Dict[str, List[PatentRecord]]:
    groups: Dict[str, List[PatentRecord]] = {}
    for p in patents:
        groups.setdefault(domain_of(p), []).append(p)
    return groups


def filter_by_tech_domains(
    patents: Iterable[PatentRecord], domains: Iterable[str]
) -> List[PatentRecord]:
    wanted = to_string_set(domains)
    return [p for p in patents if p.primary_tech_domain in wanted]


def age_in_years(filing_date: Optional[date], now: datetime) -> Optional[float]:
    if filing_date is None:
        return None
    return (now.date() - filing_date).days / _DAYS_PER_YEAR


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

def competition_intensity(own_count: int, comp_count: int) -> float:
    total = own_count + comp_count
    return 1.0 - abs(own_count - comp_count) / total


def zone_strength(patents: Sequence[PatentRecord], now: datetime) -> float:
    """
    Mean recency-weighted value of *patents* times ``1 + ln(1 + count)``.

    Non-positive value scores count as 1.0. The recency weight runs from 2.0
    for a patent filed today down to 1.0 at twenty years and stays there.
    """
    if not patents:
        return 0.0

    total = 0.0
    for p in patents:
        value = p.value_score if p.value_score > 0 else 1.0
        recency = 1.0
        age = age_in_years(p.filing_date, now)
        if age is not None and age < RECENCY_HORIZON_YEARS:
            recency = 1.0 + (RECENCY_HORIZON_YEARS - age) / RECENCY_HORIZON_YEARS
        total += value * recency

    per_patent = total / len(patents)
    return per_patent * (1.0 + math.log1p(len(patents)))


def strength_index(
    own: Sequence[PatentRecord],
    competitor: Sequence[PatentRecord],
    overlap_zones: Sequence[OverlapZone],
) -> float:
    own_count = len(own)
    comp_count = len(competitor)
    if own_count == 0 and comp_count == 0:
        return 0.0

    volume_ratio = (own_count - comp_count) / float(own_count + comp_count)

    own_overlap = sum(z.own_patent_count for z in overlap_zones)
    comp_overlap = sum(z.competitor_patent_count for z in overlap_zones)
    overlap_dominance = safe_divide(own_overlap - comp_overlap, own_overlap + comp_overlap)

    own_value = sum(p.value_score for p in own if p.value_score > 0)
    comp_value = sum(p.value_score for p in competitor if p.value_score > 0)
    value_ratio = safe_divide(own_value - comp_value, own_value + comp_value)

    index = 0.4 * volume_ratio + 0.3 * overlap_dominance + 0.3 * value_ratio
    return clamp(index, -1.0, 1.0)


def classify_advantage(index: float) -> Advantage:
    if index > ADVANTAGE_THRESHOLD:
        return Advantage.OWN
    if index < -ADVANTAGE_THRESHOLD:
        return Advantage.COMPETITOR
    return Advantage.NEUTRAL


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def compare_portfolios(
    own: Sequence[PatentRecord],
    competitor: Sequence[PatentRecord],
    now: Optional[datetime] = None,
) -> ComparisonResult:
    """Classify every domain into zones and compute the strength index."""
    now = now or datetime.now(timezone.utc)
    own_domains = group_by_domain(own)
    comp_domains = group_by_domain(competitor)

    result = ComparisonResult()
    for domain in sorted_union(own_domains, comp_domains):
        own_in = own_domains.get(domain, [])
        comp_in = comp_domains.get(domain, [])

        if own_in and comp_in:
            result.overlap_zones.append(
                OverlapZone(
                    zone_id=f"overlap-{domain}",
                    tech_domain=domain,
                    own_patent_count=len(own_in),
                    competitor_patent_count=len(comp_in),
                    competition_intensity=competition_intensity(len(own_in), len(comp_in)),
                )
            )
        elif own_in:
            result.own_exclusive.append(
                ExclusiveZone(
                    zone_id=f"own-excl-{domain}",
                    tech_domain=domain,
                    patent_count=len(own_in),
                    strength_score=zone_strength(own_in, now),
                )
            )
        else:
            result.competitor_exclusive.append(
                ExclusiveZone(
                    zone_id=f"comp-excl-{domain}",
                    tech_domain=domain,
                    patent_count=len(comp_in),
                    strength_score=zone_strength(comp_in, now),
                )
            )

    result.strength_index = strength_index(own, competitor, result.overlap_zones)
    result.summary = ComparisonSummary(
        total_own_patents=len(own),
        total_competitor_patents=len(competitor),
        overlap_domain_count=len(result.overlap_zones),
        own_exclusive_domain_count=len(result.own_exclusive),
        competitor_exclusive_domain_count=len(result.competitor_exclusive),
        overall_advantage=classify_advantage(result.strength_index),
        advantage_score=result.strength_index,
    )
    return result
