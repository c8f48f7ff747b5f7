"""
Aggregate statistics over a constellation run and over a portfolio's
technology-domain mix.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from patentmap.models.schemas import (
    ConstellationCluster,
    ConstellationPoint,
    CoverageStatistics,
    DomainDistribution,
    DomainEntry,
    PatentRecord,
    PointType,
    WhiteSpaceRegion,
)
from patentmap.services.comparison import age_in_years, domain_of

# IPC subclasses most often seen in pharma portfolios
KNOWN_DOMAINS: Dict[str, str] = {
    "A61K": "Preparations for Medical Purposes",
    "A61P": "Therapeutic Activity of Chemical Compounds",
    "C07D": "Heterocyclic Compounds",
    "C07C": "Acyclic or Carbocyclic Compounds",
    "C07K": "Peptides",
    "C12N": "Microorganisms or Enzymes",
    "G01N": "Investigating or Analysing Materials",
    "G16B": "Bioinformatics",
    "unclassified": "Unclassified",
}


def resolve_domain_name(code: str) -> str:
    """Human-readable name for a domain code; unknown codes are returned as-is."""
    return KNOWN_DOMAINS.get(code, code)


def compute_coverage_statistics(
    points: Sequence[ConstellationPoint],
    clusters: Sequence[ConstellationCluster],
    white_spaces: Sequence[WhiteSpaceRegion],
) -> CoverageStatistics:
    stats = CoverageStatistics(
        total_points=len(points),
        cluster_count=len(clusters),
        white_space_count=len(white_spaces),
        own_patent_count=sum(1 for p in points if p.point_type == PointType.OWN_PATENT),
        competitor_count=sum(1 for p in points if p.point_type == PointType.COMPETITOR_PATENT),
    )

    if clusters:
        densities = [c.density for c in clusters]
        mean = sum(densities) / len(densities)
        variance = sum((d - mean) ** 2 for d in densities) / len(densities)
        stats.density_mean = mean
        stats.density_std_dev = math.sqrt(variance)

        if white_spaces:
            cluster_area = sum(math.pi * c.radius * c.radius for c in clusters)
            ws_area = sum(w.area for w in white_spaces)
            total = cluster_area + ws_area
            if total > 0:
                stats.coverage_ratio = cluster_area / total
        else:
            stats.coverage_ratio = 1.0

    return stats


def build_domain_distribution(
    portfolio_id: str,
    patents: Sequence[PatentRecord],
    now: Optional[datetime] = None,
) -> DomainDistribution:
    """
    Count, value and mean age per primary technology domain.

    Entries are ordered by patent count descending, then domain code. Mean
    age is taken over every patent in the domain; undated patents add no
    age but still count in the denominator.
    """
    now = now or datetime.now(timezone.utc)

    counts: Dict[str, int] = {}
    values: Dict[str, float] = {}
    age_sums: Dict[str, float] = {}

    for p in patents:
        domain = domain_of(p)
        counts[domain] = counts.get(domain, 0) + 1
        values[domain] = values.get(domain, 0.0) + p.value_score
        age = age_in_years(p.filing_date, now)
        if age is not None:
            age_sums[domain] = age_sums.get(domain, 0.0) + age

    total_count = len(patents)
    total_value = sum(values.values())

    entries: List[DomainEntry] = []
    for domain, count in counts.items():
        entries.append(
            DomainEntry(
                domain_code=domain,
                domain_name=resolve_domain_name(domain),
                patent_count=count,
                percentage=count / total_count * 100.0,
                value_sum=values[domain],
                value_percent=values[domain] / total_value * 100.0 if total_value > 0 else 0.0,
                avg_age_years=age_sums.get(domain, 0.0) / count,
            )
        )

    entries.sort(key=lambda e: (-e.patent_count, e.domain_code))
    return DomainDistribution(
        portfolio_id=portfolio_id,
        domains=entries,
        total_count=total_count,
        generated_at=datetime.now(timezone.utc),
    )
