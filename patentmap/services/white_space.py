"""
White-space detection: sparse regions adjacent to existing patent activity.

A fixed scan grid is laid over the bounding box of the constellation. For
each scan-cell centre the points within a search radius ``r`` are counted,
where ``r`` is half the mean spacing of the points::

    r = 0.5 * sqrt(box_area / n)

A cell is a candidate when that count falls below
``density_factor * n / scan_cells``. Candidates farther than
``actionable_factor * r`` from every cluster centroid are discarded: empty
space far from any activity is not an actionable gap. The rest are scored
``1 / (1 + d / r)`` (``d`` = distance to the nearest centroid) so that gaps
hugging a cluster rank first.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from patentmap.config import settings
from patentmap.models.schemas import (
    ConstellationCluster,
    ConstellationPoint,
    WhiteSpaceRegion,
)
from patentmap.utils.geometry import compute_bounding_box

logger = logging.getLogger(__name__)

_MIN_CELL_EXTENT = 1e-9
_MIN_SEARCH_RADIUS = 1e-6


def describe_opportunity(domains: Sequence[str]) -> str:
    if not domains:
        return "Sparse region with no classified activity nearby"
    return "Sparse region adjacent to " + ", ".join(domains)


class WhiteSpaceDetector:
    """Finds and ranks actionable white-space regions."""

    def __init__(
        self,
        min_points: Optional[int] = None,
        scan_resolution: Optional[int] = None,
        max_regions: Optional[int] = None,
        density_factor: Optional[float] = None,
        actionable_factor: Optional[float] = None,
    ) -> None:
        self.min_points = min_points if min_points is not None else settings.WHITE_SPACE_MIN_POINTS
        self.scan_resolution = scan_resolution if scan_resolution is not None else settings.WHITE_SPACE_SCAN_RESOLUTION
        self.max_regions = max_regions if max_regions is not None else settings.WHITE_SPACE_MAX_REGIONS
        self.density_factor = density_factor if density_factor is not None else settings.WHITE_SPACE_DENSITY_FACTOR
        self.actionable_factor = actionable_factor if actionable_factor is not None else settings.WHITE_SPACE_ACTIONABLE_FACTOR

    def search_radius(self, box_area: float, n: int) -> float:
        r = math.sqrt(box_area / n) * 0.5
        return r if r >= _MIN_SEARCH_RADIUS else 1.0

    def identify(
        self,
        points: Sequence[ConstellationPoint],
        clusters: Sequence[ConstellationCluster],
    ) -> List[WhiteSpaceRegion]:
        n = len(points)
        if n < self.min_points:
            return []

        box = compute_bounding_box((p.x, p.y) for p in points)
        res = self.scan_resolution
        x_step = box.width / res
        y_step = box.height / res
        if x_step < _MIN_CELL_EXTENT or y_step < _MIN_CELL_EXTENT:
            logger.info("identify: constellation is degenerate on one axis, no scan")
            return []

        r = self.search_radius(box.area, n)
        density_threshold = n / float(res * res) * self.density_factor
        max_relevant = r * self.actionable_factor
        cell_area = x_step * y_step

        pts = np.array([[p.x, p.y] for p in points], dtype=float)
        domains = [p.tech_domain for p in points]
        centroids = (
            np.array([[c.center_x, c.center_y] for c in clusters], dtype=float)
            if clusters
            else None
        )

        regions: List[WhiteSpaceRegion] = []
        for i in range(res):
            gx = box.x_min + (i + 0.5) * x_step
            for j in range(res):
                gy = box.y_min + (j + 0.5) * y_step

                dist = np.hypot(pts[:, 0] - gx, pts[:, 1] - gy)
                nearby = int(np.count_nonzero(dist <= r))
                if nearby >= density_threshold:
                    continue

                if centroids is not None:
                    min_cluster_dist = float(
                        np.min(np.hypot(centroids[:, 0] - gx, centroids[:, 1] - gy))
                    )
                    if min_cluster_dist > max_relevant:
                        continue
                    score = 1.0 / (1.0 + min_cluster_dist / r)
                else:
                    score = 0.0

                nearest = sorted(
                    {domains[k] for k in np.flatnonzero(dist <= r * 2) if domains[k]}
                )
                regions.append(
                    WhiteSpaceRegion(
                        region_id=f"ws-{len(regions)}",
                        center_x=gx,
                        center_y=gy,
                        area=cell_area,
                        nearest_tech_domains=nearest,
                        opportunity_description=describe_opportunity(nearest),
                        score=score,
                    )
                )

        regions.sort(key=lambda w: w.score, reverse=True)
        logger.info(
            "identify: %d candidate white-space cell(s), keeping %d",
            len(regions),
            min(len(regions), self.max_regions),
        )
        return regions[: self.max_regions]
