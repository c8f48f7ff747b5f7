"""
Grid-density clustering of constellation points.

Public API
----------
DensityClusterer.detect_clusters(points)  → List[ConstellationCluster]
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from patentmap.config import settings
from patentmap.models.schemas import ConstellationCluster, ConstellationPoint
from patentmap.utils.geometry import compute_bounding_box

logger = logging.getLogger(__name__)

# Cell widths below this are treated as a collapsed axis
_MIN_CELL_EXTENT = 1e-9


class DensityClusterer:
    """
    Adaptive grid clusterer.

    The bounding box of the points is cut into ``g × g`` cells with
    ``g = clamp(ceil(sqrt(n / 3)), 2, max_grid)``. Every cell holding at
    least ``max(2, 1.5 × n / g²)`` points becomes one circular cluster.
    """

    def __init__(
        self,
        min_points: Optional[int] = None,
        max_grid: Optional[int] = None,
    ) -> None:
        self.min_points = min_points if min_points is not None else settings.CLUSTER_MIN_POINTS
        self.max_grid = max_grid if max_grid is not None else settings.CLUSTER_MAX_GRID

    def grid_size(self, n: int) -> int:
        g = math.ceil(math.sqrt(n / 3.0))
        return int(min(max(g, 2), self.max_grid))

    def detect_clusters(
        self, points: Sequence[ConstellationPoint]
    ) -> List[ConstellationCluster]:
        n = len(points)
        if n < self.min_points:
            return []

        box = compute_bounding_box((p.x, p.y) for p in points)
        g = self.grid_size(n)

        x_step = box.width / g
        y_step = box.height / g
        if x_step < _MIN_CELL_EXTENT:
            x_step = 1.0
        if y_step < _MIN_CELL_EXTENT:
            y_step = 1.0

        # --- Bucket points into cells -------------------------------------
        cells: Dict[Tuple[int, int], List[int]] = {}
        for idx, p in enumerate(points):
            r = min(int((p.x - box.x_min) / x_step), g - 1)
            c = min(int((p.y - box.y_min) / y_step), g - 1)
            cells.setdefault((r, c), []).append(idx)

        mean_per_cell = n / float(g * g)
        threshold = max(2.0, mean_per_cell * 1.5)

        # --- Build one cluster per dense cell -----------------------------
        clusters: List[ConstellationCluster] = []
        for key in sorted(cells):
            members = cells[key]
            if len(members) < threshold:
                continue
            clusters.append(
                self._build_cluster(len(clusters), key, [points[i] for i in members])
            )

        clusters.sort(key=lambda c: c.point_count, reverse=True)
        logger.info(
            "detect_clusters: %d cluster(s) from %d points on a %dx%d grid",
            len(clusters),
            n,
            g,
            g,
        )
        return clusters

    @staticmethod
    def _build_cluster(
        ordinal: int,
        key: Tuple[int, int],
        members: Sequence[ConstellationPoint],
    ) -> ConstellationCluster:
        xy = np.array([[p.x, p.y] for p in members], dtype=float)
        center = xy.mean(axis=0)
        radius = float(np.max(np.linalg.norm(xy - center, axis=1)))

        tech_domains = sorted({p.tech_domain for p in members if p.tech_domain})
        area = math.pi * radius * radius
        density = len(members) / area if area > 0 else 0.0

        return ConstellationCluster(
            cluster_id=f"cluster-{ordinal}-{key[0]}-{key[1]}",
            label=tech_domains[0] if tech_domains else "cluster",
            center_x=float(center[0]),
            center_y=float(center[1]),
            radius=radius,
            point_count=len(members),
            tech_domains=tech_domains,
            density=density,
        )
