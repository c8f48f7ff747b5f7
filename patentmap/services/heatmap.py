"""
Coverage heatmap: Gaussian kernel density estimate over reduced 2D points.

Provides:
- HeatmapConfig: resolution / density-range settings with bounds-checked setters
- silverman_bandwidth: bandwidth rule of thumb used for the kernel
- generate_heatmap: density grid over the padded bounding box of the points
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

import numpy as np

from patentmap.config import settings
from patentmap.models.schemas import CoverageHeatmap
from patentmap.utils.geometry import compute_bounding_box

logger = logging.getLogger(__name__)

_MIN_BANDWIDTH = 0.01


@dataclass
class HeatmapConfig:
    """
    Heatmap options.

    The setters validate their input and silently keep the previous value
    when it is out of range, so a config is always usable:

    * ``with_resolution(res)`` accepts ``0 < res <= HEATMAP_MAX_RESOLUTION``
    * ``with_density_range(lo, hi)`` accepts ``lo >= 0`` and ``hi > lo``

    Constructor arguments go through the same rules, so
    ``HeatmapConfig(resolution=0)`` keeps the default resolution.

    A ``max_density`` above zero replaces the observed maximum reported with
    the grid; grid values themselves are never rescaled.
    """

    resolution: int = settings.HEATMAP_DEFAULT_RESOLUTION
    min_density: float = 0.0
    max_density: float = 0.0
    color_scale: str = settings.HEATMAP_COLOR_SCALE

    def __post_init__(self) -> None:
        resolution = self.resolution
        density_range = (self.min_density, self.max_density)

        self.resolution = settings.HEATMAP_DEFAULT_RESOLUTION
        self.min_density = 0.0
        self.max_density = 0.0

        self.with_resolution(resolution)
        if density_range != (0.0, 0.0):
            self.with_density_range(*density_range)

    def with_resolution(self, resolution: int) -> "HeatmapConfig":
        if 0 < resolution <= settings.HEATMAP_MAX_RESOLUTION:
            self.resolution = resolution
        return self

    def with_density_range(self, min_density: float, max_density: float) -> "HeatmapConfig":
        if min_density >= 0 and max_density > min_density:
            self.min_density = min_density
            self.max_density = max_density
        return self


def silverman_bandwidth(n: int) -> float:
    """``1.06 * n^(-1/5)`` floored at 0.01 (unit-variance form of Silverman's rule)."""
    if n <= 0:
        return _MIN_BANDWIDTH
    return max(1.06 * math.pow(n, -0.2), _MIN_BANDWIDTH)


def empty_heatmap(portfolio_id: str, config: HeatmapConfig) -> CoverageHeatmap:
    return CoverageHeatmap(
        portfolio_id=portfolio_id,
        grid=[],
        resolution=config.resolution,
        color_scale=config.color_scale,
        generated_at=datetime.now(timezone.utc),
    )


def generate_heatmap(
    portfolio_id: str,
    coords: Sequence[Sequence[float]],
    config: HeatmapConfig,
) -> CoverageHeatmap:
    """
    Evaluate the KDE at every cell centre of a ``resolution × resolution`` grid.

    ``grid[i][j]`` is the density at ``(x_min + (i + 0.5) * dx,
    y_min + (j + 0.5) * dy)``. Coordinates with fewer than two components
    are ignored.
    """
    xy = np.array([[c[0], c[1]] for c in coords if len(c) >= 2], dtype=float)
    if len(xy) == 0:
        return empty_heatmap(portfolio_id, config)

    box = compute_bounding_box(xy.tolist()).padded(0.1)
    res = config.resolution
    n = len(xy)
    h = silverman_bandwidth(n)

    x_step = box.width / res
    y_step = box.height / res
    gx = box.x_min + (np.arange(res) + 0.5) * x_step
    gy = box.y_min + (np.arange(res) + 0.5) * y_step

    # exp(-0.5 (dx² + dy²)) factorises into an x-term times a y-term, so the
    # full grid is one (res × n) @ (n × res) product.
    kx = np.exp(-0.5 * ((gx[:, None] - xy[None, :, 0]) / h) ** 2)
    ky = np.exp(-0.5 * ((gy[:, None] - xy[None, :, 1]) / h) ** 2)
    grid = (kx @ ky.T) / (n * 2.0 * math.pi * h * h)

    observed_max = float(grid.max()) if grid.size else 0.0
    max_density = config.max_density if config.max_density > 0 else observed_max

    logger.info(
        "generate_heatmap: %d points, %dx%d grid, bandwidth %.4f, max density %.6f",
        n,
        res,
        res,
        h,
        observed_max,
    )

    rows: List[List[float]] = grid.tolist()
    return CoverageHeatmap(
        portfolio_id=portfolio_id,
        grid=rows,
        x_range=(box.x_min, box.x_max),
        y_range=(box.y_min, box.y_max),
        resolution=res,
        max_density=max_density,
        color_scale=config.color_scale,
        generated_at=datetime.now(timezone.utc),
    )
