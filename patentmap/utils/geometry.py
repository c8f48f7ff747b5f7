"""
Planar geometry helpers shared by clustering, white-space and heatmap code.

Coordinates are plain sequences; only the first two components are read.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(frozen=True)
class BoundingBox:
    x_min: float = 0.0
    x_max: float = 0.0
    y_min: float = 0.0
    y_max: float = 0.0

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def area(self) -> float:
        return self.width * self.height

    def padded(self, fraction: float = 0.1, min_span: float = 1e-6) -> "BoundingBox":
        """
        Grow each axis by *fraction* of its extent on both sides.

        An axis whose padded span is still below *min_span* is forced open
        to ±1.0 around its current bounds.
        """
        x_pad = self.width * fraction
        y_pad = self.height * fraction
        x_min, x_max = self.x_min - x_pad, self.x_max + x_pad
        y_min, y_max = self.y_min - y_pad, self.y_max + y_pad
        if x_max - x_min < min_span:
            x_min -= 1.0
            x_max += 1.0
        if y_max - y_min < min_span:
            y_min -= 1.0
            y_max += 1.0
        return BoundingBox(x_min, x_max, y_min, y_max)


def compute_bounding_box(coords: Iterable[Sequence[float]]) -> BoundingBox:
    """
    Min/max of the x and y components of *coords*.

    Returns an all-zero box for empty input. Entries with fewer than two
    components are ignored.
    """
    x_min = x_max = y_min = y_max = None
    for pt in coords:
        if len(pt) < 2:
            continue
        x, y = float(pt[0]), float(pt[1])
        if x_min is None:
            x_min = x_max = x
            y_min = y_max = y
            continue
        x_min = min(x_min, x)
        x_max = max(x_max, x)
        y_min = min(y_min, y)
        y_max = max(y_max, y)

    if x_min is None:
        return BoundingBox()
    return BoundingBox(x_min, x_max, y_min, y_max)


def euclidean_distance(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(ax - bx, ay - by)
