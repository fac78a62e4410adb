"""Area-weighted random points over the island's top polygon.

The polygon is split into a triangle fan around its centroid; triangles
are picked proportionally to area and points inside them are drawn with
the square-root barycentric transform, giving a density that is uniform
over area.  When no usable polygon exists the sampler falls back to a
uniform disk.
"""

import math
import logging
from typing import Optional

import numpy as np

from .constants import FAN_AREA_EPS, FALLBACK_MIN_RADIUS
from .models import FanTriangle, RimPolygon, ShapeParameters, TriangleFan

logger = logging.getLogger(__name__)


def build_triangle_fan(polygon: RimPolygon) -> TriangleFan:
    """Fan the polygon from its centroid, dropping degenerate triangles."""
    c = polygon.centroid
    pts = polygon.points
    n = len(pts)
    triangles = []
    areas = []
    for i in range(n):
        j = (i + 1) % n
        ax, az = pts[i, 0] - c[0], pts[i, 2] - c[2]
        bx, bz = pts[j, 0] - c[0], pts[j, 2] - c[2]
        area = abs(ax * bz - az * bx) * 0.5
        if area > FAN_AREA_EPS:
            triangles.append(FanTriangle(a=i, b=j, area=area))
            areas.append(area)

    cumulative = np.cumsum(np.array(areas, dtype=np.float64))
    total = float(cumulative[-1]) if len(cumulative) else 0.0
    return TriangleFan(triangles=triangles, cumulative=cumulative,
                       total_area=total)


def fallback_radius(params: ShapeParameters, edge_margin: float) -> float:
    """Radius of the disk used when the rim polygon is unusable."""
    return max(FALLBACK_MIN_RADIUS, params.top_radius - edge_margin)


class AreaWeightedSampler:
    """Uniform-by-area point source over a rim polygon or a fallback disk.

    Call ``prepare`` once, then ``sample`` as many times as needed.
    ``sample`` never raises: a missing or zero-area polygon silently
    switches the sampler to disk mode.
    """

    def __init__(self):
        self.polygon: Optional[RimPolygon] = None
        self.fan: Optional[TriangleFan] = None
        self.using_fallback = True
        self.fallback_radius = FALLBACK_MIN_RADIUS
        self.fallback_center = np.zeros(3)

    def prepare(self, polygon: Optional[RimPolygon], fallback_radius: float,
                fallback_center=(0.0, 0.0, 0.0)) -> "AreaWeightedSampler":
        self.fallback_radius = max(FALLBACK_MIN_RADIUS, float(fallback_radius))
        self.fallback_center = np.asarray(fallback_center, dtype=np.float64)
        self.polygon = None
        self.fan = None
        self.using_fallback = True

        if polygon is None or len(polygon) < 3:
            logger.warning(f"No usable top polygon -- sampling fallback disk "
                           f"(r={self.fallback_radius:.2f})")
            return self

        fan = build_triangle_fan(polygon)
        if len(fan) == 0 or fan.total_area <= FAN_AREA_EPS:
            logger.warning(f"Degenerate triangle fan (area={fan.total_area:.3g}) "
                           f"-- sampling fallback disk "
                           f"(r={self.fallback_radius:.2f})")
            return self

        self.polygon = polygon
        self.fan = fan
        self.using_fallback = False
        logger.info(f"Top polygon: {len(polygon)} rim points, "
                    f"{len(fan)} fan triangles, area={fan.total_area:.2f}")
        return self

    @property
    def area(self) -> float:
        if self.using_fallback:
            return math.pi * self.fallback_radius ** 2
        return self.fan.total_area

    def sample(self, rng) -> np.ndarray:
        """Draw one point using *rng* (a ``random.Random``)."""
        if self.using_fallback:
            return self._sample_disk(rng)
        return self._sample_fan(rng)

    def _sample_disk(self, rng) -> np.ndarray:
        r = math.sqrt(rng.random()) * self.fallback_radius
        a = rng.random() * math.pi * 2.0
        return self.fallback_center + np.array([math.cos(a) * r, 0.0,
                                                math.sin(a) * r])

    def _sample_fan(self, rng) -> np.ndarray:
        fan = self.fan
        pick = rng.random() * fan.total_area
        # First triangle whose cumulative area reaches the pick
        idx = int(np.searchsorted(fan.cumulative, pick, side='left'))
        idx = min(idx, len(fan.triangles) - 1)
        tri = fan.triangles[idx]

        c = self.polygon.centroid
        a = self.polygon.points[tri.a]
        b = self.polygon.points[tri.b]

        r1 = rng.random()
        r2 = rng.random()
        su = math.sqrt(r1)
        u = 1.0 - su
        v = su * (1.0 - r2)
        w = su * r2
        return u * c + v * a + w * b
