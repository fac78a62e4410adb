"""Top-surface extraction and downward surface probing.

``extract_top_polygon`` recovers the rim of the flat cap as an ordered,
inset polygon used for sampling.  ``SurfaceProbe`` answers "is there
island surface under this point, and how steep is it?" against the
island mesh only, for both generated scatter and external placement tools.
"""

import math
import logging
from typing import Optional

import numpy as np

from .constants import (
    TOP_PLANE_EPS_FRACTION, RIM_MERGE_DIST_SQ, CENTER_EXCLUSION_FRACTION,
    CENTER_EXCLUSION_MIN, INSET_MIN_RADIAL, PROBE_LIFT, PROBE_LENGTH,
)
from .models import LandmassMesh, RimPolygon, ShapeParameters

logger = logging.getLogger(__name__)

UP = np.array([0.0, 1.0, 0.0])


# ── Rim extraction ──────────────────────────────────────────────────────

def _dedupe_xz(points):
    """Drop points within RIM_MERGE_DIST_SQ (XZ) of an earlier point."""
    xz = points[:, [0, 2]]
    d = xz[:, None, :] - xz[None, :, :]
    close = np.einsum('ijk,ijk->ij', d, d) <= RIM_MERGE_DIST_SQ
    duplicate = np.triu(close, k=1).any(axis=0)
    return points[~duplicate]


def _inset(points, centroid, edge_margin):
    """Pull each rim point toward *centroid* by *edge_margin* (XZ only)."""
    edge = max(0.0, edge_margin)
    out = points.copy()
    if edge <= 0.0:
        return out
    dx = points[:, 0] - centroid[0]
    dz = points[:, 2] - centroid[2]
    length = np.hypot(dx, dz)
    movable = length > INSET_MIN_RADIAL
    k = np.ones_like(length)
    k[movable] = np.maximum(0.0, length[movable] - edge) / length[movable]
    out[:, 0] = centroid[0] + dx * k
    out[:, 2] = centroid[2] + dz * k
    return out


def extract_top_polygon(mesh: LandmassMesh, params: ShapeParameters,
                        edge_margin: float) -> Optional[RimPolygon]:
    """Recover the inset top rim of *mesh* as an ordered polygon.

    Returns None when the rim is degenerate (fewer than three rim points
    survive), which callers treat as "use the fallback disk".
    """
    verts = mesh.vertices
    if len(verts) == 0:
        logger.warning("Top polygon: mesh has no vertices")
        return None
    # Only cap vertices can be rim points.  On a zero-height island the
    # bottom ring lies on the top plane as well.
    if len(mesh.cap_faces):
        verts = verts[np.unique(mesh.cap_faces)]

    top_radius = max(0.0, params.top_radius)
    max_y = verts[:, 1].max()
    eps = TOP_PLANE_EPS_FRACTION * max(1.0, top_radius)
    raw = verts[np.abs(verts[:, 1] - max_y) <= eps]
    if len(raw) < 3:
        logger.warning(f"Top polygon: only {len(raw)} top-plane vertices")
        return None

    unique = _dedupe_xz(raw)
    centroid = unique.mean(axis=0)

    # The apex lies on the top plane too; anything this close to the
    # centre is not part of the rim.
    min_rad = max(CENTER_EXCLUSION_FRACTION * top_radius, CENTER_EXCLUSION_MIN)
    radial = np.hypot(unique[:, 0] - centroid[0], unique[:, 2] - centroid[2])
    rim = unique[radial >= min_rad]
    if len(rim) < 3:
        logger.warning(f"Top polygon: rim collapsed to {len(rim)} points "
                       f"after centre removal")
        return None

    angles = np.arctan2(rim[:, 2] - centroid[2], rim[:, 0] - centroid[0])
    rim = rim[np.argsort(angles, kind='stable')]

    polygon = RimPolygon(points=_inset(rim, centroid, edge_margin),
                         centroid=centroid)
    logger.debug(f"Top polygon: {len(polygon)} rim points, "
                 f"inset={edge_margin:.2f}, area={polygon.area:.2f}")
    return polygon


# ── Surface probe ───────────────────────────────────────────────────────

def slope_between(normal, up=UP) -> float:
    """Angle in degrees between *normal* and *up*."""
    n = np.asarray(normal, dtype=np.float64)
    u = np.asarray(up, dtype=np.float64)
    denom = np.linalg.norm(n) * np.linalg.norm(u)
    if denom <= 0.0:
        return 0.0
    cos_a = float(np.clip(np.dot(n, u) / denom, -1.0, 1.0))
    return math.degrees(math.acos(cos_a))


class SurfaceProbe:
    """Vertical ray probe against a single island mesh.

    Rays start ``lift`` above the query point and travel ``length`` down
    the island's own up axis.  Only this island's triangles are tested, so
    a probe can never report unrelated geometry.

    *transform* (4x4) places the island in a parent frame; ``probe``
    works in that frame, ``probe_local`` in the island's local frame.
    """

    def __init__(self, mesh: LandmassMesh, transform=None,
                 lift: float = PROBE_LIFT, length: float = PROBE_LENGTH):
        self.mesh = mesh
        self.lift = lift
        self.length = length
        self.transform = (np.eye(4) if transform is None
                          else np.asarray(transform, dtype=np.float64))
        self._inverse = np.linalg.inv(self.transform)

        tm = mesh.to_trimesh()
        self._triangles = np.asarray(tm.triangles, dtype=np.float64)
        self._face_normals = np.asarray(tm.face_normals, dtype=np.float64)

        # Precompute XZ barycentric terms; vertical faces have no XZ area.
        a = self._triangles[:, 0, [0, 2]]
        self._a = a
        self._v0 = self._triangles[:, 1, [0, 2]] - a
        self._v1 = self._triangles[:, 2, [0, 2]] - a
        self._d00 = np.einsum('ij,ij->i', self._v0, self._v0)
        self._d01 = np.einsum('ij,ij->i', self._v0, self._v1)
        self._d11 = np.einsum('ij,ij->i', self._v1, self._v1)
        self._denom = self._d00 * self._d11 - self._d01 * self._d01
        self._usable = np.abs(self._denom) > 1e-12

    @property
    def up(self) -> np.ndarray:
        """The island's up axis in the parent frame."""
        up = self.transform[:3, :3] @ UP
        return up / np.linalg.norm(up)

    def probe_local(self, point):
        """Probe in island-local coordinates.

        Returns ``(hit_point, normal)`` as numpy arrays, or None.
        """
        p = np.asarray(point, dtype=np.float64)
        origin_y = p[1] + self.lift
        if not self._usable.any():
            return None

        v2 = np.array([p[0], p[2]]) - self._a
        d20 = np.einsum('ij,ij->i', v2, self._v0)
        d21 = np.einsum('ij,ij->i', v2, self._v1)
        with np.errstate(divide='ignore', invalid='ignore'):
            v = (self._d11 * d20 - self._d01 * d21) / self._denom
            w = (self._d00 * d21 - self._d01 * d20) / self._denom
        u = 1.0 - v - w

        tol = -1e-9
        inside = self._usable & (u >= tol) & (v >= tol) & (w >= tol)
        if not inside.any():
            return None

        idx = np.nonzero(inside)[0]
        tris = self._triangles[idx]
        hit_y = (u[idx] * tris[:, 0, 1] + v[idx] * tris[:, 1, 1] +
                 w[idx] * tris[:, 2, 1])
        in_range = (hit_y <= origin_y) & (hit_y >= origin_y - self.length)
        if not in_range.any():
            return None

        # First surface the downward ray meets
        candidates = np.nonzero(in_range)[0]
        best = candidates[np.argmax(hit_y[candidates])]
        hit = np.array([p[0], hit_y[best], p[2]])
        return hit, self._face_normals[idx[best]].copy()

    def probe(self, point):
        """Probe in the parent frame.  Returns ``(hit_point, normal)`` or None."""
        local = (self._inverse @ np.append(np.asarray(point, dtype=np.float64),
                                           1.0))[:3]
        result = self.probe_local(local)
        if result is None:
            return None
        hit, normal = result
        world_hit = (self.transform @ np.append(hit, 1.0))[:3]
        world_normal = self._inverse[:3, :3].T @ normal
        world_normal /= np.linalg.norm(world_normal)
        return world_hit, world_normal

    def slope_degrees(self, normal) -> float:
        """Slope of a parent-frame *normal* against the island's up axis."""
        return slope_between(normal, self.up)

    def accepts(self, point, max_slope: float) -> bool:
        """True if *point* lies over island surface no steeper than *max_slope*."""
        result = self.probe(point)
        if result is None:
            return False
        return self.slope_degrees(result[1]) <= max_slope
