"""Constrained rejection-sampling scatter of one placement category.

Every attempt draws a candidate from the sampler, projects it onto the
island with the surface probe, rejects steep ground and crowded spots,
and otherwise commits a ``PlacedInstance``.  All work happens in the
island's local frame (up = +Y).
"""

import math
import logging

import numpy as np
import trimesh

from .constants import DEFAULT_MAX_SLOPE, DEFAULT_Y_OFFSET
from .models import PlacedInstance, PlacementSpec, ScatterReport
from .surface import UP, slope_between

logger = logging.getLogger(__name__)


class SpacingBucket:
    """Previously accepted XZ points that new candidates must keep clear of.

    Categories that should repel each other share one bucket.
    """

    def __init__(self, name: str):
        self.name = name
        self._points: list[tuple[float, float]] = []
        self._array = np.empty((0, 2), dtype=np.float64)

    def __len__(self):
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        return self._array

    def is_clear(self, point, min_spacing: float) -> bool:
        """True if *point* is at least *min_spacing* (XZ) from every entry."""
        if not self._points or min_spacing <= 0:
            return True
        d = self._array - np.array([point[0], point[2]])
        return not bool(np.any(np.einsum('ij,ij->i', d, d)
                               < min_spacing * min_spacing))

    def add(self, point) -> None:
        self._points.append((float(point[0]), float(point[2])))
        self._array = np.array(self._points, dtype=np.float64)


def orientation(yaw_degrees: float, normal=None) -> np.ndarray:
    """Rotation matrix: yaw about up, optionally tilted onto *normal*."""
    rot = trimesh.transformations.rotation_matrix(math.radians(yaw_degrees), UP)
    if normal is not None:
        rot = trimesh.geometry.align_vectors(UP, normal) @ rot
    return rot


def scatter_category(spec: PlacementSpec, sampler, probe, bucket: SpacingBucket,
                     rng, *, max_slope: float = DEFAULT_MAX_SLOPE,
                     y_offset: float = DEFAULT_Y_OFFSET):
    """Place up to ``spec.count`` instances of one category.

    Parameters
    ----------
    spec : PlacementSpec
    sampler : AreaWeightedSampler (prepared)
    probe : callable(point) -> (hit_point, normal) or None, island-local
    bucket : SpacingBucket, shared with categories that repel this one
    rng : random.Random, consumed in a fixed order
    max_slope, y_offset : global values used when the category leaves them unset

    Returns
    -------
    (instances, report) -- running out of tries is a partial result, not
    an error.
    """
    report = ScatterReport(category=spec.category, requested=max(0, spec.count))
    if not spec.variants or spec.count <= 0:
        logger.debug(f"{spec.category}: nothing to place")
        return [], report

    slope_limit = spec.max_slope if spec.max_slope is not None else max_slope
    lift = spec.y_offset if spec.y_offset is not None else y_offset
    lo, hi = spec.scale_range
    report.budget = max(1, spec.tries_per_object) * spec.count

    instances = []
    while report.placed < spec.count and report.attempts < report.budget:
        report.attempts += 1
        candidate = sampler.sample(rng)

        point = candidate
        normal = UP
        on_surface = False
        hit = probe(candidate)
        if hit is not None:
            hit_point, hit_normal = hit
            if slope_between(hit_normal, UP) > slope_limit:
                report.rejected_slope += 1
                continue
            point, normal, on_surface = hit_point, hit_normal, True

        pos = np.asarray(point, dtype=np.float64) + UP * lift

        if not bucket.is_clear(pos, spec.min_spacing):
            report.rejected_spacing += 1
            continue

        variant = spec.variants[rng.randrange(len(spec.variants))]
        yaw = rng.random() * 360.0
        rot = orientation(yaw, normal if spec.align_to_normal else None)
        scale = lo + (hi - lo) * rng.random()

        instances.append(PlacedInstance(
            category=spec.category,
            variant=variant,
            position=tuple(float(v) for v in pos),
            rotation=tuple(float(v) for v in
                           trimesh.transformations.quaternion_from_matrix(rot)),
            scale=float(scale),
            yaw=float(yaw),
            normal=tuple(float(v) for v in normal),
            on_surface=on_surface,
        ))
        bucket.add(pos)
        report.placed += 1

    if report.under_filled:
        logger.info(f"{spec.category}: placed {report.placed}/{report.requested} "
                    f"after {report.attempts} tries "
                    f"(slope rejects={report.rejected_slope}, "
                    f"spacing rejects={report.rejected_spacing})")
    else:
        logger.info(f"{spec.category}: placed {report.placed} "
                    f"in {report.attempts} tries")
    return instances, report
