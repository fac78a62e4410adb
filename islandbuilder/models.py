"""Data classes and path management."""

import logging
import pathlib
from dataclasses import dataclass, field, replace
from typing import Optional

import numpy as np
import trimesh
from shapely.geometry import Polygon

from .constants import (
    OUTPUT_DIR,
    DEFAULT_SEGMENTS, MIN_SEGMENTS, MAX_SEGMENTS, DEFAULT_HEIGHT,
    DEFAULT_TOP_RADIUS, DEFAULT_BOTTOM_RADIUS, DEFAULT_RIM_NOISE, MAX_RIM_NOISE,
    DEFAULT_SHAPE_SEED, DEFAULT_TRIES_PER_OBJECT,
)

logger = logging.getLogger(__name__)


class PathManager:
    """Resolve export paths relative to the output directory."""

    @staticmethod
    def get_output_path(filename) -> pathlib.Path:
        """Get the output file path (absolute paths pass through)."""
        return OUTPUT_DIR / filename


@dataclass(frozen=True)
class ShapeParameters:
    segments: int = DEFAULT_SEGMENTS
    height: float = DEFAULT_HEIGHT
    top_radius: float = DEFAULT_TOP_RADIUS
    bottom_radius: float = DEFAULT_BOTTOM_RADIUS
    rim_noise: float = DEFAULT_RIM_NOISE
    seed: int = DEFAULT_SHAPE_SEED

    def normalized(self) -> "ShapeParameters":
        """Return a copy with every field clamped into its valid range.

        Segment counts are kept within [MIN_SEGMENTS, MAX_SEGMENTS], negative
        lengths are zeroed and rim noise is kept within [0, MAX_RIM_NOISE].
        Nothing is ever rejected.
        """
        clamped = replace(
            self,
            segments=min(MAX_SEGMENTS, max(MIN_SEGMENTS, int(self.segments))),
            height=max(0.0, float(self.height)),
            top_radius=max(0.0, float(self.top_radius)),
            bottom_radius=max(0.0, float(self.bottom_radius)),
            rim_noise=min(MAX_RIM_NOISE, max(0.0, float(self.rim_noise))),
            seed=int(self.seed),
        )
        if clamped != self:
            logger.info(f"Shape parameters clamped: {self} -> {clamped}")
        return clamped

    def to_dict(self) -> dict:
        return {
            'segments': self.segments,
            'height': self.height,
            'top_radius': self.top_radius,
            'bottom_radius': self.bottom_radius,
            'rim_noise': self.rim_noise,
            'seed': self.seed,
        }


@dataclass(eq=False)
class LandmassMesh:
    """Island mesh in its local frame (Y-up, bottom rim at Y=0).

    Vertex order is ``[apex][top ring][bottom ring]``.  ``cap_faces`` is
    the top fan and ``wall_faces`` the side strip; both are wound so
    their normals point away from the solid.
    """
    vertices: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    cap_faces: np.ndarray
    wall_faces: np.ndarray
    params: ShapeParameters

    @property
    def faces(self) -> np.ndarray:
        return np.vstack([self.cap_faces, self.wall_faces])

    @property
    def top_height(self) -> float:
        return float(self.vertices[:, 1].max()) if len(self.vertices) else 0.0

    def to_trimesh(self) -> trimesh.Trimesh:
        """Combined cap + walls as a trimesh, vertex order preserved."""
        return trimesh.Trimesh(vertices=self.vertices, faces=self.faces,
                               process=False)


@dataclass(eq=False)
class RimPolygon:
    points: np.ndarray      # (M, 3) sorted by angle around the centroid
    centroid: np.ndarray    # (3,)

    def __len__(self):
        return len(self.points)

    def to_shapely(self) -> Polygon:
        """Project onto the XZ plane as a shapely polygon."""
        return Polygon(self.points[:, [0, 2]])

    @property
    def area(self) -> float:
        """Shoelace area in the XZ plane."""
        if len(self.points) < 3:
            return 0.0
        return float(self.to_shapely().area)


@dataclass(frozen=True)
class FanTriangle:
    a: int          # index into RimPolygon.points
    b: int
    area: float


@dataclass
class TriangleFan:
    triangles: list
    cumulative: np.ndarray
    total_area: float

    def __len__(self):
        return len(self.triangles)


@dataclass
class PlacementSpec:
    """One scatter category: what to place, how many, and under which rules."""
    category: str
    variants: list = field(default_factory=list)
    count: int = 0
    min_spacing: float = 1.0
    scale_range: tuple = (1.0, 1.0)
    align_to_normal: bool = False
    tries_per_object: int = DEFAULT_TRIES_PER_OBJECT
    bucket: Optional[str] = None
    max_slope: Optional[float] = None
    y_offset: Optional[float] = None

    @property
    def bucket_name(self) -> str:
        return self.bucket or self.category

    @classmethod
    def from_dict(cls, data: dict) -> "PlacementSpec":
        """Build a placement from a catalog entry, raising ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"Placement entry must be an object, got {type(data).__name__}")
        category = data.get('category')
        if not category:
            raise ValueError("Placement entry is missing 'category'")

        variants = data.get('variants', [])
        if isinstance(variants, str) or not isinstance(variants, (list, tuple)):
            raise ValueError(f"{category}: 'variants' must be a list")

        count = int(data.get('count', 0))
        if count < 0:
            raise ValueError(f"{category}: 'count' must be >= 0, got {count}")

        min_spacing = float(data.get('min_spacing', 1.0))
        if min_spacing < 0:
            raise ValueError(f"{category}: 'min_spacing' must be >= 0")

        scale_range = data.get('scale_range', (1.0, 1.0))
        try:
            lo, hi = (float(v) for v in scale_range)
        except (TypeError, ValueError):
            raise ValueError(f"{category}: 'scale_range' must be a [min, max] pair")
        if lo > hi:
            raise ValueError(f"{category}: scale_range min {lo} exceeds max {hi}")

        max_slope = data.get('max_slope')
        y_offset = data.get('y_offset')
        return cls(
            category=str(category),
            variants=[str(v) for v in variants],
            count=count,
            min_spacing=min_spacing,
            scale_range=(lo, hi),
            align_to_normal=bool(data.get('align_to_normal', False)),
            tries_per_object=int(data.get('tries_per_object',
                                          DEFAULT_TRIES_PER_OBJECT)),
            bucket=data.get('bucket'),
            max_slope=float(max_slope) if max_slope is not None else None,
            y_offset=float(y_offset) if y_offset is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'variants': list(self.variants),
            'count': self.count,
            'min_spacing': self.min_spacing,
            'scale_range': list(self.scale_range),
            'align_to_normal': self.align_to_normal,
            'tries_per_object': self.tries_per_object,
            'bucket': self.bucket_name,
            'max_slope': self.max_slope,
            'y_offset': self.y_offset,
        }


@dataclass(frozen=True)
class PlacedInstance:
    category: str
    variant: str
    position: tuple         # (x, y, z)
    rotation: tuple         # quaternion (w, x, y, z)
    scale: float
    yaw: float = 0.0        # degrees about the island's up axis
    normal: tuple = (0.0, 1.0, 0.0)
    on_surface: bool = False

    def matrix(self) -> np.ndarray:
        """4x4 translation * rotation * uniform scale."""
        m = trimesh.transformations.quaternion_matrix(self.rotation)
        m[:3, :3] *= self.scale
        m[:3, 3] = self.position
        return m

    def transformed(self, matrix) -> "PlacedInstance":
        """Re-express this instance in the frame of a rigid parent *matrix*."""
        matrix = np.asarray(matrix, dtype=np.float64)
        rot = matrix[:3, :3] / np.linalg.norm(matrix[:3, :3], axis=0)
        world_rot = np.eye(4)
        world_rot[:3, :3] = rot @ trimesh.transformations.quaternion_matrix(
            self.rotation)[:3, :3]
        position = trimesh.transformations.transform_points(
            [self.position], matrix)[0]
        normal = rot @ np.asarray(self.normal)
        return replace(
            self,
            position=tuple(float(v) for v in position),
            rotation=tuple(float(v) for v in
                           trimesh.transformations.quaternion_from_matrix(world_rot)),
            normal=tuple(float(v) for v in normal),
        )

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'variant': self.variant,
            'position': list(self.position),
            'rotation': list(self.rotation),
            'yaw': self.yaw,
            'scale': self.scale,
            'normal': list(self.normal),
            'on_surface': self.on_surface,
        }


@dataclass
class ScatterReport:
    category: str
    requested: int
    placed: int = 0
    attempts: int = 0
    budget: int = 0
    rejected_slope: int = 0
    rejected_spacing: int = 0

    @property
    def under_filled(self) -> bool:
        return self.placed < self.requested

    def to_dict(self) -> dict:
        return {
            'category': self.category,
            'requested': self.requested,
            'placed': self.placed,
            'attempts': self.attempts,
            'budget': self.budget,
            'rejected_slope': self.rejected_slope,
            'rejected_spacing': self.rejected_spacing,
            'under_filled': self.under_filled,
        }


@dataclass(eq=False)
class GenerationResult:
    """Terminal output of one generation run.

    Iterating yields ``(mesh, instances)``.
    """
    params: ShapeParameters
    seed: int
    mesh: LandmassMesh
    polygon: Optional[RimPolygon]
    using_fallback: bool
    instances: list
    reports: list
    probe: object = None

    def __iter__(self):
        return iter((self.mesh, self.instances))

    def instances_by_category(self) -> dict:
        grouped: dict[str, list] = {}
        for inst in self.instances:
            grouped.setdefault(inst.category, []).append(inst)
        return grouped
