from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from islandbuilder.constants import (
    DEFAULT_SEGMENTS, DEFAULT_HEIGHT, DEFAULT_TOP_RADIUS, DEFAULT_BOTTOM_RADIUS,
    DEFAULT_RIM_NOISE, DEFAULT_SHAPE_SEED, DEFAULT_SCATTER_SEED,
    DEFAULT_EDGE_MARGIN, DEFAULT_MAX_SLOPE, DEFAULT_Y_OFFSET,
    DEFAULT_TRIES_PER_OBJECT, MAX_SEGMENTS,
)
from islandbuilder.models import PlacementSpec, ShapeParameters


class ShapeRequest(BaseModel):
    segments: int = Field(DEFAULT_SEGMENTS, le=MAX_SEGMENTS)
    height: float = DEFAULT_HEIGHT
    top_radius: float = DEFAULT_TOP_RADIUS
    bottom_radius: float = DEFAULT_BOTTOM_RADIUS
    rim_noise: float = DEFAULT_RIM_NOISE
    seed: int = DEFAULT_SHAPE_SEED

    def to_params(self) -> ShapeParameters:
        return ShapeParameters(**self.model_dump())


class PlacementRequest(BaseModel):
    category: str = Field(..., min_length=1)
    variants: List[str] = []
    count: int = Field(0, ge=0)
    min_spacing: float = Field(1.0, ge=0)
    scale_range: Tuple[float, float] = (1.0, 1.0)
    align_to_normal: bool = False
    tries_per_object: int = DEFAULT_TRIES_PER_OBJECT
    bucket: Optional[str] = None
    max_slope: Optional[float] = None
    y_offset: Optional[float] = None

    def to_spec(self) -> PlacementSpec:
        return PlacementSpec.from_dict(self.model_dump())


class GenerateRequest(BaseModel):
    shape: ShapeRequest = ShapeRequest()
    seed: int = DEFAULT_SCATTER_SEED
    edge_margin: float = DEFAULT_EDGE_MARGIN
    max_slope: float = DEFAULT_MAX_SLOPE
    y_offset: float = DEFAULT_Y_OFFSET
    placements: Optional[List[PlacementRequest]] = None
    export: bool = False    # also write a GLB + manifest under /output


class ProbeRequest(BaseModel):
    shape: ShapeRequest = ShapeRequest()
    point: Tuple[float, float, float]
    max_slope: float = DEFAULT_MAX_SLOPE


class ProbeResponse(BaseModel):
    hit: bool
    point: Optional[List[float]] = None
    normal: Optional[List[float]] = None
    slope: Optional[float] = None
    accepted: bool = False


class GenerateResponse(BaseModel):
    params: dict
    seed: int
    using_fallback: bool
    top_area: Optional[float] = None
    vertices: int
    reports: List[dict]
    instances: List[dict]
    model_url: Optional[str] = None
    manifest_url: Optional[str] = None


class ModelInfo(BaseModel):
    name: str
    filename: str
    manifest: Optional[str] = None
