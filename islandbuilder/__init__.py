"""IslandBuilder package -- procedural low-poly islands with scattered decoration."""

from islandbuilder.builder import IslandBuilder, generate
from islandbuilder.models import (
    PlacedInstance,
    PlacementSpec,
    ShapeParameters,
)
from islandbuilder.surface import SurfaceProbe
