"""IslandBuilder -- thin orchestrator that delegates to focused modules."""

import logging
import random
import time

import numpy as np

from .catalog import default_placements
from .constants import (
    DEFAULT_EDGE_MARGIN, DEFAULT_MAX_SLOPE, DEFAULT_Y_OFFSET,
    DEFAULT_SCATTER_SEED,
)
from .mesh import build_landmass_mesh
from .models import GenerationResult, ShapeParameters
from .sampling import AreaWeightedSampler, fallback_radius
from .scatter import SpacingBucket, scatter_category
from .surface import SurfaceProbe, extract_top_polygon

logger = logging.getLogger(__name__)


class IslandBuilder:
    def __init__(self, edge_margin=DEFAULT_EDGE_MARGIN,
                 max_slope=DEFAULT_MAX_SLOPE, y_offset=DEFAULT_Y_OFFSET,
                 transform=None):
        """
        edge_margin: keep scattered items this far inside the cliff edge.
        max_slope: degrees against the island's up axis, unless a
            category sets its own.
        y_offset: lift applied to placed items, unless a category sets its own.
        transform: optional rigid 4x4 (rotation + translation) placing the
            island in a parent frame; instances and probe results are
            reported in that frame.  Spacing is enforced before the
            transform is applied, so a scaling transform is rejected.
        """
        self.edge_margin = edge_margin
        self.max_slope = max_slope
        self.y_offset = y_offset
        self.transform = None
        if transform is not None:
            self.transform = np.asarray(transform, dtype=np.float64)
            if self.transform.shape != (4, 4):
                raise ValueError(f"Island transform must be rigid 4x4, got "
                                 f"shape {self.transform.shape}")
            axes = np.linalg.norm(self.transform[:3, :3], axis=0)
            if not np.allclose(axes, 1.0, atol=1e-6):
                raise ValueError(f"Island transform must be rigid, got "
                                 f"axis scales {np.round(axes, 6).tolist()}")

    def build_mesh(self, params: ShapeParameters):
        return build_landmass_mesh(params)

    def make_probe(self, mesh) -> SurfaceProbe:
        return SurfaceProbe(mesh, transform=self.transform)

    def generate(self, params: ShapeParameters, placements=None,
                 seed: int = DEFAULT_SCATTER_SEED,
                 progress_callback=None) -> GenerationResult:
        """Build the island and scatter every placement category on it.

        A full, deterministic rebuild: identical inputs give identical
        output.  *placements* defaults to the built-in catalog and is
        processed in order from a single ``random.Random(seed)``.
        """
        def _progress(pct, msg):
            if progress_callback:
                progress_callback(pct, msg)

        t0 = time.perf_counter()
        params = params.normalized()
        if placements is None:
            placements = default_placements()

        _progress(10, "Building island mesh...")
        mesh = self.build_mesh(params)

        _progress(30, "Extracting top surface...")
        polygon = extract_top_polygon(mesh, params, self.edge_margin)
        sampler = AreaWeightedSampler().prepare(
            polygon,
            fallback_radius(params, self.edge_margin),
            fallback_center=(0.0, params.height, 0.0),
        )

        probe = self.make_probe(mesh)
        rng = random.Random(seed)
        buckets: dict[str, SpacingBucket] = {}
        instances = []
        reports = []

        n = max(1, len(placements))
        for i, spec in enumerate(placements):
            _progress(40 + 50 * i / n, f"Scattering {spec.category}...")
            bucket = buckets.setdefault(spec.bucket_name,
                                        SpacingBucket(spec.bucket_name))
            placed, report = scatter_category(
                spec, sampler, probe.probe_local, bucket, rng,
                max_slope=self.max_slope, y_offset=self.y_offset)
            if self.transform is not None:
                placed = [inst.transformed(self.transform) for inst in placed]
            instances.extend(placed)
            reports.append(report)

        _progress(100, "Generation complete")
        logger.info(f"Generated island (shape seed={params.seed}, "
                    f"scatter seed={seed}): {len(instances)} instances in "
                    f"{len(reports)} categories, "
                    f"fallback={'yes' if sampler.using_fallback else 'no'}, "
                    f"{time.perf_counter() - t0:.3f}s")

        return GenerationResult(
            params=params,
            seed=seed,
            mesh=mesh,
            polygon=sampler.polygon,
            using_fallback=sampler.using_fallback,
            instances=instances,
            reports=reports,
            probe=probe,
        )


def generate(params: ShapeParameters, placements=None,
             seed: int = DEFAULT_SCATTER_SEED, **builder_kwargs) -> GenerationResult:
    """One-call generation: ``mesh, instances = generate(params, specs, seed)``."""
    return IslandBuilder(**builder_kwargs).generate(params, placements, seed)
