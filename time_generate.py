"""Time each stage of an IslandBuilder generation."""

import logging
import random
import sys
import time

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

from islandbuilder.builder import IslandBuilder
from islandbuilder.catalog import default_placements
from islandbuilder.export import generate_glb
from islandbuilder.models import ShapeParameters
from islandbuilder.sampling import AreaWeightedSampler, fallback_radius
from islandbuilder.scatter import SpacingBucket, scatter_category
from islandbuilder.surface import extract_top_polygon


def timed_generate(name: str, params: ShapeParameters, seed: int, export: bool):
    builder = IslandBuilder()
    timings = {}

    t0 = time.perf_counter()
    mesh = builder.build_mesh(params)
    timings["1. Mesh build"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    polygon = extract_top_polygon(mesh, params, builder.edge_margin)
    sampler = AreaWeightedSampler().prepare(
        polygon, fallback_radius(params, builder.edge_margin),
        fallback_center=(0.0, params.height, 0.0))
    timings["2. Top polygon + sampler"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    probe = builder.make_probe(mesh)
    rng = random.Random(seed)
    buckets = {}
    for spec in default_placements():
        bucket = buckets.setdefault(spec.bucket_name, SpacingBucket(spec.bucket_name))
        scatter_category(spec, sampler, probe.probe_local, bucket, rng)
    timings["3. Scatter (all categories)"] = time.perf_counter() - t0

    if export:
        t0 = time.perf_counter()
        generate_glb(builder.generate(params, seed=seed), f"{name}.glb")
        timings["4. Full generate + GLB export"] = time.perf_counter() - t0

    print("\n" + "=" * 60)
    print(f"GENERATION COMPLETE: {name}")
    print("=" * 60)
    total = 0
    for label, dur in timings.items():
        print(f"  {label}: {dur * 1000:.1f}ms")
        total += dur
    print(f"  TOTAL: {total * 1000:.1f}ms")
    print("=" * 60)


if __name__ == "__main__":
    export = "--export" in sys.argv

    # High-resolution rim to stress extraction and probing
    params = ShapeParameters(segments=128, height=60.0, top_radius=35.0,
                             bottom_radius=8.0, rim_noise=0.2, seed=1234)
    timed_generate("timing-island", params, seed=12345, export=export)
