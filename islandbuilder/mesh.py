"""Low-poly island mesh: a noisy frustum with a flat fan cap.

The island is built in its own local frame, Y-up, with the bottom rim at
Y = 0 and the flat top at Y = height.  The same per-segment noise factor
scales the top and bottom rim so both rings share one irregular outline.
"""

import math
import logging
import random

import numpy as np
import trimesh

from .models import LandmassMesh, ShapeParameters

logger = logging.getLogger(__name__)


def _rim_noise_factors(segments, rim_noise, seed):
    """One multiplicative radius factor per angular slot."""
    rng = random.Random(seed)
    return np.array([1.0 + (rng.random() * 2.0 - 1.0) * rim_noise
                     for _ in range(segments)], dtype=np.float64)


def _ring(radius, y, angles, noise):
    ring = np.empty((len(angles), 3), dtype=np.float64)
    ring[:, 0] = np.cos(angles) * radius * noise
    ring[:, 1] = y
    ring[:, 2] = np.sin(angles) * radius * noise
    return ring


def _cap_faces(segments, top_start):
    """Fan from the apex (index 0), wound (apex, next, current) for +Y."""
    i = np.arange(segments)
    cur = top_start + i
    nxt = top_start + (i + 1) % segments
    return np.column_stack([np.zeros(segments, dtype=np.int64), nxt, cur])


def _wall_faces(segments, top_start, bot_start):
    """Two triangles per segment, wound for outward normals."""
    i = np.arange(segments)
    j = (i + 1) % segments
    top_a, top_b = top_start + i, top_start + j
    bot_a, bot_b = bot_start + i, bot_start + j
    tri1 = np.column_stack([top_a, top_b, bot_a])
    tri2 = np.column_stack([top_b, bot_b, bot_a])
    # Interleave so each segment's quad stays contiguous
    faces = np.empty((segments * 2, 3), dtype=np.int64)
    faces[0::2] = tri1
    faces[1::2] = tri2
    return faces


def _uvs(vertices, segments, top_radius, bot_start):
    """Planar UVs for apex + top ring, cylindrical for the bottom ring."""
    uvs = np.empty((len(vertices), 2), dtype=np.float64)
    if top_radius > 0:
        diameter = top_radius * 2.0
        uvs[:bot_start, 0] = vertices[:bot_start, 0] / diameter + 0.5
        uvs[:bot_start, 1] = vertices[:bot_start, 2] / diameter + 0.5
    else:
        uvs[:bot_start] = 0.5
    uvs[bot_start:, 0] = np.arange(segments) / segments
    uvs[bot_start:, 1] = 0.0
    return uvs


def build_landmass_mesh(params: ShapeParameters) -> LandmassMesh:
    """Build the island mesh for *params*.

    Parameters are clamped first (see ``ShapeParameters.normalized``), so
    this never fails.  Identical parameters give bit-identical arrays.

    Returns
    -------
    LandmassMesh with vertices ordered ``[apex][top ring][bottom ring]``.
    """
    params = params.normalized()
    segments = params.segments

    noise = _rim_noise_factors(segments, params.rim_noise, params.seed)
    angles = np.arange(segments, dtype=np.float64) / segments * 2.0 * math.pi

    top_ring = _ring(params.top_radius, params.height, angles, noise)
    bot_ring = _ring(params.bottom_radius, 0.0, angles, noise)

    top_start = 1
    bot_start = 1 + segments

    vertices = np.vstack([
        np.array([[0.0, params.height, 0.0]]),
        top_ring,
        bot_ring,
    ])
    cap_faces = _cap_faces(segments, top_start)
    wall_faces = _wall_faces(segments, top_start, bot_start)

    # Normals come from the final geometry rather than being hand-set:
    # face normals aggregated at shared vertices.
    tm = trimesh.Trimesh(vertices=vertices,
                         faces=np.vstack([cap_faces, wall_faces]),
                         process=False)
    normals = np.array(tm.vertex_normals, dtype=np.float64)

    uvs = _uvs(vertices, segments, params.top_radius, bot_start)

    logger.info(f"Island mesh: {len(vertices)} verts, "
                f"{len(cap_faces)} cap + {len(wall_faces)} wall faces "
                f"(segments={segments}, noise={params.rim_noise:.2f}, "
                f"seed={params.seed})")

    return LandmassMesh(
        vertices=vertices,
        normals=normals,
        uvs=uvs,
        cap_faces=cap_faces,
        wall_faces=wall_faces,
        params=params,
    )
