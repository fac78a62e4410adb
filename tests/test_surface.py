import math

import numpy as np
import trimesh

from islandbuilder.constants import CENTER_EXCLUSION_MIN
from islandbuilder.mesh import build_landmass_mesh
from islandbuilder.models import ShapeParameters
from islandbuilder.surface import (
    SurfaceProbe, _dedupe_xz, extract_top_polygon, slope_between,
)


def test_noise_free_rim_is_circle_with_expected_area(circle_params):
    mesh = build_landmass_mesh(circle_params)
    polygon = extract_top_polygon(mesh, circle_params, edge_margin=0.0)
    assert len(polygon) == 32
    radial = np.hypot(polygon.points[:, 0] - polygon.centroid[0],
                      polygon.points[:, 2] - polygon.centroid[2])
    assert np.allclose(radial, 35.0, atol=1e-6)
    assert math.isclose(polygon.area, math.pi * 35.0 ** 2, rel_tol=0.01)


def test_apex_is_not_part_of_rim(default_params):
    mesh = build_landmass_mesh(default_params)
    polygon = extract_top_polygon(mesh, default_params, edge_margin=0.0)
    assert len(polygon) == default_params.segments
    radial = np.hypot(polygon.points[:, 0] - polygon.centroid[0],
                      polygon.points[:, 2] - polygon.centroid[2])
    assert radial.min() > max(0.05 * default_params.top_radius,
                              CENTER_EXCLUSION_MIN)


def test_rim_sorted_by_angle_on_top_plane(default_params):
    mesh = build_landmass_mesh(default_params)
    polygon = extract_top_polygon(mesh, default_params, edge_margin=2.0)
    c = polygon.centroid
    angles = np.arctan2(polygon.points[:, 2] - c[2], polygon.points[:, 0] - c[0])
    assert np.all(np.diff(angles) > 0)
    assert np.allclose(polygon.points[:, 1], default_params.height)
    assert polygon.to_shapely().is_valid


def test_edge_margin_insets_radially(circle_params):
    mesh = build_landmass_mesh(circle_params)
    polygon = extract_top_polygon(mesh, circle_params, edge_margin=2.0)
    radial = np.hypot(polygon.points[:, 0] - polygon.centroid[0],
                      polygon.points[:, 2] - polygon.centroid[2])
    assert np.allclose(radial, 33.0, atol=1e-6)


def test_edge_margin_beyond_radius_clamps_at_centroid(circle_params):
    mesh = build_landmass_mesh(circle_params)
    polygon = extract_top_polygon(mesh, circle_params, edge_margin=50.0)
    assert np.allclose(polygon.points[:, [0, 2]], polygon.centroid[[0, 2]])
    assert polygon.area == 0.0


def test_zero_radius_top_is_degenerate():
    params = ShapeParameters(top_radius=0.0)
    mesh = build_landmass_mesh(params)
    assert extract_top_polygon(mesh, params, edge_margin=0.0) is None


def test_probe_hits_cap_from_above(default_params):
    probe = SurfaceProbe(build_landmass_mesh(default_params))
    hit = probe.probe_local((3.0, default_params.height, -4.0))
    assert hit is not None
    point, normal = hit
    assert np.allclose(point, [3.0, default_params.height, -4.0])
    assert np.allclose(normal, [0.0, 1.0, 0.0])
    assert slope_between(normal) < 1e-6


def test_probe_misses_outside_island_and_out_of_range(default_params):
    probe = SurfaceProbe(build_landmass_mesh(default_params))
    assert probe.probe_local((200.0, default_params.height, 0.0)) is None
    # Ray is only PROBE_LIFT + PROBE_LENGTH long
    assert probe.probe_local((0.0, default_params.height + 10.0, 0.0)) is None
    assert probe.probe_local((0.0, default_params.height - 5.0, 0.0)) is None


def test_probe_in_transformed_frame(circle_params):
    tilt = trimesh.transformations.rotation_matrix(math.radians(10.0), [1, 0, 0])
    transform = trimesh.transformations.translation_matrix([50.0, 5.0, 0.0]) @ tilt
    probe = SurfaceProbe(build_landmass_mesh(circle_params), transform=transform)

    local = np.array([1.0, circle_params.height, 2.0, 1.0])
    world = (transform @ local)[:3]
    hit = probe.probe(world)
    assert hit is not None
    point, normal = hit
    assert np.allclose(point, world, atol=1e-9)
    # Flat against the island's own up, tilted against world up
    assert probe.slope_degrees(normal) < 1e-6
    assert math.isclose(slope_between(normal, [0, 1, 0]), 10.0, abs_tol=1e-6)
    assert probe.accepts(world, max_slope=1.0)
    assert not probe.accepts(world + np.array([500.0, 0.0, 0.0]), max_slope=90.0)


def test_slope_between():
    assert math.isclose(slope_between([0, 1, 0]), 0.0, abs_tol=1e-9)
    assert math.isclose(slope_between([1, 0, 0]), 90.0)
    assert math.isclose(slope_between([1, 1, 0]), 45.0)
    assert slope_between([0, 0, 0]) == 0.0


def test_flat_island_rim_ignores_bottom_ring():
    params = ShapeParameters(height=-5.0, rim_noise=0.3, seed=8)
    mesh = build_landmass_mesh(params)
    assert np.allclose(mesh.vertices[:, 1], 0.0)

    polygon = extract_top_polygon(mesh, params, edge_margin=0.0)
    assert len(polygon) == params.segments
    cap_area = mesh.to_trimesh().area_faces[:len(mesh.cap_faces)].sum()
    assert math.isclose(polygon.area, cap_area, rel_tol=1e-6)


def test_dedupe_keeps_first_of_each_cluster():
    points = np.array([
        [0.0, 1.0, 0.0],
        [5.0, 1.0, 0.0],
        [0.0005, 1.0, 0.0],     # within 1e-3 of the first
        [5.0, 1.0, 0.0],
        [0.0, 1.0, 5.0],
    ])
    unique = _dedupe_xz(points)
    assert np.array_equal(unique, points[[0, 1, 4]])


def test_dense_rim_extraction_stays_bounded():
    params = ShapeParameters(segments=100000)
    mesh = build_landmass_mesh(params)
    polygon = extract_top_polygon(mesh, params, edge_margin=2.0)
    assert len(polygon) == 128
