import itertools
import math
import random

import numpy as np
import trimesh

from islandbuilder.models import PlacementSpec
from islandbuilder.sampling import AreaWeightedSampler
from islandbuilder.scatter import SpacingBucket, orientation, scatter_category
from islandbuilder.surface import UP


def _disk(radius=10.0):
    return AreaWeightedSampler().prepare(None, radius)


def _no_surface(point):
    return None


def _flat_surface(height=5.0):
    def probe(point):
        return np.array([point[0], height, point[2]]), UP.copy()
    return probe


def _tilted_surface(degrees):
    a = math.radians(degrees)
    normal = np.array([math.sin(a), math.cos(a), 0.0])

    def probe(point):
        return np.asarray(point, dtype=np.float64), normal
    return probe


def _min_xz_distance(instances):
    best = math.inf
    for a, b in itertools.combinations(instances, 2):
        d = math.hypot(a.position[0] - b.position[0],
                       a.position[2] - b.position[2])
        best = min(best, d)
    return best


def test_disk_scenario_respects_spacing_and_budget():
    spec = PlacementSpec(category='trees', variants=['A'], count=50,
                         min_spacing=3.0, tries_per_object=20)
    instances, report = scatter_category(
        spec, _disk(10.0), _no_surface, SpacingBucket('trees'),
        random.Random(12345))

    assert report.budget == 1000
    assert report.attempts <= 1000
    assert 0 < len(instances) <= 50
    assert report.placed == len(instances)
    assert _min_xz_distance(instances) >= 3.0 - 1e-9
    for inst in instances:
        assert math.hypot(inst.position[0], inst.position[2]) <= 10.0 + 1e-9
        assert inst.on_surface is False
        assert inst.normal == (0.0, 1.0, 0.0)
    # 50 items 3 m apart cannot fit on a 10 m disk
    assert report.under_filled
    assert report.attempts == report.budget


def test_empty_variants_and_zero_count_are_noops():
    rng = random.Random(1)
    state = rng.getstate()
    for spec in (PlacementSpec(category='x', variants=[], count=10),
                 PlacementSpec(category='x', variants=['A'], count=0)):
        instances, report = scatter_category(spec, _disk(), _no_surface,
                                             SpacingBucket('x'), rng)
        assert instances == []
        assert report.attempts == 0
    assert rng.getstate() == state


def test_steep_ground_is_rejected():
    spec = PlacementSpec(category='rocks', variants=['R'], count=5,
                         tries_per_object=4)
    instances, report = scatter_category(
        spec, _disk(), _tilted_surface(30.0), SpacingBucket('rocks'),
        random.Random(4), max_slope=18.0)
    assert instances == []
    assert report.rejected_slope == report.attempts == 20


def test_category_slope_limit_overrides_global():
    spec = PlacementSpec(category='rocks', variants=['R'], count=5,
                         min_spacing=0.0, max_slope=45.0)
    instances, report = scatter_category(
        spec, _disk(), _tilted_surface(30.0), SpacingBucket('rocks'),
        random.Random(4), max_slope=18.0)
    assert len(instances) == 5
    assert report.rejected_slope == 0


def test_hit_point_and_offset_set_height():
    spec = PlacementSpec(category='grass', variants=['G'], count=10,
                         min_spacing=0.5)
    instances, _ = scatter_category(
        spec, _disk(), _flat_surface(5.0), SpacingBucket('grass'),
        random.Random(8), y_offset=0.25)
    assert instances
    for inst in instances:
        assert math.isclose(inst.position[1], 5.25)
        assert inst.on_surface


def test_per_category_offset_overrides_global():
    spec = PlacementSpec(category='grass', variants=['G'], count=3,
                         min_spacing=0.5, y_offset=1.0)
    instances, _ = scatter_category(
        spec, _disk(), _flat_surface(0.0), SpacingBucket('grass'),
        random.Random(8), y_offset=0.02)
    assert all(math.isclose(inst.position[1], 1.0) for inst in instances)


def test_aligned_instances_follow_surface_normal():
    spec = PlacementSpec(category='rocks', variants=['R'], count=5,
                         min_spacing=0.0, align_to_normal=True,
                         max_slope=45.0)
    instances, _ = scatter_category(
        spec, _disk(), _tilted_surface(30.0), SpacingBucket('rocks'),
        random.Random(6))
    for inst in instances:
        rot = trimesh.transformations.quaternion_matrix(inst.rotation)[:3, :3]
        assert np.allclose(rot @ UP, inst.normal, atol=1e-9)


def test_unaligned_instances_stay_upright():
    spec = PlacementSpec(category='trees', variants=['T'], count=5,
                         min_spacing=0.0, max_slope=45.0)
    instances, _ = scatter_category(
        spec, _disk(), _tilted_surface(30.0), SpacingBucket('trees'),
        random.Random(6))
    for inst in instances:
        rot = trimesh.transformations.quaternion_matrix(inst.rotation)[:3, :3]
        assert np.allclose(rot @ UP, UP, atol=1e-9)
        assert 0.0 <= inst.yaw < 360.0


def test_variants_and_scales_drawn_from_placement():
    spec = PlacementSpec(category='flowers', variants=['F1', 'F2', 'F3'],
                         count=40, min_spacing=0.1, scale_range=(0.8, 1.2))
    instances, _ = scatter_category(
        spec, _disk(), _no_surface, SpacingBucket('flowers'), random.Random(2))
    assert {inst.variant for inst in instances} <= {'F1', 'F2', 'F3'}
    assert all(0.8 <= inst.scale <= 1.2 for inst in instances)


def test_shared_bucket_repels_across_categories():
    bucket = SpacingBucket('plants')
    rng = random.Random(21)
    sampler = _disk(6.0)
    placed = []
    for category in ('flowers', 'grass', 'mushrooms'):
        spec = PlacementSpec(category=category, variants=['V'], count=30,
                             min_spacing=0.9, bucket='plants')
        instances, _ = scatter_category(spec, sampler, _no_surface, bucket, rng)
        placed.extend(instances)
    assert len(bucket) == len(placed)
    assert len({inst.category for inst in placed}) > 1
    assert _min_xz_distance(placed) >= 0.9 - 1e-9


def test_spacing_bucket():
    bucket = SpacingBucket('b')
    assert bucket.is_clear((0.0, 0.0, 0.0), 5.0)
    bucket.add((0.0, 10.0, 0.0))
    # Height is ignored
    assert not bucket.is_clear((1.0, 0.0, 1.0), 2.0)
    assert bucket.is_clear((2.0, 0.0, 0.0), 2.0)
    assert bucket.is_clear((0.5, 0.0, 0.0), 0.0)
    assert bucket.points.shape == (1, 2)


def test_orientation_yaw_only():
    rot = orientation(90.0)
    assert np.allclose(rot[:3, :3] @ [1.0, 0.0, 0.0], [0.0, 0.0, -1.0],
                       atol=1e-12)
