"""
Tests for the single pass and two pass BSP builders.
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

# Add the backend directory to sys.path so we can import the package
sys.path.append(str(Path(__file__).resolve().parents[1]))

from silhouette_bsp.services.bsp import BSP, BoundingBox, pseudo_angle  # type: ignore
from silhouette_bsp.services.planes import Plane  # type: ignore
from silhouette_bsp.services.polyhedron import Polyhedron  # type: ignore
from silhouette_bsp.services.two_pass_bsp import TwoPassBSP  # type: ignore

from mesh_samples import cube_mesh  # type: ignore


@pytest.fixture
def cube_planes():
    return Polyhedron.from_mesh(*cube_mesh()).planes


def test_single_plane_gives_two_leaves() -> None:
    bsp = BSP([Plane(0.0, 0.0, 1.0, 0.0)], BoundingBox.cube(100.0), rng=np.random.default_rng(0))
    assert len(bsp.nodes) == 1
    assert len(bsp.leaves) == 2
    assert bsp.leaves[0][2] > 0
    assert bsp.leaves[1][2] < 0
    assert bsp.locate((0.0, 0.0, 5.0)) == 0
    assert bsp.locate((0.0, 0.0, -5.0)) == 1


def test_planes_outside_the_box_give_a_single_leaf() -> None:
    bsp = BSP([Plane(0.0, 0.0, 1.0, -200.0)], BoundingBox.cube(100.0), rng=np.random.default_rng(0))
    assert bsp.nodes == []
    assert bsp.root.is_leaf
    assert len(bsp.leaves) == 1
    assert bsp.locate((1.0, 2.0, 3.0)) == 0


def test_cube_planes_partition_into_grid(cube_planes) -> None:
    bsp = BSP(cube_planes, BoundingBox.cube(100.0), rng=np.random.default_rng(1))
    assert len(bsp.leaves) == 27
    assert len(bsp.nodes) == 26


def test_leaf_points_lie_on_their_branch_side(cube_planes) -> None:
    bsp = BSP(cube_planes, BoundingBox.cube(100.0), rng=np.random.default_rng(2))
    for leaf, path in zip(bsp.leaves, bsp.leaf_paths()):
        for plane, went_left in path:
            assert plane.side(leaf) == went_left
    for i, leaf in enumerate(bsp.leaves):
        assert bsp.locate(leaf) == i


def test_vectorised_locate_matches_scalar(cube_planes) -> None:
    bsp = BSP(cube_planes, BoundingBox.cube(100.0), rng=np.random.default_rng(3))
    points = np.random.default_rng(4).uniform(-50.0, 50.0, size=(200, 3))
    expected = [bsp.locate(tuple(p)) for p in points.tolist()]
    assert bsp.locate_many(points).tolist() == expected


def test_scratch_stacks_are_restored(cube_planes) -> None:
    bounds = BoundingBox.cube(100.0)
    bsp = BSP(cube_planes, bounds, rng=np.random.default_rng(5))
    assert bsp._edges == bounds.edges()
    assert bsp._planes == list(cube_planes)


def test_split_keeps_the_positive_half() -> None:
    bounds = BoundingBox.cube(2.0)
    bsp = BSP([], bounds)
    start, end = bsp.split(Plane(1.0, 0.0, 0.0, 0.0), 0, 12)
    edges = bsp._edges[start:end]
    # 4 edges parallel to the plane, 4 clipped, 4 closing the cut face
    assert len(edges) == 12
    for a, b in edges:
        assert a[0] >= -1e-9 and b[0] >= -1e-9
    cut_face = [e for e in edges if abs(e.a[0]) < 1e-4 and abs(e.b[0]) < 1e-4]
    assert len(cut_face) == 4


def test_pseudo_angle_orders_like_atan2() -> None:
    up = (0.0, 1.0, 0.0)
    right = (1.0, 0.0, 0.0)
    angles = [0.1 + i * 2 * math.pi / 17 for i in range(17)]
    vectors = [(math.cos(a), math.sin(a), 0.0) for a in angles]
    by_atan = sorted(range(17), key=lambda i: math.atan2(vectors[i][1], vectors[i][0]))
    by_pseudo = sorted(range(17), key=lambda i: pseudo_angle(up, right, vectors[i]))
    assert by_atan == by_pseudo


def test_two_pass_finds_the_same_cells(cube_planes) -> None:
    bounds = BoundingBox.cube(100.0)
    first = BSP(cube_planes, bounds, rng=np.random.default_rng(6))
    two = TwoPassBSP(cube_planes, bounds, rng=np.random.default_rng(6))
    assert two.leaf_count == len(first.leaves) == 27
    assert sorted(two.locate(p) for p in first.leaves) == list(range(27))


def test_two_pass_average_depth_matches_leaf_depths(cube_planes) -> None:
    two = TwoPassBSP(cube_planes, BoundingBox.cube(100.0), rng=np.random.default_rng(7))
    depths = two.leaf_depths()
    assert two.average_depth == pytest.approx(sum(depths) / len(depths))
    # Each of the six face planes appears at most once on a path
    assert max(depths) <= 6


def test_leaf_points_stay_inside_the_domain(cube_planes) -> None:
    bounds = BoundingBox.cube(10.0, center=(1.0, 2.0, 3.0))
    assert bounds.center == pytest.approx((1.0, 2.0, 3.0))
    bsp = BSP(cube_planes, bounds, rng=np.random.default_rng(8))
    assert len(bsp.leaves) == 27
    assert all(bounds.contains(leaf) for leaf in bsp.leaves)
