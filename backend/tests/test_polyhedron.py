"""
Tests for building a polyhedron from a triangle mesh.
"""

import dataclasses
import sys
from pathlib import Path

import pytest

# Add the backend directory to sys.path so we can import the package
sys.path.append(str(Path(__file__).resolve().parents[1]))

from silhouette_bsp.services.polyhedron import (  # type: ignore
    NonManifoldMeshError,
    Polyhedron,
    apparent_intersection,
)
from silhouette_bsp.services.vectors import cross, dot, sub  # type: ignore

from mesh_samples import cube_mesh, dented_cube_mesh, frame_mesh, unindexed_cube_mesh  # type: ignore


def test_cube_features() -> None:
    poly = Polyhedron.from_mesh(*cube_mesh())
    assert len(poly.vertices) == 8
    assert len(poly.planes) == 6
    # Face diagonals are triangulation artifacts and must not show up
    assert len(poly.edges) == 12
    assert len(poly.triangles) == 12
    assert poly.concave_vertex_indices == []
    lo, hi = poly.bounds
    assert lo == pytest.approx((-0.5, -0.5, -0.5))
    assert hi == pytest.approx((0.5, 0.5, 0.5))


def test_duplicate_vertices_are_merged() -> None:
    poly = Polyhedron.from_mesh(*unindexed_cube_mesh())
    assert len(poly.vertices) == 8
    assert len(poly.edges) == 12


def test_edge_orientation_is_normalised() -> None:
    poly = Polyhedron.from_mesh(*dented_cube_mesh())
    for edge in poly.edges:
        n1 = poly.planes[edge.plane1].normal
        n2 = poly.planes[edge.plane2].normal
        direction = sub(poly.vertices[edge.end], poly.vertices[edge.start])
        assert dot(cross(n1, n2), direction) >= 0


def test_dent_vertices_are_concave() -> None:
    poly = Polyhedron.from_mesh(*dented_cube_mesh())
    assert len(poly.planes) == 9
    assert len(poly.edges) == 16
    assert sorted(poly.concave_vertex_indices) == [4, 5, 6, 7, 8]
    assert poly.concave_vertices[-1] == pytest.approx((0.0, 0.0, 0.2))


def test_non_manifold_edge_is_rejected() -> None:
    vertices = [0, 0, 0, 1, 0, 0, 0, 1, 0, 0, -1, 0, 0, 0, 1]
    indices = [0, 1, 2, 1, 0, 3, 0, 1, 4]
    with pytest.raises(NonManifoldMeshError):
        Polyhedron.from_mesh(vertices, indices)


def test_malformed_index_list_is_rejected() -> None:
    vertices, indices = cube_mesh()
    with pytest.raises(ValueError):
        Polyhedron.from_mesh(vertices, indices[:-1])
    with pytest.raises(ValueError):
        Polyhedron.from_mesh(vertices, indices[:-3] + [0, 1, 99])


def test_degenerate_triangles_are_skipped() -> None:
    vertices, indices = cube_mesh()
    poly = Polyhedron.from_mesh(vertices, indices + [0, 1, 1])
    assert len(poly.triangles) == 12


def test_apparent_intersection_of_crossing_edges() -> None:
    # Two edges crossing in an X when seen from above, at different heights
    p = (0.0, 0.0, 10.0)
    hit = apparent_intersection((-1.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, -1.0, -1.0), (0.0, 1.0, -1.0), p)
    assert hit is not None
    ta, tb = hit
    assert ta == pytest.approx(0.5)
    assert tb == pytest.approx(0.5)


def test_apparent_intersection_misses() -> None:
    p = (0.0, 0.0, 10.0)
    # Edge b lies entirely to the right of edge a's end
    assert apparent_intersection((-1.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, -1.0, 0.0), (2.0, 1.0, 0.0), p) is None
    # Parallel edges never cross
    assert apparent_intersection((-1.0, 0.0, 0.0), (1.0, 0.0, 0.0), (-1.0, 1.0, 0.0), (1.0, 1.0, 0.0), p) is None


def test_frame_features() -> None:
    poly = Polyhedron.from_mesh(*frame_mesh())
    assert len(poly.vertices) == 16
    # Top, bottom, four outer walls and four walls of the hole
    assert len(poly.planes) == 10
    assert len(poly.edges) == 24
    assert len(poly.triangles) == 32
    # The vertical edges of the hole are the only concave edges
    assert sorted(poly.concave_vertex_indices) == list(range(8, 16))


def test_polyhedron_is_immutable() -> None:
    poly = Polyhedron.from_mesh(*cube_mesh())
    with pytest.raises(dataclasses.FrozenInstanceError):
        poly.vertices = []  # type: ignore[misc]
