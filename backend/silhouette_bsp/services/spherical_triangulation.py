"""
Constrained triangulation of a polygon on the unit sphere.

The polygon is given as directions (points on the sphere around the
observer) and boundary edges between them; it may consist of several
loops, i.e. an outer boundary with holes.  Diagonals are added in
random order between all vertex pairs whose great‑circle arc does not
cross an existing edge, which yields a maximal planar graph.  The
triangles are then read off the graph.

*Optional* directions (the directions towards concave polyhedron
vertices) are inserted as extra vertices when they are not covered by
the first triangulation; this gives the triangulation vertices inside
the silhouette where the surface folds.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..config import EPSILON
from .vectors import Vec3, add, cross, distance, dot, neg, normalize, signed_angle, sub, sign

logger = logging.getLogger(__name__)

# Optional directions closer than this to a polygon vertex are dropped
OPTIONAL_MERGE_DISTANCE = 1e-4


class SphericalTriangulation:
    """Triangulate a spherical polygon.

    Args:
        edges: Boundary edges as index pairs into ``vertices``.
        vertices: Required vertex directions.
        optionals: Directions that may be added as extra vertices.

    Example:
        >>> t = SphericalTriangulation(edges, directions, [])
        >>> t.triangulate(random=False)
        >>> triangles = t.find_triangles()
    """

    def __init__(
        self,
        edges: Iterable[Tuple[int, int]],
        vertices: Sequence[Vec3],
        optionals: Sequence[Vec3] = (),
    ) -> None:
        self.vertices: List[Vec3] = list(vertices)
        self.edges: List[Tuple[int, int]] = []
        self.adjacency: List[List[int]] = [[] for _ in self.vertices]
        self.original_vertex_count = len(self.vertices)

        # (original optional index, direction) for optionals that survive
        normalized = [normalize(v) for v in self.vertices]
        self.optionals: List[Tuple[int, Vec3]] = [
            (i, o)
            for i, o in enumerate(optionals)
            if all(distance(normalize(o), v) >= OPTIONAL_MERGE_DISTANCE for v in normalized)
        ]
        self._optional_index_map: List[int] = []
        self._pairs: List[Tuple[int, int]] = []

        for a1, a2 in edges:
            self._add_edge(a1, a2)

    def triangulate(self, random: bool = True, rng: Optional[np.random.Generator] = None) -> None:
        """Add diagonals (and uncovered optional vertices) until maximal.

        ``random=False`` uses a fixed seed so the result is reproducible;
        an explicit ``rng`` takes precedence over both.
        """
        if rng is None:
            rng = np.random.default_rng() if random else np.random.default_rng(0)

        n = len(self.vertices)
        self._pairs = [(a1, a2) for a1 in range(n) for a2 in range(a1 + 1, n)]
        self._find_diagonals(rng)

        covered = self._triangle_test(self.find_triangles(), [o for _, o in self.optionals])
        added = 0
        for (original_index, direction), is_covered in zip(self.optionals, covered):
            if not is_covered:
                self._add_vertex(direction)
                self._optional_index_map.append(original_index)
                added += 1

        if added:
            logger.debug("Inserted %d optional vertices", added)
            self._find_diagonals(rng)

    def find_triangles(self) -> List[Tuple[int, int, int]]:
        """Triangles of the current graph, counter‑clockwise seen from outside.

        Every triangle ``(a, b, c)`` satisfies ``((B-A)×(C-A))·A > 0``.
        Triangles are returned in ascending order of their sorted index
        triple.
        """
        candidates = set()
        for a, neighbours in enumerate(self.adjacency):
            if len(neighbours) < 2:
                continue
            va = self.vertices[a]
            zero_direction = sub(self.vertices[neighbours[0]], va)
            ordered = sorted(
                neighbours,
                key=lambda c: signed_angle(zero_direction, sub(self.vertices[c], va), va),
            )
            for i, b in enumerate(ordered):
                c = ordered[(i + 1) % len(ordered)]
                if c in self.adjacency[b]:
                    candidates.add(tuple(sorted((a, b, c))))

        triangles: List[Tuple[int, int, int]] = []
        for a, b, c in sorted(candidates):
            if b == c or not self._is_valid_triangle(a, b, c):
                continue
            va, vb, vc = self.vertices[a], self.vertices[b], self.vertices[c]
            if dot(cross(sub(vb, va), sub(vc, va)), va) > 0:
                triangles.append((a, b, c))
            else:
                triangles.append((b, a, c))
        return triangles

    def translate_index(self, index: int) -> Tuple[int, bool]:
        """Map a vertex index to ``(index in the input list, is_optional)``."""
        if index >= self.original_vertex_count:
            return self._optional_index_map[index - self.original_vertex_count], True
        return index, False

    def _add_edge(self, a1: int, a2: int) -> None:
        self.edges.append((a1, a2))
        self.adjacency[a1].append(a2)
        self.adjacency[a2].append(a1)

    def _add_vertex(self, vertex: Vec3) -> int:
        index = len(self.vertices)
        self._pairs.extend((i, index) for i in range(index))
        self.vertices.append(vertex)
        self.adjacency.append([])
        return index

    def _find_diagonals(self, rng: np.random.Generator) -> None:
        pairs = self._pairs
        while pairs:
            i = int(rng.integers(len(pairs)))
            a1, a2 = pairs[i]
            pairs[i] = pairs[-1]
            pairs.pop()
            self._try_connect(a1, a2)

    def _try_connect(self, a1: int, a2: int) -> None:
        if a2 in self.adjacency[a1]:
            return
        va1 = self.vertices[a1]
        va2 = self.vertices[a2]
        for b1, b2 in self.edges:
            if a1 in (b1, b2) or a2 in (b1, b2):
                continue
            if _intersects(va1, va2, self.vertices[b1], self.vertices[b2]):
                return
        self._add_edge(a1, a2)

    def _is_valid_triangle(self, a: int, b: int, c: int) -> bool:
        """False if another vertex lies inside the spherical triangle."""
        va, vb, vc = self.vertices[a], self.vertices[b], self.vertices[c]
        normal_ab = cross(va, vb)
        normal_bc = cross(vb, vc)
        normal_ca = cross(vc, va)
        if dot(normal_ab, vc) < 0:
            normal_ab = neg(normal_ab)
        if dot(normal_bc, va) < 0:
            normal_bc = neg(normal_bc)
        if dot(normal_ca, vb) < 0:
            normal_ca = neg(normal_ca)

        for i, v in enumerate(self.vertices):
            if i in (a, b, c):
                continue
            if dot(normal_ab, v) < 0 or dot(normal_bc, v) < 0 or dot(normal_ca, v) < 0:
                continue
            return False
        return True

    def _triangle_test(
        self, triangles: List[Tuple[int, int, int]], directions: List[Vec3]
    ) -> List[bool]:
        """For every direction, whether some triangle covers it."""
        covered = [False] * len(directions)
        for a, b, c in triangles:
            va, vb, vc = self.vertices[a], self.vertices[b], self.vertices[c]
            normal_ab = normalize(cross(va, vb))
            normal_bc = normalize(cross(vb, vc))
            normal_ca = normalize(cross(vc, va))
            if dot(normal_ab, vc) <= 0:
                normal_ab = neg(normal_ab)
            if dot(normal_bc, va) <= 0:
                normal_bc = neg(normal_bc)
            if dot(normal_ca, vb) <= 0:
                normal_ca = neg(normal_ca)
            normal = cross(sub(vb, va), sub(vc, va))

            for i, direction in enumerate(directions):
                if covered[i]:
                    continue
                if dot(normal_ab, direction) < -EPSILON:
                    continue
                if dot(normal_bc, direction) < -EPSILON:
                    continue
                if dot(normal_ca, direction) < -EPSILON:
                    continue
                denominator = dot(direction, normal)
                if denominator == 0.0 or dot(va, normal) / denominator < 0:
                    continue
                covered[i] = True
        return covered


def _intersects(a1: Vec3, a2: Vec3, b1: Vec3, b2: Vec3) -> bool:
    """Whether the great‑circle arcs ``a1–a2`` and ``b1–b2`` cross."""
    normal_a = cross(a1, a2)
    normal_b = cross(b1, b2)
    intersection = cross(normal_a, normal_b)

    if sign(dot(b1, normal_a), EPSILON) == sign(dot(b2, normal_a), EPSILON):
        return False
    if sign(dot(a1, normal_b), EPSILON) == sign(dot(a2, normal_b), EPSILON):
        return False
    if sign(dot(intersection, add(a1, a2)), EPSILON) != sign(dot(intersection, add(b1, b2)), EPSILON):
        return False
    return True
