"""
Polyhedron model built from a raw triangle mesh.

Compared to the raw vertex/index buffers handed over by a mesh
importer, a :class:`Polyhedron` exposes the features the silhouette
algorithms need without duplicate vertices and without the edges that
only exist because a planar face was triangulated:

- ``vertices`` – distinct vertex positions (epsilon deduplicated).
- ``planes`` – distinct face planes.
- ``edges`` – real polyhedron edges, each linking its two faces and
  oriented so that a contour edge's visible face can be read off with
  a single dot product.
- ``triangles`` – triangles re‑indexed into ``vertices``.
- ``vertex_concavity`` – per‑vertex flag for vertices adjacent to a
  reflex edge; such vertices can show up inside a non‑convex
  silhouette.

The silhouette algorithms themselves are free functions in
``convex_silhouettes`` and ``nonconvex_silhouettes`` taking a
polyhedron and a viewpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from ..config import EPSILON
from .planes import Plane
from .vectors import Vec3, approx_equal, cross, dot, lerp, sign, sub

logger = logging.getLogger(__name__)


class NonManifoldMeshError(ValueError):
    """Raised when an edge is shared by more than two triangles."""


@dataclass(frozen=True)
class PolyhedronEdge:
    """Edge between two vertices, linking the two faces that meet there.

    Attributes:
        start: Index of the start vertex.
        end: Index of the end vertex.
        plane1: Index of the first incident face plane.
        plane2: Index of the second incident face plane.
    """

    start: int
    end: int
    plane1: int
    plane2: int

    def flipped(self) -> "PolyhedronEdge":
        """The same edge walked the other way, with its planes swapped."""
        return PolyhedronEdge(self.end, self.start, self.plane2, self.plane1)


@dataclass
class _OpenEdge:
    start: int
    end: int
    plane: int


@dataclass(frozen=True)
class Polyhedron:
    """Deduplicated polyhedron derived from a triangle mesh.

    Instances are built once by :meth:`from_mesh` and never modified.
    """

    vertices: List[Vec3]
    planes: List[Plane]
    edges: List[PolyhedronEdge]
    triangles: List[Tuple[int, int, int]]
    vertex_concavity: List[bool]
    concave_vertex_indices: List[int] = field(default_factory=list)

    @property
    def concave_vertices(self) -> List[Vec3]:
        return [self.vertices[i] for i in self.concave_vertex_indices]

    @property
    def bounds(self) -> Tuple[Vec3, Vec3]:
        """Axis aligned ``(min, max)`` corners of the vertices."""
        arr = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3)
        lo = arr.min(axis=0)
        hi = arr.max(axis=0)
        return (tuple(lo.tolist()), tuple(hi.tolist()))  # type: ignore[return-value]

    @classmethod
    def from_mesh(
        cls,
        vertices: Sequence[float] | Sequence[Sequence[float]] | np.ndarray,
        indices: Sequence[int] | np.ndarray,
    ) -> "Polyhedron":
        """Build a polyhedron from vertex positions and a triangle list.

        Args:
            vertices: Either a flat list ``[x0, y0, z0, x1, ...]`` or an
                array‑like of shape ``(N, 3)``.
            indices: Flat triangle index list; every three entries form
                one triangle.

        Raises:
            ValueError: If the index list is malformed.
            NonManifoldMeshError: If an edge belongs to more than two
                triangles.
        """
        raw = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        index_arr = np.asarray(indices, dtype=np.int64).reshape(-1)
        if index_arr.size % 3 != 0:
            raise ValueError(
                f"triangle index count must be a multiple of 3, got {index_arr.size}"
            )
        if index_arr.size and (index_arr.min() < 0 or index_arr.max() >= len(raw)):
            raise ValueError("triangle index out of range")

        # Distinct vertices; remap[old] == new
        distinct: List[Vec3] = []
        remap: List[int] = []
        for row in raw.tolist():
            v = (float(row[0]), float(row[1]), float(row[2]))
            for j, existing in enumerate(distinct):
                if approx_equal(existing, v):
                    remap.append(j)
                    break
            else:
                remap.append(len(distinct))
                distinct.append(v)

        builder = _EdgeBuilder(distinct)
        triangles: List[Tuple[int, int, int]] = []
        skipped = 0
        for i in range(0, index_arr.size, 3):
            a = remap[int(index_arr[i])]
            b = remap[int(index_arr[i + 1])]
            c = remap[int(index_arr[i + 2])]
            try:
                plane = Plane.from_points(distinct[a], distinct[b], distinct[c])
            except ValueError:
                skipped += 1
                continue
            plane_index = builder.plane_index(plane)
            builder.insert(a, b, c, plane_index)
            builder.insert(b, c, a, plane_index)
            builder.insert(c, a, b, plane_index)
            triangles.append((a, b, c))

        if skipped:
            logger.warning("Skipped %d degenerate triangles", skipped)
        if builder.open_edges:
            logger.debug("Mesh has %d open boundary edges", len(builder.open_edges))

        edges = _fix_edge_orientations(distinct, builder.planes, builder.edges)
        concave = [i for i, flag in enumerate(builder.concavity) if flag]
        logger.debug(
            "Polyhedron: %d vertices, %d planes, %d edges, %d triangles, %d concave vertices",
            len(distinct),
            len(builder.planes),
            len(edges),
            len(triangles),
            len(concave),
        )
        return cls(
            vertices=distinct,
            planes=builder.planes,
            edges=edges,
            triangles=triangles,
            vertex_concavity=builder.concavity,
            concave_vertex_indices=concave,
        )


class _EdgeBuilder:
    """Collects distinct planes and pairs up triangle edges."""

    def __init__(self, vertices: List[Vec3]) -> None:
        self.vertices = vertices
        self.planes: List[Plane] = []
        self.edges: List[PolyhedronEdge] = []
        self.concavity: List[bool] = [False] * len(vertices)
        self.open_edges: Dict[Tuple[int, int], _OpenEdge] = {}
        self._closed: Set[Tuple[int, int]] = set()

    def plane_index(self, plane: Plane) -> int:
        for j, existing in enumerate(self.planes):
            if existing == plane:
                return j
        self.planes.append(plane)
        return len(self.planes) - 1

    def insert(self, start: int, end: int, third: int, plane: int) -> None:
        key = (start, end) if start < end else (end, start)
        if key in self._closed:
            raise NonManifoldMeshError(
                f"edge between vertices {key[0]} and {key[1]} is shared by more than two triangles"
            )
        pending = self.open_edges.pop(key, None)
        if pending is None:
            self.open_edges[key] = _OpenEdge(start, end, plane)
            return

        self._closed.add(key)
        # Both triangles lie in the same face: the edge is a triangulation artifact
        if pending.plane == plane:
            return

        edge = PolyhedronEdge(start, end, plane, pending.plane)
        self.edges.append(edge)
        tangent = sub(self.vertices[third], self.vertices[start])
        is_concave = dot(tangent, self.planes[edge.plane2].normal) > 0
        if is_concave:
            self.concavity[start] = True
            self.concavity[end] = True


def _fix_edge_orientations(
    vertices: List[Vec3], planes: List[Plane], edges: List[PolyhedronEdge]
) -> List[PolyhedronEdge]:
    """Order each edge's planes so that ``(n1×n2)·(end-start) >= 0``.

    With this orientation the visible face of a contour edge is always
    ``plane1`` after the per‑query flip in ``is_contour_edge``, which
    gives every contour edge the same winding around the silhouette.
    """
    fixed: List[PolyhedronEdge] = []
    for edge in edges:
        n1 = planes[edge.plane1].normal
        n2 = planes[edge.plane2].normal
        direction = sub(vertices[edge.end], vertices[edge.start])
        if dot(cross(n1, n2), direction) < 0:
            edge = PolyhedronEdge(edge.start, edge.end, edge.plane2, edge.plane1)
        fixed.append(edge)
    return fixed


def apparent_intersection_parameters(
    a1: Vec3, a2: Vec3, b1: Vec3, b2: Vec3, p: Vec3
) -> Optional[Tuple[float, float]]:
    """Interpolation parameters where edges ``a`` and ``b`` appear to cross.

    The crossing is computed as seen from ``p``: the planes through
    ``p`` and each edge are intersected with the other edge.  The two
    parameters generally describe different 3D points because the edges
    do not intersect in space.  Returns ``None`` when an edge is
    parallel to the other edge's plane.
    """
    an = cross(sub(a1, p), sub(a2, p))
    bn = cross(sub(b1, p), sub(b2, p))
    den_a = dot(sub(a2, a1), bn)
    den_b = dot(sub(b2, b1), an)
    if den_a == 0.0 or den_b == 0.0:
        return None
    ta = dot(sub(p, a1), bn) / den_a
    tb = dot(sub(p, b1), an) / den_b
    return ta, tb


def apparent_intersection(
    a1: Vec3, a2: Vec3, b1: Vec3, b2: Vec3, p: Vec3
) -> Optional[Tuple[float, float]]:
    """Return ``(ta, tb)`` if edges ``a`` and ``b`` visibly cross from ``p``.

    Both parameters must lie strictly inside ``(EPSILON, 1 - EPSILON)``
    and both crossing points must lie on the same ray from ``p`` (not on
    opposite sides of the observer).
    """
    params = apparent_intersection_parameters(a1, a2, b1, b2, p)
    if params is None:
        return None
    ta, tb = params
    an = cross(sub(a1, p), sub(a2, p))
    bn = cross(sub(b1, p), sub(b2, p))
    d = cross(an, bn)
    if sign(dot(sub(lerp(a1, a2, ta), p), d)) != sign(dot(sub(lerp(b1, b2, tb), p), d)):
        return None
    if EPSILON < ta < 1 - EPSILON and EPSILON < tb < 1 - EPSILON:
        return ta, tb
    return None
