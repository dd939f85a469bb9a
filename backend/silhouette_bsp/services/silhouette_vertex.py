"""
Vertex, edge and triangle types of a polyhedron silhouette.

A silhouette vertex is stored symbolically, by polyhedron vertex
indices, so a leaf's silhouette can be re‑evaluated for any observer in
the leaf's cell.  It is either

- a polyhedron vertex (all four indices equal), or
- the apparent intersection of edge ``(a1, a2)`` with edge
  ``(b1, b2)`` as seen from the observer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .polyhedron import Polyhedron, apparent_intersection_parameters
from .vectors import Vec3, lerp, normalize, sub


class SilhouetteConfigurationError(RuntimeError):
    """Two silhouette vertices do not lie on a common polyhedron edge."""


@dataclass(frozen=True)
class SilhouetteVertex:
    a1: int
    a2: int
    b1: int
    b2: int

    @classmethod
    def polyhedron_vertex(cls, index: int) -> "SilhouetteVertex":
        return cls(index, index, index, index)

    @classmethod
    def edge_intersection(cls, a1: int, a2: int, b1: int, b2: int) -> "SilhouetteVertex":
        """Apparent intersection of two edges, independent of their order."""
        if b1 < a1:
            a1, a2, b1, b2 = b1, b2, a1, a2
        return cls(a1, a2, b1, b2)

    @property
    def is_polyhedron_vertex(self) -> bool:
        return self.a1 == self.a2

    @property
    def is_edge_intersection(self) -> bool:
        return self.a1 != self.b1

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.a1, self.a2, self.b1, self.b2)

    def position(self, polyhedron: Polyhedron, observer: Vec3) -> Vec3:
        """3D point of this vertex as seen from ``observer``.

        For an edge intersection this is the point on edge ``a`` that
        appears to lie on edge ``b``.
        """
        if not self.is_edge_intersection:
            return polyhedron.vertices[self.a1]

        a1 = polyhedron.vertices[self.a1]
        a2 = polyhedron.vertices[self.a2]
        b1 = polyhedron.vertices[self.b1]
        b2 = polyhedron.vertices[self.b2]
        params = apparent_intersection_parameters(a1, a2, b1, b2, observer)
        ta = params[0] if params is not None else 0.0
        return lerp(a1, a2, ta)

    def direction(self, polyhedron: Polyhedron, observer: Vec3) -> Vec3:
        return normalize(sub(self.position(polyhedron, observer), observer))


@dataclass(frozen=True)
class SilhouetteEdge:
    start: SilhouetteVertex
    end: SilhouetteVertex


@dataclass(frozen=True)
class SilhouetteTriangle:
    a: SilhouetteVertex
    b: SilhouetteVertex
    c: SilhouetteVertex


def get_shared_edge(a: SilhouetteVertex, b: SilhouetteVertex) -> Tuple[int, int]:
    """The polyhedron edge both silhouette vertices lie on.

    Raises:
        SilhouetteConfigurationError: If no common edge can be
            identified, which means the silhouette was built from
            inconsistent vertices.
    """
    if a.is_polyhedron_vertex and b.is_polyhedron_vertex:
        return (a.a1, b.a1)

    if a.is_edge_intersection and b.is_edge_intersection:
        for edge in ((a.a1, a.a2), (a.b1, a.b2)):
            if edge in ((b.a1, b.a2), (b.b1, b.b2)):
                return edge
        raise SilhouetteConfigurationError(
            f"edge intersections {a.as_tuple()} and {b.as_tuple()} share no edge"
        )

    intersection, vertex = (a, b) if a.is_edge_intersection else (b, a)
    for edge in ((intersection.a1, intersection.a2), (intersection.b1, intersection.b2)):
        if vertex.a1 in edge:
            return edge
    raise SilhouetteConfigurationError(
        f"vertex {vertex.a1} is not an endpoint of either edge of {intersection.as_tuple()}"
    )
