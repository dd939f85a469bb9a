"""
Contour edges of a polyhedron seen from a point.

For a convex polyhedron the contour edges (edges between a face facing
the observer and one facing away) are exactly the silhouette.  For a
non‑convex polyhedron they are a superset of it and are refined by
``nonconvex_silhouettes``.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Tuple

from .polyhedron import Polyhedron, PolyhedronEdge
from .vectors import Vec3, dot, sub

logger = logging.getLogger(__name__)


def is_contour_edge(
    polyhedron: Polyhedron, edge: PolyhedronEdge, point: Vec3
) -> Tuple[bool, PolyhedronEdge]:
    """Check whether ``edge`` is a contour edge when seen from ``point``.

    Returns:
        ``(is_contour, oriented_edge)``.  ``oriented_edge`` is ``edge``
        itself when its first face is visible and the flipped edge
        otherwise, so that all contour edges run around the polyhedron
        in the same direction.
    """
    normal1 = polyhedron.planes[edge.plane1].normal
    normal2 = polyhedron.planes[edge.plane2].normal
    relative = sub(polyhedron.vertices[edge.start], point)

    visible1 = dot(relative, normal1) > 0
    visible2 = dot(relative, normal2) > 0

    oriented = edge if visible1 else edge.flipped()
    return visible1 != visible2, oriented


def get_convex_silhouette(polyhedron: Polyhedron, point: Vec3) -> Iterator[PolyhedronEdge]:
    """Yield the oriented contour edges in polyhedron edge order."""
    for edge in polyhedron.edges:
        is_contour, oriented = is_contour_edge(polyhedron, edge, point)
        if is_contour:
            yield oriented


def get_ordered_convex_silhouette_edges(
    polyhedron: Polyhedron, point: Vec3
) -> List[PolyhedronEdge]:
    """Contour edges in walk order, starting with the first contour edge.

    The walk stops early if no edge continues from the current vertex,
    which only happens for open or non‑convex meshes.
    """
    edges = list(get_convex_silhouette(polyhedron, point))
    if not edges:
        return []

    ordered: List[PolyhedronEdge] = []
    remaining = len(edges)
    current = edges[0].start
    while remaining > 0:
        for i in range(remaining):
            edge = edges[i]
            if edge.start == current:
                ordered.append(edge)
                current = edge.end
                remaining -= 1
                edges[i], edges[remaining] = edges[remaining], edges[i]
                break
        else:
            logger.debug(
                "Contour walk from %s stopped at vertex %d with %d edges left",
                point,
                current,
                remaining,
            )
            break
    return ordered


def get_ordered_convex_silhouette(polyhedron: Polyhedron, point: Vec3) -> List[int]:
    """Vertex indices of the convex silhouette in walk order."""
    return [edge.start for edge in get_ordered_convex_silhouette_edges(polyhedron, point)]
