"""
Triangulated silhouettes: the silhouette polygon split into spherical
triangles whose vertices are silhouette vertices.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from .nonconvex_silhouettes import get_silhouette, raycast
from .polyhedron import Polyhedron
from .silhouette_vertex import SilhouetteTriangle, SilhouetteVertex
from .spherical_triangulation import SphericalTriangulation
from .vectors import Vec3, add, normalize, sub

logger = logging.getLogger(__name__)


def _find_or_insert(vertices: List[SilhouetteVertex], vertex: SilhouetteVertex) -> int:
    try:
        return vertices.index(vertex)
    except ValueError:
        vertices.append(vertex)
        return len(vertices) - 1


def get_triangulated_silhouette(
    polyhedron: Polyhedron,
    point: Vec3,
    random: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> List[SilhouetteTriangle]:
    """Triangulate the silhouette of ``polyhedron`` seen from ``point``.

    Triangles of the spherical triangulation that do not cover the
    polyhedron (holes, or the outside of a non‑convex outline) are
    filtered out by casting a ray through their centroid.
    """
    vertices: List[SilhouetteVertex] = []
    edges = []
    for edge in get_silhouette(polyhedron, point):
        a1 = _find_or_insert(vertices, edge.start)
        a2 = _find_or_insert(vertices, edge.end)
        edges.append((a1, a2))

    if not edges:
        return []

    directions = [v.direction(polyhedron, point) for v in vertices]
    optionals = [normalize(sub(v, point)) for v in polyhedron.concave_vertices]
    triangulation = SphericalTriangulation(edges, directions, optionals)
    triangulation.triangulate(random=random, rng=rng)
    triangles = triangulation.find_triangles()

    ray_directions = [
        add(add(triangulation.vertices[a], triangulation.vertices[b]), triangulation.vertices[c])
        for a, b, c in triangles
    ]
    hits = raycast(polyhedron, point, ray_directions)

    def resolve(index: int) -> SilhouetteVertex:
        original, is_optional = triangulation.translate_index(index)
        if is_optional:
            return SilhouetteVertex.polyhedron_vertex(polyhedron.concave_vertex_indices[original])
        return vertices[original]

    result = [
        SilhouetteTriangle(resolve(a), resolve(b), resolve(c))
        for (a, b, c), hit in zip(triangles, hits)
        if hit
    ]
    logger.debug(
        "Triangulated silhouette from %s: %d of %d triangles kept",
        point,
        len(result),
        len(triangles),
    )
    return result
