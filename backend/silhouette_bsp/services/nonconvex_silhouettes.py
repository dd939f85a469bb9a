"""
Silhouettes of non‑convex polyhedra.

The silhouette is derived from the contour edges in four steps:

1. find the contour edges (``convex_silhouettes``),
2. find the apparent intersections between contour edges,
3. split contour edges at those intersections into segments that no
   longer cross each other,
4. drop every segment whose midpoint is hidden behind a triangle of the
   polyhedron.

``find_planes`` generates the BSP splitting planes for which this
silhouette changes topology: besides the face planes, the planes
through one edge and an endpoint of another edge that can appear to
cross it.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from ..config import EPSILON
from .convex_silhouettes import get_convex_silhouette
from .planes import Plane
from .polyhedron import Polyhedron, apparent_intersection
from .silhouette_vertex import SilhouetteEdge, SilhouetteVertex, get_shared_edge
from .vectors import Vec3, add, approx_equal, cross, dot, lerp, neg, normalize, sub

logger = logging.getLogger(__name__)


def is_contour(view_direction: Vec3, normal1: Vec3, normal2: Vec3) -> bool:
    """True if exactly one of the two faces faces ``view_direction``."""
    d1 = dot(view_direction, normal1)
    d2 = dot(view_direction, normal2)
    return (d1 > EPSILON and d2 < -EPSILON) or (d1 < -EPSILON and d2 > EPSILON)


def can_visibly_overlap(
    a1: Vec3,
    a2: Vec3,
    b1: Vec3,
    b2: Vec3,
    normal_a1: Vec3,
    normal_a2: Vec3,
    normal_b1: Vec3,
    normal_b2: Vec3,
) -> bool:
    """Whether both edges can be contour edges from a common viewpoint.

    Only the four directions between their endpoints are tried; pairs
    that fail are never part of the same silhouette crossing.
    """
    for direction in (sub(a1, b1), sub(a2, b1), sub(a1, b2), sub(a2, b2)):
        if is_contour(direction, normal_a1, normal_a2) and is_contour(
            direction, normal_b1, normal_b2
        ):
            return True
    return False


def insert_plane(planes: List[Plane], a: Vec3, b: Vec3, c: Vec3) -> None:
    """Append the plane through ``a, b, c`` unless it is already listed.

    Planes are compared up to orientation.  Coincident points are
    skipped.
    """
    if approx_equal(a, b) or approx_equal(b, c) or approx_equal(c, a):
        return
    try:
        plane = Plane.from_points(a, b, c)
    except ValueError:
        return

    for other in planes:
        if dot(plane.normal, other.normal) < 0:
            other = other.flipped
        if other == plane:
            return
    planes.append(plane)


def find_planes(polyhedron: Polyhedron) -> List[Plane]:
    """Candidate BSP planes for non‑convex silhouettes.

    The generated planes come first, in edge pair order, followed by the
    polyhedron's own face planes.
    """
    planes: List[Plane] = []
    edges = polyhedron.edges
    vertices = polyhedron.vertices
    normals = [plane.normal for plane in polyhedron.planes]

    for i, edge1 in enumerate(edges):
        a1 = vertices[edge1.start]
        a2 = vertices[edge1.end]
        normal_a1 = normals[edge1.plane1]
        normal_a2 = normals[edge1.plane2]

        for edge2 in edges[i + 1:]:
            b1 = vertices[edge2.start]
            b2 = vertices[edge2.end]
            if not can_visibly_overlap(
                a1, a2, b1, b2, normal_a1, normal_a2, normals[edge2.plane1], normals[edge2.plane2]
            ):
                continue
            insert_plane(planes, a2, b1, b2)
            insert_plane(planes, a1, b1, b2)
            insert_plane(planes, a1, a2, b2)
            insert_plane(planes, a1, a2, b1)

    generated = len(planes)
    planes.extend(polyhedron.planes)
    logger.info(
        "Found %d candidate planes (%d generated, %d faces)",
        len(planes),
        generated,
        len(polyhedron.planes),
    )
    return planes


def _view_cone_normals(a: Vec3, b: Vec3, c: Vec3) -> Tuple[Vec3, Vec3, Vec3]:
    """Inward unit normals of the cone spanned by three directions."""
    normal_ab = normalize(cross(a, b))
    normal_bc = normalize(cross(b, c))
    normal_ca = normalize(cross(c, a))
    if dot(normal_ab, c) <= 0:
        normal_ab = neg(normal_ab)
    if dot(normal_bc, a) <= 0:
        normal_bc = neg(normal_bc)
    if dot(normal_ca, b) <= 0:
        normal_ca = neg(normal_ca)
    return normal_ab, normal_bc, normal_ca


def _is_occluded(a: Vec3, b: Vec3, c: Vec3, cone: Tuple[Vec3, Vec3, Vec3], m: Vec3, eps: float) -> bool:
    """Whether direction ``m`` passes through triangle ``a, b, c`` (relative to the observer)."""
    normal_ab, normal_bc, normal_ca = cone
    if dot(normal_ab, m) < eps:
        return False
    if dot(normal_bc, m) < eps:
        return False
    if dot(normal_ca, m) < eps:
        return False
    return dot(add(add(a, b), c), m) >= 0


def raycast(polyhedron: Polyhedron, point: Vec3, directions: List[Vec3], eps: float = 1e-6) -> List[bool]:
    """For every direction, whether a ray from ``point`` hits a triangle.

    Rays grazing a triangle edge within ``eps`` count as hits, so a ray
    along an edge shared by two triangles is not lost between them.  The
    occlusion test in :func:`get_silhouette` is strict instead: a
    segment midpoint on a triangle edge is not hidden by that triangle.
    """
    hits = [False] * len(directions)
    for ia, ib, ic in polyhedron.triangles:
        a = sub(polyhedron.vertices[ia], point)
        b = sub(polyhedron.vertices[ib], point)
        c = sub(polyhedron.vertices[ic], point)
        cone = _view_cone_normals(a, b, c)
        for i, direction in enumerate(directions):
            if not hits[i] and _is_occluded(a, b, c, cone, direction, -eps):
                hits[i] = True
    return hits


def get_silhouette(polyhedron: Polyhedron, point: Vec3) -> List[SilhouetteEdge]:
    """Silhouette edges of ``polyhedron`` seen from ``point``, unordered."""
    contour = list(get_convex_silhouette(polyhedron, point))
    vertices = polyhedron.vertices

    # (start, end, midpoint relative to the observer)
    segments: List[Tuple[SilhouetteVertex, SilhouetteVertex, Vec3]] = []
    for i, a in enumerate(contour):
        a1 = vertices[a.start]
        a2 = vertices[a.end]

        intersections: List[Tuple[float, int]] = []
        for j, b in enumerate(contour):
            if i == j:
                continue
            hit = apparent_intersection(a1, a2, vertices[b.start], vertices[b.end], point)
            if hit is not None:
                intersections.append((hit[0], j))
        intersections.sort()

        previous = SilhouetteVertex.polyhedron_vertex(a.start)
        previous_t = 0.0
        for t, j in intersections:
            b = contour[j]
            current = SilhouetteVertex.edge_intersection(a.start, a.end, b.start, b.end)
            midpoint = sub(lerp(a1, a2, (previous_t + t) / 2), point)
            segments.append((previous, current, midpoint))
            previous = current
            previous_t = t

        midpoint = sub(lerp(a1, a2, (previous_t + 1) / 2), point)
        segments.append((previous, SilhouetteVertex.polyhedron_vertex(a.end), midpoint))

    # A segment is hidden when the ray through its midpoint hits a triangle
    for ia, ib, ic in polyhedron.triangles:
        if not segments:
            break
        a = sub(vertices[ia], point)
        b = sub(vertices[ib], point)
        c = sub(vertices[ic], point)
        cone = _view_cone_normals(a, b, c)
        segments = [s for s in segments if not _is_occluded(a, b, c, cone, s[2], EPSILON)]

    return [SilhouetteEdge(start, end) for start, end, _ in segments]


def get_ordered_silhouette(polyhedron: Polyhedron, point: Vec3) -> List[SilhouetteEdge]:
    """Like :func:`get_silhouette` but with each closed loop kept together.

    Whenever possible the edge following edge ``i`` starts where edge
    ``i`` ends; outer boundary and holes follow one another.
    """
    edges = get_silhouette(polyhedron, point)
    for i in range(len(edges) - 1):
        end = edges[i].end
        for j in range(i + 1, len(edges)):
            if edges[j].start == end:
                edges[i + 1], edges[j] = edges[j], edges[i + 1]
                break
    return edges


def silhouette_edge_support(edge: SilhouetteEdge) -> Tuple[int, int]:
    """Polyhedron edge (vertex index pair) a silhouette edge lies on."""
    return get_shared_edge(edge.start, edge.end)
