"""
Binary space partition of a bounding box into convex cells.

The builder starts from the twelve edges of an axis aligned box, which
describe the first convex cell, and recursively cuts cells with the
supplied planes until no plane cuts a cell any more.  Each cell that
cannot be cut becomes a leaf and receives one representative point
inside it.  The silhouette of a polyhedron is assumed to be
topologically constant within a leaf, so the representative point
stands in for every observer position in the cell.

Cells are stored as lists of boundary edges on a shared scratch stack.
Each recursion level appends its own edges and planes and truncates
the stacks back to its checkpoint before returning, so a subtree never
sees entries written by its sibling.

Node references are tagged (:class:`NodeRef`) instead of using the
sign of an index; the signed layout expected by renderers is produced
only when an asset is assembled (see ``bake.py``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from ..config import BSP_DEBUG, EPSILON
from .planes import Plane
from .vectors import (
    Vec3,
    ZERO,
    add,
    approx_equal,
    centroid,
    clamp,
    cross,
    distance,
    divide_safe,
    dot,
    length,
    lerp,
    normalize,
    scale,
    sub,
)

logger = logging.getLogger(__name__)


class CellEdge(NamedTuple):
    """Boundary edge of a convex BSP cell."""

    a: Vec3
    b: Vec3


@dataclass(frozen=True)
class NodeRef:
    """Reference to either an inner node or a leaf of a :class:`BSPTree`."""

    kind: str
    index: int

    @classmethod
    def inner(cls, index: int) -> "NodeRef":
        return cls("inner", index)

    @classmethod
    def leaf(cls, index: int) -> "NodeRef":
        return cls("leaf", index)

    @property
    def is_leaf(self) -> bool:
        return self.kind == "leaf"


@dataclass
class BSPNode:
    """Inner node; ``left`` holds the positive side of ``plane``."""

    plane: Plane
    left: Optional[NodeRef] = None
    right: Optional[NodeRef] = None


@dataclass(frozen=True)
class BoundingBox:
    min: Vec3
    max: Vec3

    @classmethod
    def cube(cls, extent: float, center: Vec3 = ZERO) -> "BoundingBox":
        """Cube of edge length ``extent`` centred at ``center``."""
        half = extent / 2.0
        return cls(
            (center[0] - half, center[1] - half, center[2] - half),
            (center[0] + half, center[1] + half, center[2] + half),
        )

    @property
    def center(self) -> Vec3:
        return scale(add(self.min, self.max), 0.5)

    def contains(self, p: Vec3) -> bool:
        return all(self.min[i] <= p[i] <= self.max[i] for i in range(3))

    def edges(self) -> List[CellEdge]:
        """The twelve edges of the box."""
        (x0, y0, z0), (x1, y1, z1) = self.min, self.max
        v1 = (x0, y0, z0)
        v2 = (x1, y0, z0)
        v3 = (x0, y1, z0)
        v4 = (x1, y1, z0)
        v5 = (x0, y0, z1)
        v6 = (x1, y0, z1)
        v7 = (x0, y1, z1)
        v8 = (x1, y1, z1)
        return [
            CellEdge(v1, v2), CellEdge(v3, v4), CellEdge(v5, v6), CellEdge(v7, v8),
            CellEdge(v1, v3), CellEdge(v2, v4), CellEdge(v5, v7), CellEdge(v6, v8),
            CellEdge(v1, v5), CellEdge(v2, v6), CellEdge(v3, v7), CellEdge(v4, v8),
        ]


class BSPTree:
    """Common read side of the single pass and two pass builders."""

    nodes: List[BSPNode]
    leaves: List[Vec3]
    root: NodeRef

    def locate(self, point: Vec3) -> int:
        """Index of the leaf whose cell contains ``point``."""
        ref = self.root
        while not ref.is_leaf:
            node = self.nodes[ref.index]
            ref = node.left if node.plane.side(point) else node.right  # type: ignore[assignment]
        return ref.index

    def locate_many(self, points: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`locate` for an ``(N, 3)`` array of points."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        result = np.empty(len(points), dtype=np.int64)
        # Walk all points down level by level, grouping them by current node
        pending = [(self.root, np.arange(len(points)))]
        while pending:
            ref, members = pending.pop()
            if members.size == 0:
                continue
            if ref.is_leaf:
                result[members] = ref.index
                continue
            node = self.nodes[ref.index]
            plane = node.plane
            d = points[members] @ np.array(plane.normal) + plane.d
            positive = d > 0
            pending.append((node.left, members[positive]))  # type: ignore[arg-type]
            pending.append((node.right, members[~positive]))  # type: ignore[arg-type]
        return result

    def leaf_depths(self) -> List[int]:
        """Depth of every leaf (number of inner nodes above it)."""
        depths = [0] * len(self.leaves)
        stack: List[Tuple[NodeRef, int]] = [(self.root, 0)]
        while stack:
            ref, depth = stack.pop()
            if ref.is_leaf:
                depths[ref.index] = depth
                continue
            node = self.nodes[ref.index]
            stack.append((node.left, depth + 1))  # type: ignore[arg-type]
            stack.append((node.right, depth + 1))  # type: ignore[arg-type]
        return depths

    def leaf_paths(self) -> List[List[Tuple[Plane, bool]]]:
        """For every leaf, the ``(plane, went_left)`` decisions from the root."""
        paths: List[List[Tuple[Plane, bool]]] = [[] for _ in self.leaves]
        stack: List[Tuple[NodeRef, List[Tuple[Plane, bool]]]] = [(self.root, [])]
        while stack:
            ref, path = stack.pop()
            if ref.is_leaf:
                paths[ref.index] = path
                continue
            node = self.nodes[ref.index]
            stack.append((node.left, path + [(node.plane, True)]))  # type: ignore[arg-type]
            stack.append((node.right, path + [(node.plane, False)]))  # type: ignore[arg-type]
        return paths


class BSP(BSPTree):
    """Single pass BSP builder.

    At every node the remaining planes are tested in the order they were
    given.  Planes that do not cut the current cell are dropped for the
    whole subtree (they cannot cut any sub‑cell either); the first plane
    that cuts is used to split the cell and the other cutting planes are
    handed down to both children.

    Args:
        planes: Candidate splitting planes.  Their order determines the
            tree and must therefore be deterministic.
        bounds: Box to partition.
        rng: Random generator used to weight leaf points.  A fresh,
            unseeded generator is used when omitted.
    """

    def __init__(
        self,
        planes: Iterable[Plane],
        bounds: BoundingBox,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.nodes = []
        self.leaves = []
        self.bounds = bounds
        self._rng = rng if rng is not None else np.random.default_rng()
        self._edges: List[CellEdge] = list(bounds.edges())
        self._planes: List[Plane] = list(planes)
        self.root = self._make_node(0, len(self._planes), 0, len(self._edges))
        logger.info(
            "BSP built: %d inner nodes, %d leaves from %d planes",
            len(self.nodes),
            len(self.leaves),
            len(self._planes),
        )

    def _make_node(
        self, plane_start: int, plane_end: int, edge_start: int, edge_end: int
    ) -> NodeRef:
        mark = len(self._planes)
        for i in range(plane_start, plane_end):
            plane = self._planes[i]
            if self._test_cut(plane, edge_start, edge_end):
                self._planes.append(plane)

        if len(self._planes) == mark:
            return NodeRef.leaf(self._make_leaf(edge_start, edge_end))

        chosen = self._planes.pop(mark)
        index = self._make_inner_node(mark, len(self._planes), edge_start, edge_end, chosen)
        del self._planes[mark:]
        return NodeRef.inner(index)

    def _make_inner_node(
        self,
        plane_start: int,
        plane_end: int,
        edge_start: int,
        edge_end: int,
        plane: Plane,
    ) -> int:
        node = BSPNode(plane=plane)
        index = len(self.nodes)
        self.nodes.append(node)
        if BSP_DEBUG:
            logger.debug(
                "BSP node %d: plane=%s planes=%d edges=%d",
                index,
                plane.as_tuple(),
                plane_end - plane_start,
                edge_end - edge_start,
            )

        edge_mark = len(self._edges)
        left_start, left_end = self.split(plane, edge_start, edge_end)
        node.left = self._make_node(plane_start, plane_end, left_start, left_end)
        del self._edges[edge_mark:]

        right_start, right_end = self.split(plane.flipped, edge_start, edge_end)
        node.right = self._make_node(plane_start, plane_end, right_start, right_end)
        del self._edges[edge_mark:]
        return index

    def _make_leaf(self, edge_start: int, edge_end: int) -> int:
        """Add a leaf with a randomly weighted centroid of the cell."""
        point = ZERO
        total_weight = 0.0
        for i in range(edge_start, edge_end):
            edge = self._edges[i]
            weight_a = divide_safe(self._rng.uniform(0.5, 1.0), length(edge.a))
            weight_b = divide_safe(self._rng.uniform(0.5, 1.0), length(edge.b))
            point = add(point, scale(edge.a, weight_a))
            point = add(point, scale(edge.b, weight_b))
            total_weight += weight_a + weight_b

        if total_weight > 0.0:
            point = scale(point, 1.0 / total_weight)
        self.leaves.append(point)
        return len(self.leaves) - 1

    def _test_cut(self, plane: Plane, edge_start: int, edge_end: int) -> bool:
        """True if the cell has corners strictly on both sides of ``plane``."""
        positive = negative = False
        for i in range(edge_start, edge_end):
            edge = self._edges[i]
            for p in edge:
                d = plane.distance(p)
                if d > EPSILON:
                    positive = True
                elif d < -EPSILON:
                    negative = True
            if positive and negative:
                return True
        return False

    def split(self, plane: Plane, edge_start: int, edge_end: int) -> Tuple[int, int]:
        """Push the part of a cell on the positive side of ``plane``.

        Edges are clipped against the plane (dropping those that vanish)
        and the cut face is closed by a polygon through the intersection
        points, ordered by angle around their centroid.  The new cell is
        appended to the edge stack and its ``(start, end)`` span returned.
        """
        new_start = len(self._edges)
        plane_vertices: List[Vec3] = []

        for i in range(edge_start, edge_end):
            a, b = self._edges[i]
            distance_a = plane.distance(a)
            distance_b = plane.distance(b)

            t = divide_safe(distance_a, distance_a - distance_b)
            intersection = lerp(a, b, clamp(t, EPSILON, 1 - EPSILON))

            if distance_a < 0:
                a = intersection
            if distance_b < 0:
                b = intersection
            if distance(a, b) > EPSILON:
                self._edges.append(CellEdge(a, b))

            touches = (distance_a < EPSILON and distance_b > -EPSILON) or (
                distance_a > -EPSILON and distance_b < EPSILON
            )
            if touches and not any(approx_equal(intersection, v) for v in plane_vertices):
                plane_vertices.append(intersection)

        if len(plane_vertices) < 3:
            return new_start, len(self._edges)

        center = centroid(plane_vertices)
        up = normalize(sub(plane_vertices[0], center))
        right = cross(plane.normal, up)
        plane_vertices.sort(key=lambda v: pseudo_angle(up, right, sub(v, center)))

        previous = plane_vertices[-1]
        for v in plane_vertices:
            self._edges.append(CellEdge(previous, v))
            previous = v
        return new_start, len(self._edges)


def pseudo_angle(up: Vec3, right: Vec3, v: Vec3) -> float:
    """Monotonic stand‑in for the angle of ``v`` in the ``(right, up)`` basis.

    Sorting by this value gives the same order as sorting by
    ``atan2`` without evaluating trigonometric functions.  The range is
    ``[-1, 7)``.
    """
    dx = dot(right, v)
    dy = dot(up, v)
    if abs(dx) > abs(dy):
        return (0.0 if dx > 0 else 4.0) + dy / dx
    if dy == 0.0:
        return 0.0
    return (2.0 if dy > 0 else 6.0) - dx / dy
