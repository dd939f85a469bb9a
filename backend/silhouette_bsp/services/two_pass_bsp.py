"""
Two pass BSP builder.

The first pass (:class:`~.bsp.BSP`) finds the cells; only its leaf
points are kept.  The second pass rebuilds the tree over those points,
choosing at every node the plane that splits the remaining points most
evenly.  The result partitions space into the same cells but usually
with a noticeably lower average leaf depth, which is what a renderer
walking the tree per pixel pays for.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np

from ..config import BSP_DEBUG
from .bsp import BSP, BSPNode, BSPTree, BoundingBox, NodeRef
from .planes import Plane
from .vectors import Vec3, centroid

logger = logging.getLogger(__name__)


class TwoPassBSP(BSPTree):
    def __init__(
        self,
        planes: Iterable[Plane],
        bounds: BoundingBox,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        plane_list = list(planes)
        first_pass = BSP(plane_list, bounds, rng=rng)

        self.nodes = []
        self.leaves = []
        self.bounds = bounds
        self.leaf_count = 0
        self.average_depth = 0.0
        self._depth = 0
        self._planes: List[Plane] = plane_list
        self._points: List[Tuple[int, Vec3]] = list(enumerate(first_pass.leaves))

        self.root = self._make_node(0, len(self._planes), 0, len(self._points))
        if self.leaf_count:
            self.average_depth /= self.leaf_count
        logger.info(
            "Two pass BSP: %d leaves (first pass %d), average depth %.2f",
            self.leaf_count,
            len(first_pass.leaves),
            self.average_depth,
        )

    def _make_node(
        self, plane_start: int, plane_end: int, point_start: int, point_end: int
    ) -> NodeRef:
        mark = len(self._planes)
        best_rating = 0
        best_index = -1

        for i in range(plane_start, plane_end):
            plane = self._planes[i]
            rating = self._evaluate_cut(plane, point_start, point_end)
            if rating > best_rating:
                best_rating = rating
                best_index = len(self._planes)
            if rating != 0:
                self._planes.append(plane)

        if best_index < 0:
            del self._planes[mark:]
            return NodeRef.leaf(self._make_leaf(point_start, point_end))

        chosen = self._planes.pop(best_index)
        index = self._make_inner_node(
            mark, len(self._planes), point_start, point_end, chosen
        )
        del self._planes[mark:]
        return NodeRef.inner(index)

    def _evaluate_cut(self, plane: Plane, point_start: int, point_end: int) -> int:
        """Number of points on the smaller side of ``plane``."""
        positive = negative = 0
        for i in range(point_start, point_end):
            d = plane.distance(self._points[i][1])
            if d > 0:
                positive += 1
            elif d < 0:
                negative += 1
        return min(positive, negative)

    def _make_inner_node(
        self,
        plane_start: int,
        plane_end: int,
        point_start: int,
        point_end: int,
        plane: Plane,
    ) -> int:
        self._depth += 1
        node = BSPNode(plane=plane)
        index = len(self.nodes)
        self.nodes.append(node)
        if BSP_DEBUG:
            logger.debug(
                "Two pass node %d: depth=%d points=%d",
                index,
                self._depth,
                point_end - point_start,
            )

        mark = len(self._points)
        left_start, left_end = self._split(plane, point_start, point_end)
        node.left = self._make_node(plane_start, plane_end, left_start, left_end)
        del self._points[mark:]

        right_start, right_end = self._split(plane.flipped, point_start, point_end)
        node.right = self._make_node(plane_start, plane_end, right_start, right_end)
        del self._points[mark:]

        self._depth -= 1
        return index

    def _make_leaf(self, point_start: int, point_end: int) -> int:
        position = centroid(self._points[i][1] for i in range(point_start, point_end))
        self.leaves.append(position)
        self.leaf_count += 1
        self.average_depth += self._depth
        return len(self.leaves) - 1

    def _split(self, plane: Plane, point_start: int, point_end: int) -> Tuple[int, int]:
        new_start = len(self._points)
        for i in range(point_start, point_end):
            entry = self._points[i]
            if plane.distance(entry[1]) > 0:
                self._points.append(entry)
        return new_start, len(self._points)
