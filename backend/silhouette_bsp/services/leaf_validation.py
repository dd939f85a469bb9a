"""
Monte‑Carlo validation of triangulated leaf silhouettes.

A triangulation computed at a leaf's representative point is only
usable for the whole cell if no triangle flips orientation for any
observer inside the cell.  Sample observers are drawn once per bake,
sorted by the leaf they fall into, and each leaf's triangulation is
checked against its samples.  When a sample sees a flipped triangle the
leaf is re‑triangulated from that sample, up to a fixed number of
attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..config import EPSILON, TEST_POINT_COUNT, TEST_POINT_RADIUS, TRIANGULATION_ATTEMPTS
from .bsp import BSPTree
from .polyhedron import Polyhedron
from .silhouette_vertex import SilhouetteTriangle
from .triangulated_silhouettes import get_triangulated_silhouette
from .vectors import Vec3, cross, dot, sub

logger = logging.getLogger(__name__)

Triangulate = Callable[..., List[SilhouetteTriangle]]


@dataclass
class SamplePool:
    """Sample observers sorted by leaf.

    Attributes:
        points: ``(N, 3)`` sample positions, grouped by leaf.
        leaf_indices: ``(N,)`` leaf index of every sample.
        ranges: ``(L + 1,)`` offsets; the samples of leaf ``i`` are
            ``points[ranges[i]:ranges[i + 1]]``.
    """

    points: np.ndarray
    leaf_indices: np.ndarray
    ranges: np.ndarray

    @classmethod
    def generate(
        cls,
        tree: BSPTree,
        count: int = TEST_POINT_COUNT,
        radius: float = TEST_POINT_RADIUS,
        rng: Optional[np.random.Generator] = None,
    ) -> "SamplePool":
        """Draw ``count`` points uniformly from a ball and locate them."""
        if rng is None:
            rng = np.random.default_rng()
        directions = rng.normal(size=(count, 3))
        norms = np.linalg.norm(directions, axis=1, keepdims=True)
        norms[norms == 0.0] = 1.0
        radii = radius * np.cbrt(rng.random(count))
        points = directions / norms * radii[:, None]

        leaf_indices = tree.locate_many(points)
        order = np.argsort(leaf_indices, kind="stable")
        points = points[order]
        leaf_indices = leaf_indices[order]
        ranges = np.searchsorted(leaf_indices, np.arange(len(tree.leaves) + 1), side="left")
        logger.debug(
            "Generated %d samples over %d leaves (%d leaves without samples)",
            count,
            len(tree.leaves),
            int(np.count_nonzero(np.diff(ranges) == 0)),
        )
        return cls(points=points, leaf_indices=leaf_indices, ranges=ranges.astype(np.int64))

    def samples_for_leaf(self, leaf_index: int) -> np.ndarray:
        start = int(self.ranges[leaf_index])
        end = int(self.ranges[leaf_index + 1])
        return self.points[start:end]


def approximately_same_sign(a: float, b: float) -> bool:
    if a > EPSILON and b < -EPSILON:
        return False
    if a < -EPSILON and b > EPSILON:
        return False
    return True


def check_triangulation(
    polyhedron: Polyhedron,
    triangles: Sequence[SilhouetteTriangle],
    samples: np.ndarray,
    leaf_point: Vec3,
) -> Optional[Vec3]:
    """Return the first sample that sees a triangle flipped, or ``None``.

    For each triangle and sample, the triangle's vertices are evaluated
    for that sample and the sample must lie on the same side of the
    triangle's plane as ``leaf_point`` (within ``EPSILON``).
    """
    sample_points = [tuple(p) for p in np.asarray(samples, dtype=np.float64).tolist()]
    for triangle in triangles:
        for sample in sample_points:
            a = triangle.a.position(polyhedron, sample)
            b = triangle.b.position(polyhedron, sample)
            c = triangle.c.position(polyhedron, sample)
            normal = cross(sub(b, a), sub(c, a))
            if not approximately_same_sign(dot(normal, sub(sample, a)), dot(normal, sub(leaf_point, a))):
                return sample  # type: ignore[return-value]
    return None


def triangulate_leaf(
    polyhedron: Polyhedron,
    leaf_index: int,
    position: Vec3,
    pool: SamplePool,
    attempts: int = TRIANGULATION_ATTEMPTS,
    triangulate: Triangulate = get_triangulated_silhouette,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[List[SilhouetteTriangle], Vec3]:
    """Triangulate a leaf, retrying from failing samples.

    Returns the last triangulation computed together with the position
    it was computed from.  If every attempt fails the last one is kept.
    """
    samples = pool.samples_for_leaf(leaf_index)
    triangles: List[SilhouetteTriangle] = []
    for attempt in range(max(attempts, 1)):
        triangles = triangulate(polyhedron, position, rng=rng)
        failed = check_triangulation(polyhedron, triangles, samples, position)
        if failed is None:
            return triangles, position
        logger.debug(
            "Leaf %d: triangulation from %s failed at sample %s (attempt %d/%d)",
            leaf_index,
            position,
            failed,
            attempt + 1,
            attempts,
        )
        if attempt + 1 < attempts:
            position = failed

    logger.info("Leaf %d: no valid triangulation after %d attempts", leaf_index, attempts)
    return triangles, position
