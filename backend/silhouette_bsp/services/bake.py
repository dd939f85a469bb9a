"""
Bake pipeline producing silhouette assets.

A bake turns a polyhedron into the flat arrays a renderer walks at run
time.  Three kinds of asset are supported:

``convex``
    Mesh face planes partitioned with :class:`TwoPassBSP`; every leaf
    stores the ordered vertex indices of the convex silhouette.
``nonconvex``
    Planes from :func:`find_planes` partitioned with :class:`BSP`;
    every leaf stores the silhouette edges plus the polyhedron edge each
    of them lies on.
``triangulated``
    As ``nonconvex`` but every leaf stores a triangulation of the
    silhouette, validated against sampled observers in the leaf.

All three share one node layout.  Inner nodes come first, in tree
order.  Each leaf child is replaced by an extra node appended in the
order leaves are met while scanning the inner nodes (left before
right).  A leaf node stores ``left = -start`` and ``right = -end``, the
range of its elements in the silhouette array.  Element 0 of the
silhouette array is a sentinel so that a leaf range never starts at 0
and leaf nodes can be recognised by their negative children.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import DEFAULT_EXTENT, TEST_POINT_COUNT, TEST_POINT_RADIUS, TRIANGULATION_ATTEMPTS
from .bsp import BSP, BSPTree, BoundingBox
from .convex_silhouettes import get_ordered_convex_silhouette
from .leaf_validation import SamplePool, triangulate_leaf
from .nonconvex_silhouettes import find_planes, get_silhouette, silhouette_edge_support
from .planes import Plane
from .polyhedron import Polyhedron
from .two_pass_bsp import TwoPassBSP
from .vectors import Vec3

logger = logging.getLogger(__name__)

MODES = ("convex", "nonconvex", "triangulated")

# Layout of one node as uploaded to the GPU
NODE_DTYPE = np.dtype([("plane", np.float32, (4,)), ("left", np.int32), ("right", np.int32)])

# Element shape of the silhouette array per mode (a silhouette vertex is
# four polyhedron vertex indices)
ELEMENT_SHAPES: Dict[str, Tuple[int, ...]] = {
    "convex": (),
    "nonconvex": (2, 4),
    "triangulated": (3, 4),
}

ASSET_FIELDS = ("mode", "nodes", "silhouettes", "supports", "vertices", "root", "is_initialized", "stats")


@dataclass
class BakeSettings:
    """Parameters of one bake.

    ``two_pass`` selects the BSP variant; ``None`` uses the two pass
    builder for convex assets and the single pass builder otherwise.
    """

    extent: float = DEFAULT_EXTENT
    seed: int = 0
    test_point_count: int = TEST_POINT_COUNT
    test_point_radius: float = TEST_POINT_RADIUS
    attempts: int = TRIANGULATION_ATTEMPTS
    two_pass: Optional[bool] = None

    def uses_two_pass(self, mode: str) -> bool:
        if self.two_pass is None:
            return mode == "convex"
        return self.two_pass


@dataclass
class SilhouetteAsset:
    """Baked silhouette BSP of one mesh.

    Attributes:
        mode: One of ``MODES``.
        nodes: Structured array with ``NODE_DTYPE``.
        silhouettes: ``uint32`` elements; vertex indices (convex),
            ``(M, 2, 4)`` edges (nonconvex) or ``(M, 3, 4)`` triangles
            (triangulated).  Element 0 is a sentinel.
        supports: ``(M, 2)`` polyhedron edge of every silhouette edge
            (nonconvex only, otherwise empty).
        vertices: ``(V, 3)`` polyhedron vertices.
        root: Index of the root node.
        is_initialized: True once the bake has completed.
        stats: Summary numbers, not part of :meth:`digest`.
    """

    mode: str
    nodes: np.ndarray
    silhouettes: np.ndarray
    supports: np.ndarray
    vertices: np.ndarray
    root: int
    is_initialized: bool = False
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def leaf_node_count(self) -> int:
        return int(np.count_nonzero(self.nodes["left"] < 0)) if len(self.nodes) else 0

    def leaf_range(self, node_index: int) -> Tuple[int, int]:
        """``(start, end)`` of a leaf node's elements in ``silhouettes``."""
        node = self.nodes[node_index]
        if node["left"] >= 0:
            raise ValueError(f"node {node_index} is not a leaf")
        return int(-node["left"]), int(-node["right"])

    def locate(self, point: Vec3) -> int:
        """Index of the leaf node whose cell contains ``point``.

        Walks the baked arrays the same way a renderer does.
        """
        index = self.root
        while True:
            node = self.nodes[index]
            if node["left"] < 0:
                return index
            plane = node["plane"].astype(np.float64)
            side = float(plane[:3] @ np.asarray(point, dtype=np.float64) + plane[3]) > 0
            index = int(node["left"] if side else node["right"])

    def to_arrays(self) -> Dict[str, np.ndarray]:
        return {
            "mode": np.array(self.mode),
            "nodes": self.nodes,
            "silhouettes": self.silhouettes,
            "supports": self.supports,
            "vertices": self.vertices,
            "root": np.array(self.root, dtype=np.int64),
            "is_initialized": np.array(self.is_initialized),
            "stats": np.array(json.dumps(self.stats, sort_keys=True)),
        }

    @classmethod
    def from_arrays(cls, data: Any) -> "SilhouetteAsset":
        """Rebuild an asset from a mapping such as an opened ``.npz``.

        Raises:
            ValueError: If a field is missing or the mode is unknown.
        """
        files = set(getattr(data, "files", None) or data.keys())
        missing = set(ASSET_FIELDS) - files
        if missing:
            raise ValueError(f"Silhouette asset is missing fields: {sorted(missing)}")
        mode = str(data["mode"])
        if mode not in MODES:
            raise ValueError(f"Unknown silhouette asset mode: {mode!r}")
        return cls(
            mode=mode,
            nodes=np.asarray(data["nodes"]).astype(NODE_DTYPE),
            silhouettes=np.asarray(data["silhouettes"]).astype(np.uint32),
            supports=np.asarray(data["supports"]).astype(np.uint32).reshape(-1, 2),
            vertices=np.asarray(data["vertices"]).astype(np.float32).reshape(-1, 3),
            root=int(data["root"]),
            is_initialized=bool(data["is_initialized"]),
            stats=json.loads(str(data["stats"])),
        )

    def digest(self) -> str:
        """SHA‑256 over the mode, root and arrays."""
        h = hashlib.sha256()
        h.update(self.mode.encode("utf-8"))
        h.update(np.int64(self.root).tobytes())
        for arr in (self.nodes, self.silhouettes, self.supports, self.vertices):
            arr = np.ascontiguousarray(arr)
            h.update(str(arr.shape).encode("ascii"))
            h.update(arr.tobytes())
        return h.hexdigest()


class _AssetBuilder:
    """Flattens a BSP tree into the node / silhouette arrays."""

    def __init__(self, tree: BSPTree, mode: str) -> None:
        self.tree = tree
        self.mode = mode
        self.nodes: List[Tuple[Tuple[float, float, float, float], int, int]] = []
        self.elements: List[Any] = [np.zeros(ELEMENT_SHAPES[mode], dtype=np.uint32).tolist()]
        self.supports: List[Tuple[int, int]] = [(0, 0)]

    def build(
        self, make_leaf: Callable[[int], Tuple[Vec3, Sequence[Any], Sequence[Tuple[int, int]]]]
    ) -> int:
        """Fill the arrays and return the root node index.

        ``make_leaf(leaf_index)`` returns the point stored in the leaf
        node's plane, the leaf's silhouette elements and (nonconvex)
        their support edges.
        """
        tree = self.tree
        if tree.root.is_leaf:
            return self._append_leaf(tree.root.index, make_leaf)

        for node in tree.nodes:
            self.nodes.append((node.plane.as_tuple(), 0, 0))
        for i, node in enumerate(tree.nodes):
            children = []
            for ref in (node.left, node.right):
                if ref.is_leaf:  # type: ignore[union-attr]
                    children.append(self._append_leaf(ref.index, make_leaf))  # type: ignore[union-attr]
                else:
                    children.append(ref.index)  # type: ignore[union-attr]
            self.nodes[i] = (self.nodes[i][0], children[0], children[1])
        return tree.root.index

    def _append_leaf(self, leaf_index: int, make_leaf: Callable) -> int:
        point, elements, supports = make_leaf(leaf_index)
        start = len(self.elements)
        self.elements.extend(elements)
        self.supports.extend(supports)
        end = len(self.elements)
        self.nodes.append(((point[0], point[1], point[2], 0.0), -start, -end))
        return len(self.nodes) - 1

    def node_array(self) -> np.ndarray:
        arr = np.zeros(len(self.nodes), dtype=NODE_DTYPE)
        if self.nodes:
            arr["plane"] = [plane for plane, _, _ in self.nodes]
            arr["left"] = [left for _, left, _ in self.nodes]
            arr["right"] = [right for _, _, right in self.nodes]
        return arr

    def silhouette_array(self) -> np.ndarray:
        return np.asarray(self.elements, dtype=np.uint32).reshape((-1,) + ELEMENT_SHAPES[self.mode])

    def support_array(self) -> np.ndarray:
        if self.mode != "nonconvex":
            return np.zeros((0, 2), dtype=np.uint32)
        return np.asarray(self.supports, dtype=np.uint32).reshape(-1, 2)


def _candidate_planes(polyhedron: Polyhedron, mode: str) -> List[Plane]:
    if mode == "convex":
        return list(polyhedron.planes)
    return find_planes(polyhedron)


def bake_polyhedron(
    polyhedron: Polyhedron, mode: str, settings: Optional[BakeSettings] = None
) -> SilhouetteAsset:
    """Bake a silhouette asset for ``polyhedron``.

    The result is a pure function of the polyhedron, ``mode`` and
    ``settings``: every random choice is drawn from one generator seeded
    with ``settings.seed``.

    Raises:
        ValueError: If ``mode`` is unknown.
        SilhouetteConfigurationError: If a nonconvex silhouette edge
            does not lie on a polyhedron edge.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown bake mode {mode!r}; expected one of {MODES}")
    settings = settings or BakeSettings()
    rng = np.random.default_rng(settings.seed)
    bounds = BoundingBox.cube(settings.extent)

    planes = _candidate_planes(polyhedron, mode)
    logger.info(
        "Baking %s asset: %d vertices, %d edges, %d candidate planes",
        mode,
        len(polyhedron.vertices),
        len(polyhedron.edges),
        len(planes),
    )
    if settings.uses_two_pass(mode):
        tree: BSPTree = TwoPassBSP(planes, bounds, rng=rng)
    else:
        tree = BSP(planes, bounds, rng=rng)

    builder = _AssetBuilder(tree, mode)
    if mode == "convex":

        def make_leaf(leaf_index: int):
            silhouette = get_ordered_convex_silhouette(polyhedron, tree.leaves[leaf_index])
            return (0.0, 0.0, 0.0), silhouette, []

    elif mode == "nonconvex":

        def make_leaf(leaf_index: int):
            position = tree.leaves[leaf_index]
            edges = get_silhouette(polyhedron, position)
            elements = [[e.start.as_tuple(), e.end.as_tuple()] for e in edges]
            supports = [silhouette_edge_support(e) for e in edges]
            return position, elements, supports

    else:
        pool = SamplePool.generate(
            tree, settings.test_point_count, settings.test_point_radius, rng=rng
        )

        def make_leaf(leaf_index: int):
            triangles, position = triangulate_leaf(
                polyhedron,
                leaf_index,
                tree.leaves[leaf_index],
                pool,
                attempts=settings.attempts,
                rng=rng,
            )
            elements = [[t.a.as_tuple(), t.b.as_tuple(), t.c.as_tuple()] for t in triangles]
            return position, elements, []

    root = builder.build(make_leaf)
    depths = tree.leaf_depths()
    silhouettes = builder.silhouette_array()
    asset = SilhouetteAsset(
        mode=mode,
        nodes=builder.node_array(),
        silhouettes=silhouettes,
        supports=builder.support_array(),
        vertices=np.asarray(polyhedron.vertices, dtype=np.float32).reshape(-1, 3),
        root=root,
        is_initialized=True,
        stats={
            "planeCount": len(planes),
            "innerNodeCount": len(tree.nodes),
            "leafCount": len(tree.leaves),
            "averageDepth": float(np.mean(depths)) if depths else 0.0,
            "maxDepth": max(depths) if depths else 0,
            "elementCount": len(silhouettes) - 1,
            "twoPass": settings.uses_two_pass(mode),
            "seed": settings.seed,
        },
    )
    logger.info(
        "Baked %s asset: %d nodes, %d leaves, %d elements, digest %s",
        mode,
        len(asset.nodes),
        len(tree.leaves),
        len(silhouettes) - 1,
        asset.digest()[:12],
    )
    return asset


def bake_mesh(
    vertices: Any,
    indices: Any,
    mode: str,
    settings: Optional[BakeSettings] = None,
) -> SilhouetteAsset:
    """Build the polyhedron from raw mesh buffers and bake it."""
    polyhedron = Polyhedron.from_mesh(vertices, indices)
    return bake_polyhedron(polyhedron, mode, settings)
