"""
Tests for the bake pipeline and the asset archive format.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add the backend directory to sys.path so we can import the package
sys.path.append(str(Path(__file__).resolve().parents[1]))

from silhouette_bsp.services.asset_cache import load_asset, load_mesh, save_asset, save_mesh  # type: ignore
from silhouette_bsp.services.bake import (  # type: ignore
    NODE_DTYPE,
    BakeSettings,
    SilhouetteAsset,
    bake_mesh,
    bake_polyhedron,
)
from silhouette_bsp.services.polyhedron import Polyhedron  # type: ignore

from mesh_samples import cube_mesh, dented_cube_mesh, two_cube_mesh  # type: ignore

ABOVE = (0.01, 0.02, 40.0)


@pytest.fixture
def cube() -> Polyhedron:
    return Polyhedron.from_mesh(*cube_mesh())


def _leaf_elements(asset: SilhouetteAsset, point) -> np.ndarray:
    node = asset.locate(point)
    start, end = asset.leaf_range(node)
    return asset.silhouettes[start:end]


def test_convex_asset_layout(cube: Polyhedron) -> None:
    asset = bake_polyhedron(cube, "convex", BakeSettings(seed=1))
    assert asset.is_initialized
    assert asset.nodes.dtype == NODE_DTYPE
    assert asset.silhouettes.dtype == np.uint32
    assert asset.silhouettes.ndim == 1
    assert asset.supports.shape == (0, 2)

    inner = asset.stats["innerNodeCount"]
    assert asset.stats["twoPass"] is True
    assert asset.stats["leafCount"] == 27
    assert asset.leaf_node_count == 27
    assert len(asset.nodes) == inner + 27
    # Inner nodes first, then one node per leaf
    assert np.all(asset.nodes["left"][:inner] >= 0)
    assert np.all(asset.nodes["left"][inner:] < 0)
    # Leaf ranges never start at the sentinel and tile the element array
    ranges = sorted(asset.leaf_range(i) for i in range(inner, len(asset.nodes)))
    assert ranges[0][0] == 1
    for (_, end), (start, _) in zip(ranges, ranges[1:]):
        assert end == start
    assert ranges[-1][1] == len(asset.silhouettes)


def test_convex_leaf_above_the_cube(cube: Polyhedron) -> None:
    asset = bake_polyhedron(cube, "convex", BakeSettings(seed=1))
    assert sorted(_leaf_elements(asset, ABOVE).tolist()) == [4, 5, 6, 7]
    # Inside the cube nothing is visible
    assert len(_leaf_elements(asset, (0.0, 0.0, 0.0))) == 0


def test_nonconvex_asset_has_a_support_per_edge(cube: Polyhedron) -> None:
    asset = bake_polyhedron(cube, "nonconvex", BakeSettings(seed=2))
    assert asset.silhouettes.shape[1:] == (2, 4)
    assert len(asset.supports) == len(asset.silhouettes)
    assert asset.supports[0].tolist() == [0, 0]
    assert asset.stats["twoPass"] is False

    edges = _leaf_elements(asset, ABOVE)
    assert len(edges) == 4
    assert {int(v) for v in edges[:, :, 0].ravel()} == {4, 5, 6, 7}
    node = asset.locate(ABOVE)
    # Leaf nodes of nonconvex assets store their representative point
    assert asset.nodes[node]["plane"][2] > 0.5


def test_triangulated_leaf_above_the_cube(cube: Polyhedron) -> None:
    asset = bake_polyhedron(cube, "triangulated", BakeSettings(seed=3, test_point_count=300))
    assert asset.silhouettes.shape[1:] == (3, 4)
    triangles = _leaf_elements(asset, ABOVE)
    assert len(triangles) == 2
    assert {int(v) for v in triangles[:, :, 0].ravel()} == {4, 5, 6, 7}


def test_same_seed_gives_the_same_asset(cube: Polyhedron) -> None:
    first = bake_polyhedron(cube, "nonconvex", BakeSettings(seed=4))
    second = bake_polyhedron(cube, "nonconvex", BakeSettings(seed=4))
    assert first.digest() == second.digest()
    # The single pass BSP also yields a valid convex asset
    single = bake_polyhedron(cube, "convex", BakeSettings(seed=4, two_pass=False))
    assert single.stats["twoPass"] is False
    assert sorted(_leaf_elements(single, ABOVE).tolist()) == [4, 5, 6, 7]


def test_unknown_mode_is_rejected(cube: Polyhedron) -> None:
    with pytest.raises(ValueError):
        bake_polyhedron(cube, "wireframe")


def test_asset_round_trip(tmp_path: Path) -> None:
    asset = bake_mesh(*cube_mesh(), "convex", BakeSettings(seed=5))
    path = tmp_path / "asset.npz"
    save_asset(path, asset)
    loaded = load_asset(path)

    assert loaded.digest() == asset.digest()
    assert loaded.mode == "convex"
    assert loaded.root == asset.root
    assert loaded.is_initialized
    assert loaded.stats == asset.stats


def test_incomplete_archives_are_rejected(tmp_path: Path) -> None:
    asset = bake_mesh(*cube_mesh(), "convex", BakeSettings(seed=5))
    arrays = asset.to_arrays()

    missing = dict(arrays)
    del missing["supports"]
    with pytest.raises(ValueError):
        SilhouetteAsset.from_arrays(missing)

    bad_mode = dict(arrays, mode=np.array("wireframe"))
    with pytest.raises(ValueError):
        SilhouetteAsset.from_arrays(bad_mode)

    with pytest.raises(FileNotFoundError):
        load_asset(tmp_path / "missing.npz")


def test_mesh_round_trip(tmp_path: Path) -> None:
    vertices, indices = cube_mesh()
    path = tmp_path / "mesh.npz"
    save_mesh(path, vertices, indices)
    loaded_vertices, loaded_indices = load_mesh(path)
    assert loaded_vertices == vertices
    assert loaded_indices == indices


def _check_layout(asset: SilhouetteAsset, vertex_count: int) -> None:
    """Leaf ranges tile the element array and every index names a vertex."""
    leaf_nodes = [i for i in range(len(asset.nodes)) if asset.nodes[i]["left"] < 0]
    ranges = sorted(asset.leaf_range(i) for i in leaf_nodes)
    assert ranges[0][0] == 1
    for start, end in ranges:
        assert 1 <= start <= end <= len(asset.silhouettes)
    for (_, end), (start, _) in zip(ranges, ranges[1:]):
        assert end == start
    assert ranges[-1][1] == len(asset.silhouettes)

    inner = asset.nodes[asset.nodes["left"] >= 0]
    assert np.all(inner["left"] < len(asset.nodes))
    assert np.all((inner["right"] >= 0) & (inner["right"] < len(asset.nodes)))
    assert np.all(asset.silhouettes[1:] < vertex_count)


def _crossing_elements(asset: SilhouetteAsset) -> int:
    """Elements with a vertex where two polyhedron edges appear to cross."""
    vertices = asset.silhouettes[1:]
    return int(np.count_nonzero(np.any(vertices[..., 0] != vertices[..., 2], axis=-1)))


@pytest.fixture(scope="module")
def two_cubes() -> Polyhedron:
    return Polyhedron.from_mesh(*two_cube_mesh())


@pytest.fixture(scope="module")
def two_cube_nonconvex(two_cubes: Polyhedron) -> SilhouetteAsset:
    return bake_polyhedron(two_cubes, "nonconvex", BakeSettings(extent=8.0, seed=1))


def test_nonconvex_bake_with_apparent_crossings(two_cubes: Polyhedron, two_cube_nonconvex) -> None:
    asset = two_cube_nonconvex
    _check_layout(asset, len(two_cubes.vertices))
    # Generated planes come on top of the twelve face planes
    assert asset.stats["planeCount"] > 12
    assert _crossing_elements(asset) > 0

    polyhedron_edges = {tuple(sorted((e.start, e.end))) for e in two_cubes.edges}
    assert asset.supports.shape == (len(asset.silhouettes), 2)
    for a, b in asset.supports[1:].tolist():
        assert (min(a, b), max(a, b)) in polyhedron_edges


def test_nonconvex_bake_is_reproducible(two_cubes: Polyhedron, two_cube_nonconvex) -> None:
    again = bake_polyhedron(two_cubes, "nonconvex", BakeSettings(extent=8.0, seed=1))
    assert again.digest() == two_cube_nonconvex.digest()


def test_triangulated_bake_with_apparent_crossings(two_cubes: Polyhedron) -> None:
    asset = bake_polyhedron(
        two_cubes, "triangulated", BakeSettings(extent=8.0, seed=1, test_point_count=200, test_point_radius=4.0)
    )
    _check_layout(asset, len(two_cubes.vertices))
    assert asset.supports.shape == (0, 2)
    assert _crossing_elements(asset) > 0


def test_triangulated_bake_of_a_concave_mesh() -> None:
    poly = Polyhedron.from_mesh(*dented_cube_mesh())
    settings = BakeSettings(extent=6.0, seed=2, test_point_count=300, test_point_radius=3.0, attempts=4)
    asset = bake_polyhedron(poly, "triangulated", settings)
    _check_layout(asset, len(poly.vertices))
    assert asset.stats["leafCount"] == asset.leaf_node_count
    # Seen from above the outline is the top square around the dent
    triangles = _leaf_elements(asset, (0.01, 0.02, 5.0))
    assert len(triangles) == 2
    assert {int(v) for v in triangles[:, :, 0].ravel()} == {4, 5, 6, 7}
