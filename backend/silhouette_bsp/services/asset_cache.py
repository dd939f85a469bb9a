"""
Asset and mesh serialisation utilities.

Baked assets and the meshes they were baked from are stored as
compressed NumPy archives (``.npz``) with explicit data types.  Meshes
keep float64 positions so that a re‑bake from the stored copy sees
exactly the geometry of the original request.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np

from .bake import ASSET_FIELDS, SilhouetteAsset


def save_asset(path: Path, asset: SilhouetteAsset) -> None:
    """Write ``asset`` to a compressed ``.npz`` file.

    The parent directory must already exist.
    """
    np.savez_compressed(path, **asset.to_arrays())


def load_asset(path: Path) -> SilhouetteAsset:
    """Load an asset written by :func:`save_asset`.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the archive lacks one of the asset fields.
    """
    if not path.exists():
        raise FileNotFoundError(f"Silhouette asset file not found: {path}")
    with np.load(path, allow_pickle=False) as data:
        missing = set(ASSET_FIELDS) - set(data.files)
        if missing:
            raise ValueError(f"Silhouette asset file is missing fields: {sorted(missing)}")
        return SilhouetteAsset.from_arrays(data)


def save_mesh(path: Path, vertices: Sequence[float], indices: Sequence[int]) -> None:
    """Write a triangle mesh (flat or ``(N, 3)`` vertices, flat indices)."""
    vertices_arr = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    indices_arr = np.asarray(indices, dtype=np.uint32).reshape(-1)
    np.savez_compressed(path, vertices=vertices_arr, indices=indices_arr)


def load_mesh(path: Path) -> Tuple[List[float], List[int]]:
    """Load a mesh written by :func:`save_mesh` as flat Python lists."""
    if not path.exists():
        raise FileNotFoundError(f"Mesh file not found: {path}")
    with np.load(path, allow_pickle=False) as data:
        required_keys = {"vertices", "indices"}
        if not required_keys.issubset(data.files):
            missing = required_keys - set(data.files)
            raise ValueError(f"Mesh file is missing fields: {missing}")
        vertices = data["vertices"].astype(np.float64).reshape(-1).tolist()
        indices = data["indices"].astype(np.uint32).reshape(-1).tolist()
    return vertices, indices
