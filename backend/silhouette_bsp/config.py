"""
Global constants and storage locations for the silhouette baker.

Every tolerance and default used by the precomputation pipeline lives
here so that the geometry services, the bake pipeline and the API agree
on the same values.  A few settings can be overridden through
environment variables:

- ``SILHOUETTE_STORAGE_DIR`` – directory holding the SQLite database and
  the baked ``.npz`` archives.  Defaults to ``backend/storage``.
- ``SILHOUETTE_TEST_POINTS`` – number of Monte‑Carlo samples used to
  validate triangulated leaves.
- ``BSP_DEBUG`` – when truthy, the BSP builders emit a debug line for
  every node they create.
"""

from __future__ import annotations

import os
from pathlib import Path

# Tolerance used for point/plane equality, cut tests and clamping.  The
# value suits meshes in the 0.01–100 unit range.
EPSILON: float = 1e-5

# Edge length of the cube (centred at the origin) that is partitioned
# by the BSP.
DEFAULT_EXTENT: float = 100.0

# Leaf validation: number of sample points, radius of the sampling ball
# and how many times a leaf triangulation is retried.
TEST_POINT_COUNT: int = int(os.getenv("SILHOUETTE_TEST_POINTS", "100000"))
TEST_POINT_RADIUS: float = 10.0
TRIANGULATION_ATTEMPTS: int = 16

BSP_DEBUG: bool = bool(os.getenv("BSP_DEBUG"))

STORAGE_DIR = Path(
    os.getenv(
        "SILHOUETTE_STORAGE_DIR",
        str(Path(__file__).resolve().parents[1] / "storage"),
    )
)
STORAGE_DIR.mkdir(parents=True, exist_ok=True)

# Baked assets and their source meshes are stored as
# ``storage/bakes/{bakeId}/asset.npz`` and ``.../mesh.npz``.
STORAGE_BAKES_DIR = STORAGE_DIR / "bakes"
STORAGE_BAKES_DIR.mkdir(parents=True, exist_ok=True)
