"""
Bake submission and background execution.

``submit_bake`` validates a mesh, stores it and records a queued bake;
``run_bake`` is scheduled as a FastAPI background task and performs the
bake, persisting the asset and updating the record.  Failures inside
``run_bake`` never propagate: they are logged and stored on the record.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional, Sequence

from .asset_cache import load_mesh, save_asset, save_mesh
from .bake import BakeSettings, bake_mesh
from .bake_store import BakeRecord, bake_dir, get_bake_record, insert_bake_record, update_bake_status
from .polyhedron import Polyhedron

logger = logging.getLogger(__name__)


def submit_bake(
    vertices: Sequence[float],
    indices: Sequence[int],
    mode: str,
    settings: BakeSettings,
) -> BakeRecord:
    """Validate and store a mesh and create a queued bake for it.

    Raises:
        ValueError: If the mesh is malformed (including
            ``NonManifoldMeshError``).
    """
    if len(vertices) % 3 != 0:
        raise ValueError(f"vertex list length must be a multiple of 3, got {len(vertices)}")
    polyhedron = Polyhedron.from_mesh(vertices, indices)
    if not polyhedron.edges:
        raise ValueError("mesh has no edges between distinct faces")

    bake_id = uuid.uuid4().hex
    mesh_path = bake_dir(bake_id) / "mesh.npz"
    save_mesh(mesh_path, vertices, indices)

    record = BakeRecord(
        bake_id=bake_id,
        mode=mode,
        extent=settings.extent,
        seed=settings.seed,
        test_point_count=settings.test_point_count,
        test_point_radius=settings.test_point_radius,
        attempts=settings.attempts,
        two_pass=settings.two_pass,
        vertex_count=len(vertices) // 3,
        triangle_count=len(indices) // 3,
        mesh_path=str(mesh_path),
    )
    logger.info(
        "Queued %s bake %s (%d vertices, %d triangles)",
        mode,
        bake_id,
        record.vertex_count,
        record.triangle_count,
    )
    return insert_bake_record(record)


def settings_for(record: BakeRecord) -> BakeSettings:
    return BakeSettings(
        extent=record.extent,
        seed=record.seed,
        test_point_count=record.test_point_count,
        test_point_radius=record.test_point_radius,
        attempts=record.attempts,
        two_pass=record.two_pass,
    )


def run_bake(bake_id: str) -> Optional[BakeRecord]:
    """Bake the stored mesh of ``bake_id`` and persist the asset.

    Returns the updated record, or ``None`` if the bake does not exist.
    """
    record = get_bake_record(bake_id)
    if record is None:
        logger.warning("Bake %s not found; nothing to do", bake_id)
        return None

    update_bake_status(bake_id, "baking", is_initialized=False)
    try:
        vertices, indices = load_mesh(Path(record.mesh_path))
        asset = bake_mesh(vertices, indices, record.mode, settings_for(record))
        asset_path = bake_dir(bake_id) / "asset.npz"
        save_asset(asset_path, asset)
    except Exception as exc:
        logger.exception("Bake %s failed", bake_id)
        return update_bake_status(bake_id, "failed", error_message=str(exc), is_initialized=False)

    return update_bake_status(
        bake_id,
        "ready",
        is_initialized=asset.is_initialized,
        asset_path=str(asset_path),
        node_count=len(asset.nodes),
        leaf_count=int(asset.stats.get("leafCount", asset.leaf_node_count)),
        element_count=len(asset.silhouettes) - 1,
        digest=asset.digest(),
    )
