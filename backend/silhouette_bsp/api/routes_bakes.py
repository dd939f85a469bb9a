"""
Routes for submitting meshes, tracking bakes and downloading assets.

Baking runs as a FastAPI background task; clients poll
``GET /bakes/{bake_id}`` until the status is ``ready`` (or ``failed``)
and then fetch the asset.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, HTTPException, Response

from .models import AssetNode, AssetResponse, BakeCreateRequest, BakeInfo
from ..services.asset_cache import load_asset
from ..services.bake import BakeSettings
from ..services.bake_jobs import run_bake, submit_bake
from ..services.bake_store import (
    BakeRecord,
    delete_bake as delete_bake_record,
    get_bake_record,
    list_bakes as list_bake_records,
    update_bake_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_info(record: BakeRecord) -> BakeInfo:
    return BakeInfo(
        bakeId=record.bake_id,
        mode=record.mode,
        status=record.status,
        isInitialized=record.is_initialized,
        vertexCount=record.vertex_count,
        triangleCount=record.triangle_count,
        nodeCount=record.node_count,
        leafCount=record.leaf_count,
        elementCount=record.element_count,
        digest=record.digest,
        createdAt=record.created_at,
        errorMessage=record.error_message,
    )


def _get_or_404(bake_id: str) -> BakeRecord:
    record = get_bake_record(bake_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Bake not found")
    return record


@router.post("/bakes", response_model=BakeInfo, status_code=201)
def create_bake(request: BakeCreateRequest, background_tasks: BackgroundTasks) -> BakeInfo:
    """Validate and store a mesh, then bake it in the background.

    Raises:
        HTTPException: 422 if the mesh is malformed or non-manifold.
    """
    settings = BakeSettings(
        extent=request.extent,
        seed=request.seed,
        test_point_count=request.testPointCount,
        test_point_radius=request.testPointRadius,
        attempts=request.attempts,
        two_pass=request.twoPass,
    )
    try:
        record = submit_bake(request.vertices, request.indices, request.mode, settings)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    background_tasks.add_task(run_bake, record.bake_id)
    return _to_info(record)


@router.get("/bakes", response_model=list[BakeInfo])
def list_bakes() -> list[BakeInfo]:
    """Return all bakes with their status."""
    return [_to_info(r) for r in list_bake_records()]


@router.get("/bakes/{bake_id}", response_model=BakeInfo)
def get_bake(bake_id: str) -> BakeInfo:
    return _to_info(_get_or_404(bake_id))


@router.post("/bakes/{bake_id}/bake", response_model=BakeInfo, status_code=202)
def rebake(bake_id: str, background_tasks: BackgroundTasks) -> BakeInfo:
    """Bake the stored mesh again, discarding the initialised state."""
    _get_or_404(bake_id)
    record = update_bake_status(bake_id, "queued", is_initialized=False)
    if record is None:
        raise HTTPException(status_code=404, detail="Bake not found")
    background_tasks.add_task(run_bake, bake_id)
    return _to_info(record)


@router.get("/bakes/{bake_id}/asset", response_model=AssetResponse)
def get_asset(bake_id: str) -> AssetResponse:
    """Return the baked arrays of a ready bake.

    Raises:
        HTTPException: 404 if the bake is unknown, 409 if it has not
            been baked (yet).
    """
    record = _get_or_404(bake_id)
    if not record.is_initialized or record.asset_path is None:
        raise HTTPException(status_code=409, detail=f"Bake is not ready (status: {record.status})")
    try:
        asset = load_asset(Path(record.asset_path))
    except FileNotFoundError as exc:
        logger.error("Asset file of bake %s is missing: %s", bake_id, exc)
        raise HTTPException(status_code=409, detail="Baked asset is missing; re-bake required") from exc

    return AssetResponse(
        bakeId=bake_id,
        mode=asset.mode,
        root=asset.root,
        nodes=[
            AssetNode(plane=plane, left=left, right=right)
            for plane, left, right in zip(
                asset.nodes["plane"].tolist(),
                asset.nodes["left"].tolist(),
                asset.nodes["right"].tolist(),
            )
        ],
        silhouettes=asset.silhouettes.tolist(),
        supports=asset.supports.tolist(),
        vertices=asset.vertices.tolist(),
        digest=asset.digest(),
        stats=asset.stats,
    )


@router.delete("/bakes/{bake_id}", status_code=204)
def delete_bake(bake_id: str) -> Response:
    """Delete a bake record together with its mesh and asset files."""
    if not delete_bake_record(bake_id):
        raise HTTPException(status_code=404, detail="Bake not found")
    return Response(status_code=204)
