"""
Pydantic data models for the silhouette baker API.

These models define the shapes of requests and responses used by the
backend.  Field names are camelCase to match the JSON the rendering
clients exchange with the service.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..config import DEFAULT_EXTENT, TEST_POINT_COUNT, TEST_POINT_RADIUS, TRIANGULATION_ATTEMPTS

BakeMode = Literal["convex", "nonconvex", "triangulated"]


class BakeCreateRequest(BaseModel):
    """Request body for submitting a mesh for baking."""

    vertices: List[float] = Field(..., description="Flat list of vertex positions (x, y, z …)")
    indices: List[int] = Field(..., description="Index buffer defining the mesh triangles")
    mode: BakeMode = Field(..., description="Kind of asset to bake (convex, nonconvex, triangulated)")
    extent: float = Field(
        default=DEFAULT_EXTENT,
        gt=0,
        description="Edge length of the origin-centred cube partitioned by the BSP",
    )
    seed: int = Field(default=0, description="Seed of every random choice made by the bake")
    testPointCount: int = Field(
        default=TEST_POINT_COUNT,
        ge=0,
        description="Sample observers used to validate triangulated leaves",
    )
    testPointRadius: float = Field(
        default=TEST_POINT_RADIUS,
        gt=0,
        description="Radius of the ball the sample observers are drawn from",
    )
    attempts: int = Field(
        default=TRIANGULATION_ATTEMPTS,
        ge=1,
        description="Maximum triangulation attempts per leaf",
    )
    twoPass: Optional[bool] = Field(
        default=None,
        description="Force the two pass (true) or single pass (false) BSP; default depends on mode",
    )


class BakeInfo(BaseModel):
    """Status and summary of a bake."""

    bakeId: str = Field(..., description="Unique identifier for the bake")
    mode: str = Field(..., description="Kind of asset being baked")
    status: str = Field(..., description="Bake status (queued, baking, ready, failed)")
    isInitialized: bool = Field(..., description="True once the asset has been baked")
    vertexCount: int = Field(..., description="Number of vertices in the submitted mesh")
    triangleCount: int = Field(..., description="Number of triangles in the submitted mesh")
    nodeCount: Optional[int] = Field(default=None, description="Nodes in the baked asset")
    leafCount: Optional[int] = Field(default=None, description="BSP leaves in the baked asset")
    elementCount: Optional[int] = Field(
        default=None, description="Silhouette elements stored across all leaves"
    )
    digest: Optional[str] = Field(default=None, description="SHA-256 digest of the baked arrays")
    createdAt: Any = Field(..., description="Timestamp of when the bake was submitted")
    errorMessage: Optional[str] = Field(
        default=None, description="Optional error message if the bake failed"
    )


class AssetNode(BaseModel):
    """One node of the baked tree."""

    plane: List[float] = Field(..., description="Splitting plane (x, y, z, d); leaf point for leaves")
    left: int = Field(..., description="Left child, or minus the start of a leaf's element range")
    right: int = Field(..., description="Right child, or minus the end of a leaf's element range")


class AssetResponse(BaseModel):
    """Baked asset as consumed by a renderer."""

    bakeId: str = Field(..., description="Identifier of the bake")
    mode: str = Field(..., description="Kind of asset")
    root: int = Field(..., description="Index of the root node")
    nodes: List[AssetNode] = Field(..., description="Inner nodes followed by leaf nodes")
    silhouettes: List[Any] = Field(
        ...,
        description="Silhouette elements; element 0 is a sentinel",
    )
    supports: List[List[int]] = Field(
        default_factory=list, description="Polyhedron edge of every silhouette edge (nonconvex)"
    )
    vertices: List[List[float]] = Field(..., description="Deduplicated polyhedron vertices")
    digest: str = Field(..., description="SHA-256 digest of the baked arrays")
    stats: Dict[str, Any] = Field(default_factory=dict, description="Summary numbers of the bake")
