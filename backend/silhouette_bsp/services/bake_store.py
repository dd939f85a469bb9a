"""
Bake records and their on-disk files.

A ``BakeRecord`` tracks one mesh submitted for baking: the settings it
is baked with, where its mesh and asset archives live, the bake status
and summary counts of the finished asset.  Files are organised as
``storage/bakes/{bakeId}/mesh.npz`` and ``.../asset.npz``.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlmodel import SQLModel, Field, select

from ..config import STORAGE_BAKES_DIR
from .db import create_db_and_tables, get_session

logger = logging.getLogger(__name__)


class BakeRecord(SQLModel, table=True):
    """Database model representing one bake request and its result."""

    bake_id: str = Field(primary_key=True)
    mode: str
    extent: float
    seed: int
    test_point_count: int
    test_point_radius: float
    attempts: int
    # None lets the pipeline pick the variant for the mode
    two_pass: Optional[bool] = None
    vertex_count: int = 0
    triangle_count: int = 0
    mesh_path: str
    asset_path: Optional[str] = None
    # Status of the bake: queued, baking, ready, failed
    status: str = Field(default="queued")
    is_initialized: bool = False
    node_count: Optional[int] = None
    leaf_count: Optional[int] = None
    element_count: Optional[int] = None
    digest: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


def init_db() -> None:
    """Initialise the database and create tables if they do not exist."""
    create_db_and_tables()


def bake_dir(bake_id: str) -> Path:
    path = STORAGE_BAKES_DIR / bake_id
    path.mkdir(parents=True, exist_ok=True)
    return path


def insert_bake_record(record: BakeRecord) -> BakeRecord:
    with get_session() as session:
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def get_bake_record(bake_id: str) -> Optional[BakeRecord]:
    """Retrieve a ``BakeRecord`` by its identifier, or ``None``."""
    with get_session() as session:
        return session.get(BakeRecord, bake_id)


def list_bakes() -> List[BakeRecord]:
    """Return all bake records, oldest first."""
    with get_session() as session:
        statement = select(BakeRecord).order_by(BakeRecord.created_at)
        return list(session.exec(statement))


def update_bake_status(
    bake_id: str,
    status: str,
    error_message: Optional[str] = None,
    **fields,
) -> Optional[BakeRecord]:
    """Set the status (and optionally other columns) of a bake.

    Args:
        bake_id: Identifier of the bake to update.
        status: New status value (``queued``, ``baking``, ``ready`` or
            ``failed``).
        error_message: Message stored with a failed bake; cleared
            otherwise.
        **fields: Further ``BakeRecord`` columns to overwrite.

    Returns:
        The updated record, or ``None`` if the bake no longer exists.
    """
    with get_session() as session:
        record = session.get(BakeRecord, bake_id)
        if record is None:
            logger.warning("Bake %s vanished before its status could be set to %s", bake_id, status)
            return None
        record.status = status
        record.error_message = error_message
        for name, value in fields.items():
            setattr(record, name, value)
        record.updated_at = datetime.utcnow()
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def delete_bake(bake_id: str) -> bool:
    """Delete a bake record and its files.

    Returns:
        ``True`` if a record was deleted.
    """
    with get_session() as session:
        record = session.get(BakeRecord, bake_id)
        if record is None:
            return False
        session.delete(record)
        session.commit()
    shutil.rmtree(STORAGE_BAKES_DIR / bake_id, ignore_errors=True)
    return True
