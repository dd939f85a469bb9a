"""
Database configuration and session management for the silhouette baker.

This module defines a SQLModel engine targeting a SQLite database stored
in the configured storage directory.  It exposes helper functions to
initialise the schema and to obtain session objects for interacting
with the database.
"""

from __future__ import annotations

from sqlmodel import SQLModel, create_engine, Session

from ..config import STORAGE_DIR

# ``check_same_thread`` is disabled because FastAPI runs background
# tasks and sync routes on worker threads.
engine = create_engine(
    f"sqlite:///{(STORAGE_DIR / 'silhouettes.db').as_posix()}",
    echo=False,
    connect_args={"check_same_thread": False},
)


def create_db_and_tables() -> None:
    """Create all tables in the database.

    This should be called once on application startup.  If the
    database file does not exist it will be created automatically.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Return a new SQLModel session bound to the engine.

    Sessions returned by this function should be managed with a
    context manager (``with get_session() as session: ...``).
    """
    return Session(engine)
