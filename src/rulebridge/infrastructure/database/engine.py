"""Database engine setup for rule storage.

SQLAlchemy Core (not ORM): rule rows are mapped onto the host's entity
classes explicitly by :class:`~rulebridge.infrastructure.database.repository.RuleRepository`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from rulebridge.infrastructure.database.schema import metadata


def create_db_engine(db_path: Path | None = None) -> Engine:
    """Create a SQLite engine with foreign keys enabled.

    ``None`` gives an in-memory database.
    """
    url = f"sqlite:///{db_path}" if db_path is not None else "sqlite://"
    engine = create_engine(url, echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(db_path: Path | None = None) -> Engine:
    """Create the rule tables (idempotent) and return the engine."""
    if db_path is not None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    return engine
