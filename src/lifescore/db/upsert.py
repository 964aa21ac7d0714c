"""Dialect-aware INSERT ... ON CONFLICT.

PostgreSQL in production, SQLite in tests; both speak ON CONFLICT with the
same SQLAlchemy surface (`on_conflict_do_update`, `excluded`).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model: Any) -> Any:  # noqa: ANN401
    """Return the ON CONFLICT-capable insert() for the session's dialect."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
