"""SQLite helpers for the transaction store tests.

A file-backed database is used because every SQLAlchemy connection to an
in-memory SQLite database gets its own empty database.
"""

from __future__ import annotations

from pathlib import Path

from db.client import create_schema, session_scope
from db.models.finance import FiTransaction
from sqlalchemy import func, select


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create ``fi_transactions`` in a fresh SQLite file and return its URL."""

    db_file.parent.mkdir(parents=True, exist_ok=True)
    url = f"sqlite+pysqlite:///{db_file}"
    create_schema(database_url=url)
    return url


def count_rows(database_url: str) -> int:
    with session_scope(database_url=database_url) as session:
        return session.scalar(select(func.count()).select_from(FiTransaction)) or 0
