"""Engine and session helpers for the workspace database.

Usage
-----
from db.client import session_scope

with session_scope() as s:
    SqlTransactionStore(s).upsert(transactions)

The process binds to one database: the first call fixes the URL (explicit
``database_url`` or ``DATABASE_URL``) and later calls must agree with it until
:func:`reset_engine`. Production schemas are managed by Alembic
(``libs/db/alembic``); :func:`create_schema` is for throwaway SQLite files.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.finance import Base

DATABASE_URL_ENV = "DATABASE_URL"


@dataclass(frozen=True)
class _Binding:
    url: str
    engine: Engine
    sessions: sessionmaker[Session]


_binding: _Binding | None = None


def _bind(database_url: str | None) -> _Binding:
    global _binding
    url = database_url or os.getenv(DATABASE_URL_ENV)
    if not url:
        raise RuntimeError(f"{DATABASE_URL_ENV} is not set and no database_url was given")
    if _binding is None:
        engine = create_engine(url, pool_pre_ping=True)
        _binding = _Binding(
            url=url,
            engine=engine,
            sessions=sessionmaker(bind=engine, expire_on_commit=False),
        )
    elif _binding.url != url:
        raise RuntimeError(
            "database client is already bound to a different URL; call reset_engine() first"
        )
    return _binding


def get_engine(*, database_url: str | None = None) -> Engine:
    return _bind(database_url).engine


def reset_engine() -> None:
    """Dispose the bound engine so the next call may use another URL."""

    global _binding
    if _binding is not None:
        _binding.engine.dispose()
    _binding = None


def create_schema(*, database_url: str | None = None) -> None:
    """Create missing tables (``fi_transactions``); existing ones are left alone."""

    Base.metadata.create_all(bind=get_engine(database_url=database_url))


def get_session(*, database_url: str | None = None) -> Session:
    return _bind(database_url).sessions()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit when the block succeeds, roll back when it raises."""

    session = get_session(database_url=database_url)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    else:
        session.commit()
    finally:
        session.close()


__all__ = [
    "create_schema",
    "get_engine",
    "get_session",
    "reset_engine",
    "session_scope",
]
