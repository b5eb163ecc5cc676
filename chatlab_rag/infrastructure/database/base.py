"""SQLAlchemy ORM base and SQLite engine helpers."""

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def sqlite_async_url(db_path: str | Path) -> str:
    """Build an aiosqlite URL for a filesystem path."""
    return f"sqlite+aiosqlite:///{Path(db_path)}"


def create_sqlite_engine(db_path: str | Path, *, wal: bool = False) -> AsyncEngine:
    """Create an async engine for a SQLite file.

    With ``wal=True`` every new connection switches the database to
    write-ahead logging so readers and the writer do not block each other.
    """
    engine = create_async_engine(sqlite_async_url(db_path), future=True)

    if wal:
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_wal(dbapi_connection, _connection_record):  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine
