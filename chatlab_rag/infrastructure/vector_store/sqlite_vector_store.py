"""SQLite vector store — vectors persisted as float32 BLOBs.

BLOBs are about half the size of JSON-encoded vectors and need no parsing.
There is no ANN index: ``search`` loads every row and scores it in Python,
which is fine for tens of thousands of chunks.
"""

import json
import logging
import sys
from array import array
from pathlib import Path
from typing import Any

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.domain.entities import VectorRecord, VectorSearchResult, VectorStoreStats
from chatlab_rag.domain.similarity import cosine_similarity
from chatlab_rag.infrastructure.database.base import Base, create_sqlite_engine
from chatlab_rag.infrastructure.database.models import VectorModel

logger = logging.getLogger(__name__)


def vector_to_blob(vector: list[float]) -> bytes:
    """Pack a vector as little-endian float32."""
    packed = array("f", vector)
    if sys.byteorder == "big":
        packed.byteswap()
    return packed.tobytes()


def blob_to_vector(blob: bytes) -> list[float]:
    """Unpack a little-endian float32 BLOB."""
    unpacked = array("f")
    unpacked.frombytes(blob)
    if sys.byteorder == "big":
        unpacked.byteswap()
    return unpacked.tolist()


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    return json.dumps(metadata, ensure_ascii=False) if metadata else None


def _load_metadata(raw: str | None) -> dict[str, Any] | None:
    return json.loads(raw) if raw else None


class SQLiteVectorStore(VectorStore):
    """Durable vector store backed by a single SQLite file (WAL mode)."""

    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_sqlite_engine(self._db_path, wal=True)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        self._closed = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @classmethod
    async def open(cls, db_path: str | Path) -> "SQLiteVectorStore":
        """Create the store and make sure its schema exists."""
        store = cls(db_path)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[VectorModel.__table__])
        logger.info("SQLite vector store ready: %s", self._db_path)

    @staticmethod
    def _row(id: str, vector: list[float], metadata: dict[str, Any] | None) -> dict[str, Any]:
        return {
            "id": id,
            "vector": vector_to_blob(vector),
            "dimensions": len(vector),
            "metadata": _dump_metadata(metadata),
        }

    async def add(
        self, id: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        await self.add_batch([VectorRecord(id=id, vector=vector, metadata=metadata)])

    async def add_batch(self, items: list[VectorRecord]) -> None:
        if not items:
            return
        rows = [self._row(item.id, item.vector, item.metadata) for item in items]
        stmt = insert(VectorModel.__table__).prefix_with("OR REPLACE")

        async with self._session_factory() as session:
            await session.execute(stmt, rows)
            await session.commit()

    async def get(self, id: str) -> list[float] | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VectorModel.vector).where(VectorModel.id == id)
            )
            blob = result.scalar_one_or_none()
        return blob_to_vector(blob) if blob is not None else None

    async def has(self, id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VectorModel.id).where(VectorModel.id == id)
            )
            return result.scalar_one_or_none() is not None

    async def delete(self, id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(VectorModel).where(VectorModel.id == id))
            await session.commit()

    async def search(self, query: list[float], top_k: int) -> list[VectorSearchResult]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VectorModel.id, VectorModel.vector, VectorModel.metadata_json)
            )
            rows = result.all()

        if not rows:
            return []

        results = [
            VectorSearchResult(
                id=row.id,
                score=cosine_similarity(query, blob_to_vector(row.vector)),
                metadata=_load_metadata(row.metadata_json),
            )
            for row in rows
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        return results[: max(top_k, 0)]

    async def clear(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(VectorModel))
            await session.commit()
        logger.info("SQLite vector store cleared: %s", self._db_path)

    async def get_stats(self) -> VectorStoreStats:
        async with self._session_factory() as session:
            count = (
                await session.execute(select(func.count()).select_from(VectorModel))
            ).scalar_one()
            dimensions = (
                await session.execute(select(VectorModel.dimensions).limit(1))
            ).scalar_one_or_none()

        return VectorStoreStats(
            count=count,
            dimensions=dimensions,
            size_bytes=self._file_size(),
        )

    def _file_size(self) -> int | None:
        """Database file size including the write-ahead log, if any."""
        try:
            size = self._db_path.stat().st_size
        except OSError:
            return None
        wal_path = self._db_path.with_name(self._db_path.name + "-wal")
        if wal_path.exists():
            size += wal_path.stat().st_size
        return size

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._engine.dispose()
        logger.info("SQLite vector store closed: %s", self._db_path)
