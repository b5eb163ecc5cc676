"""Vector store construction, dispatched on the configured backend type."""

import logging
from pathlib import Path

from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.domain.exceptions import VectorStoreError

from .memory_vector_store import MemoryVectorStore
from .sqlite_vector_store import SQLiteVectorStore

logger = logging.getLogger(__name__)

VECTOR_STORE_TYPES = ("memory", "sqlite", "lancedb")


async def create_vector_store(
    store_type: str,
    *,
    memory_cache_size: int = 10000,
    db_path: str | Path | None = None,
) -> VectorStore:
    """Create and open a vector store backend.

    Raises:
        VectorStoreError: Unknown or unimplemented type, missing SQLite path,
            or a backend that fails to open.
    """
    if store_type == "memory":
        logger.info("Using memory vector store (capacity=%d)", memory_cache_size)
        try:
            return MemoryVectorStore(capacity=memory_cache_size)
        except ValueError as exc:
            raise VectorStoreError(str(exc)) from exc

    if store_type == "sqlite":
        if not db_path:
            raise VectorStoreError("SQLite vector store requires a database path")
        try:
            return await SQLiteVectorStore.open(db_path)
        except Exception as exc:
            raise VectorStoreError(f"Failed to open SQLite vector store at {db_path}: {exc}") from exc

    if store_type == "lancedb":
        raise VectorStoreError("LanceDB vector store is not implemented yet")

    raise VectorStoreError(f"Unknown vector store type: {store_type!r}")
