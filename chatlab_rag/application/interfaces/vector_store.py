"""Abstract interface (port) for embedding vector storage and similarity search."""

from abc import ABC, abstractmethod
from typing import Any

from chatlab_rag.domain.entities import VectorRecord, VectorSearchResult, VectorStoreStats


class VectorStore(ABC):
    """Port for a key → vector cache with nearest-neighbour search.

    Every backend stores vectors of one implicit dimension; mixing embedding
    models within one store yields meaningless scores and is not detected.
    """

    @abstractmethod
    async def add(
        self, id: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        """Insert or replace the vector stored under ``id``."""
        ...

    @abstractmethod
    async def add_batch(self, items: list[VectorRecord]) -> None:
        """Insert or replace many vectors in one backend operation."""
        ...

    @abstractmethod
    async def get(self, id: str) -> list[float] | None:
        """Return the stored vector, or None."""
        ...

    @abstractmethod
    async def has(self, id: str) -> bool:
        ...

    @abstractmethod
    async def delete(self, id: str) -> None:
        """Remove ``id``; no-op when absent."""
        ...

    @abstractmethod
    async def search(self, query: list[float], top_k: int) -> list[VectorSearchResult]:
        """Find the vectors most similar to ``query``.

        Args:
            query: The query vector.
            top_k: Maximum number of results.

        Returns:
            Results ordered by descending cosine similarity; [] when empty.
        """
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    @abstractmethod
    async def get_stats(self) -> VectorStoreStats:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        ...
