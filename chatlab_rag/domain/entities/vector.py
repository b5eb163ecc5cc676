"""Domain entities for stored embedding vectors and similarity search."""

from dataclasses import dataclass
from typing import Any


@dataclass
class VectorRecord:
    """An embedding vector keyed by chunk id, with optional metadata."""

    id: str
    vector: list[float]
    metadata: dict[str, Any] | None = None


@dataclass
class VectorSearchResult:
    """A single hit from a vector store similarity search."""

    id: str
    score: float  # cosine similarity, -1.0 – 1.0
    metadata: dict[str, Any] | None = None


@dataclass
class VectorStoreStats:
    """Size information reported by a vector store backend."""

    count: int
    dimensions: int | None = None
    size_bytes: int | None = None
