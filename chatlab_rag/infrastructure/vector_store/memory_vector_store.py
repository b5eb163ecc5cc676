"""In-memory vector store — bounded LRU cache, lost on restart.

The LRU order is kept in a doubly linked list whose nodes live in an arena
(a plain list) and point at their neighbours by slot index. A dict maps each
id to its slot, so get/put/evict are all O(1). Search is a full scan.
"""

import logging
from dataclasses import dataclass
from typing import Any

from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.domain.entities import VectorRecord, VectorSearchResult, VectorStoreStats
from chatlab_rag.domain.similarity import cosine_similarity

logger = logging.getLogger(__name__)

_NIL = -1
_DEFAULT_CAPACITY = 10000


@dataclass
class _Node:
    id: str
    vector: list[float]
    metadata: dict[str, Any] | None
    prev: int = _NIL
    next: int = _NIL


class MemoryVectorStore(VectorStore):
    """LRU-bounded vector cache. Head is most recently used, tail least."""

    def __init__(self, capacity: int = _DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._arena: list[_Node | None] = []
        self._free_slots: list[int] = []
        self._index: dict[str, int] = {}
        self._head = _NIL
        self._tail = _NIL

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._index)

    # ── Linked-list primitives ───────────────────────────────────────

    def _node(self, slot: int) -> _Node:
        node = self._arena[slot]
        assert node is not None, f"dangling slot {slot}"
        return node

    def _unlink(self, slot: int) -> None:
        node = self._node(slot)
        if node.prev != _NIL:
            self._node(node.prev).next = node.next
        else:
            self._head = node.next
        if node.next != _NIL:
            self._node(node.next).prev = node.prev
        else:
            self._tail = node.prev
        node.prev = _NIL
        node.next = _NIL

    def _push_front(self, slot: int) -> None:
        node = self._node(slot)
        node.prev = _NIL
        node.next = self._head
        if self._head != _NIL:
            self._node(self._head).prev = slot
        self._head = slot
        if self._tail == _NIL:
            self._tail = slot

    def _move_to_front(self, slot: int) -> None:
        if slot == self._head:
            return
        self._unlink(slot)
        self._push_front(slot)

    def _allocate(self, node: _Node) -> int:
        if self._free_slots:
            slot = self._free_slots.pop()
            self._arena[slot] = node
            return slot
        self._arena.append(node)
        return len(self._arena) - 1

    def _release(self, slot: int) -> None:
        self._arena[slot] = None
        self._free_slots.append(slot)

    def _evict_tail(self) -> None:
        slot = self._tail
        if slot == _NIL:
            return
        evicted = self._node(slot)
        self._unlink(slot)
        del self._index[evicted.id]
        self._release(slot)
        logger.debug("Evicted least recently used vector %s", evicted.id)

    def _ids_by_recency(self) -> list[str]:
        """Ids from most to least recently used."""
        ids: list[str] = []
        slot = self._head
        while slot != _NIL:
            node = self._node(slot)
            ids.append(node.id)
            slot = node.next
        return ids

    # ── VectorStore ──────────────────────────────────────────────────

    async def add(
        self, id: str, vector: list[float], metadata: dict[str, Any] | None = None
    ) -> None:
        slot = self._index.get(id)
        if slot is not None:
            node = self._node(slot)
            node.vector = vector
            node.metadata = metadata
            self._move_to_front(slot)
            return

        slot = self._allocate(_Node(id=id, vector=vector, metadata=metadata))
        self._index[id] = slot
        self._push_front(slot)

        if len(self._index) > self._capacity:
            self._evict_tail()

    async def add_batch(self, items: list[VectorRecord]) -> None:
        for item in items:
            await self.add(item.id, item.vector, item.metadata)

    async def get(self, id: str) -> list[float] | None:
        slot = self._index.get(id)
        if slot is None:
            return None
        self._move_to_front(slot)
        return self._node(slot).vector

    async def has(self, id: str) -> bool:
        return id in self._index

    async def delete(self, id: str) -> None:
        slot = self._index.pop(id, None)
        if slot is None:
            return
        self._unlink(slot)
        self._release(slot)

    async def search(self, query: list[float], top_k: int) -> list[VectorSearchResult]:
        results = [
            VectorSearchResult(
                id=node.id,
                score=cosine_similarity(query, node.vector),
                metadata=node.metadata,
            )
            for node in (self._node(slot) for slot in self._index.values())
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        return results[: max(top_k, 0)]

    async def clear(self) -> None:
        self._arena.clear()
        self._free_slots.clear()
        self._index.clear()
        self._head = _NIL
        self._tail = _NIL
        logger.info("Memory vector store cleared")

    async def get_stats(self) -> VectorStoreStats:
        dimensions: int | None = None
        for slot in self._index.values():
            dimensions = len(self._node(slot).vector)
            break

        # Rough estimate: float storage plus id/metadata overhead
        size_bytes = len(self._index) * dimensions * 8 if dimensions else None
        return VectorStoreStats(
            count=len(self._index),
            dimensions=dimensions,
            size_bytes=size_bytes,
        )

    async def close(self) -> None:
        logger.info("Memory vector store closed")
