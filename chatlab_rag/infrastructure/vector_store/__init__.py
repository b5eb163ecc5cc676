from .factory import VECTOR_STORE_TYPES, create_vector_store
from .memory_vector_store import MemoryVectorStore
from .sqlite_vector_store import SQLiteVectorStore, blob_to_vector, vector_to_blob

__all__ = [
    "VECTOR_STORE_TYPES",
    "MemoryVectorStore",
    "SQLiteVectorStore",
    "blob_to_vector",
    "create_vector_store",
    "vector_to_blob",
]
