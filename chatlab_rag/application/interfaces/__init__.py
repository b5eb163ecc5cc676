from .chat_log_repository import ChatLogRepository
from .chat_provider import ChatProvider
from .embedding_provider import EmbeddingProvider
from .vector_store import VectorStore

__all__ = [
    "ChatLogRepository",
    "ChatProvider",
    "EmbeddingProvider",
    "VectorStore",
]
