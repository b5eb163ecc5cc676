from .chat_message import ChatMessage, TokenUsage, ChatCompletionResult
from .chunk import Chunk, ChunkMetadata, ChunkType, SessionInfo, SessionMessage
from .embedding_config import (
    ApiSource,
    EmbeddingConfigStore,
    EmbeddingServiceConfig,
    LLMConnection,
    ResolvedEmbeddingEndpoint,
    ValidationResult,
)
from .pipeline import (
    CancellationToken,
    RankedChunk,
    SemanticPipelineOptions,
    SemanticPipelineResult,
    TimeFilter,
)
from .vector import VectorRecord, VectorSearchResult, VectorStoreStats

__all__ = [
    "ChatMessage",
    "TokenUsage",
    "ChatCompletionResult",
    "Chunk",
    "ChunkMetadata",
    "ChunkType",
    "SessionInfo",
    "SessionMessage",
    "ApiSource",
    "EmbeddingConfigStore",
    "EmbeddingServiceConfig",
    "LLMConnection",
    "ResolvedEmbeddingEndpoint",
    "ValidationResult",
    "CancellationToken",
    "RankedChunk",
    "SemanticPipelineOptions",
    "SemanticPipelineResult",
    "TimeFilter",
    "VectorRecord",
    "VectorSearchResult",
    "VectorStoreStats",
]
