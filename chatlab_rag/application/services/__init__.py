from .chunking_service import ChunkingOptions, ChunkingService
from .embedding_config_service import MAX_EMBEDDING_CONFIG_COUNT, EmbeddingConfigService
from .rag_context import RagContext
from .semantic_pipeline import SemanticPipeline, format_evidence_block

__all__ = [
    "ChunkingOptions",
    "ChunkingService",
    "EmbeddingConfigService",
    "MAX_EMBEDDING_CONFIG_COUNT",
    "RagContext",
    "SemanticPipeline",
    "format_evidence_block",
]
