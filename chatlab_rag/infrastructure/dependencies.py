"""Dependency wiring — connects infrastructure adapters to the application layer.

``build_rag_context`` assembles an explicit :class:`RagContext` from settings.
The module-level functions below operate on a process-wide default context,
created on first use by :func:`get_rag_context`; hosts that need isolated
state (tests, multiple workspaces) build their own context instead.
"""

from functools import lru_cache
from typing import Any

from chatlab_rag.application.interfaces.chat_provider import ChatProvider
from chatlab_rag.application.interfaces.embedding_provider import EmbeddingProvider
from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.application.services import (
    ChunkingOptions,
    ChunkingService,
    EmbeddingConfigService,
    RagContext,
    SemanticPipeline,
)
from chatlab_rag.config import Settings, get_settings
from chatlab_rag.domain.entities import (
    Chunk,
    EmbeddingServiceConfig,
    LLMConnection,
    SemanticPipelineOptions,
    SemanticPipelineResult,
    ValidationResult,
)
from chatlab_rag.infrastructure.database.repositories import SQLAlchemyChatLogRepository
from chatlab_rag.infrastructure.embedding import create_embedding_provider, default_base_url
from chatlab_rag.infrastructure.llm import OpenAICompatibleChatClient
from chatlab_rag.infrastructure.vector_store import create_vector_store


def get_llm_connection(settings: Settings | None = None) -> LLMConnection | None:
    """The active LLM connection from settings; None when no provider is set."""
    settings = settings or get_settings()
    if not settings.llm_provider.strip():
        return None
    return LLMConnection(
        provider=settings.llm_provider,
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
    )


def build_rag_context(settings: Settings) -> RagContext:
    """Wire a RagContext with the OpenAI-compatible embedding factory and
    the settings-selected vector store backend."""

    async def open_vector_store() -> VectorStore:
        return await create_vector_store(
            settings.vector_store_type,
            memory_cache_size=settings.memory_cache_size,
            db_path=settings.resolved_vector_db_path(),
        )

    def build_embedding_provider(
        config: EmbeddingServiceConfig, connection: LLMConnection | None
    ) -> EmbeddingProvider:
        return create_embedding_provider(
            config, connection, timeout=settings.embedding_timeout_seconds
        )

    return RagContext(
        settings,
        EmbeddingConfigService(settings.resolved_embedding_config_file()),
        llm_connection_resolver=lambda: get_llm_connection(settings),
        embedding_factory=build_embedding_provider,
        vector_store_factory=open_vector_store,
    )


def build_chat_provider(settings: Settings) -> ChatProvider | None:
    """Chat client for the active LLM connection, or None without one."""
    connection = get_llm_connection(settings)
    if connection is None:
        return None
    return OpenAICompatibleChatClient(
        base_url=connection.base_url or default_base_url(connection.provider),
        api_key=connection.api_key or None,
        provider=connection.provider,
        timeout=settings.chat_timeout_seconds,
    )


@lru_cache
def get_rag_context() -> RagContext:
    """Process-wide default context, built once from the cached settings."""
    return build_rag_context(get_settings())


def get_chunking_service() -> ChunkingService:
    return ChunkingService(SQLAlchemyChatLogRepository)


@lru_cache
def get_semantic_pipeline() -> SemanticPipeline:
    settings = get_settings()
    return SemanticPipeline(
        get_rag_context(),
        build_chat_provider(settings),
        get_chunking_service(),
        model=settings.llm_model,
        settings=settings,
    )


# ── Operations on the default context ───────────────────────────────


async def execute_semantic_pipeline(
    options: SemanticPipelineOptions, *, pipeline: SemanticPipeline | None = None
) -> SemanticPipelineResult:
    return await (pipeline or get_semantic_pipeline()).execute(options)


async def get_session_chunks(db_path: str, options: ChunkingOptions | None = None) -> list[Chunk]:
    return await get_chunking_service().get_session_chunks(db_path, options)


async def get_session_chunk(db_path: str, session_id: int) -> Chunk | None:
    return await get_chunking_service().get_session_chunk(db_path, session_id)


def is_embedding_enabled() -> bool:
    return get_rag_context().is_embedding_enabled()


async def get_embedding_service() -> EmbeddingProvider | None:
    return await get_rag_context().get_embedding_service()


async def reset_embedding_service() -> None:
    await get_rag_context().reset_embedding_service()


async def validate_embedding_config(
    config: EmbeddingServiceConfig | dict[str, Any],
) -> ValidationResult:
    return await get_rag_context().validate_embedding_config(config)


async def get_vector_store() -> VectorStore | None:
    return await get_rag_context().get_vector_store()


async def reset_vector_store() -> None:
    await get_rag_context().reset_vector_store()


async def get_vector_store_stats() -> dict[str, Any]:
    return await get_rag_context().get_vector_store_stats()


async def clear_vector_store() -> bool:
    return await get_rag_context().clear_vector_store()
