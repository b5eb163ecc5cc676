"""Explicit context owning the RAG subsystem's long-lived handles.

One ``RagContext`` holds the active embedding provider (re-created whenever
the active configuration changes) and the vector store (created lazily,
dropped by :meth:`RagContext.reset_vector_store`). Construction is cheap;
nothing is opened until first use.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from chatlab_rag.application.interfaces.embedding_provider import EmbeddingProvider
from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.application.services.embedding_config_service import EmbeddingConfigService
from chatlab_rag.config import Settings
from chatlab_rag.domain.entities import (
    ApiSource,
    EmbeddingServiceConfig,
    LLMConnection,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"

EmbeddingFactory = Callable[[EmbeddingServiceConfig, LLMConnection | None], EmbeddingProvider]
VectorStoreFactory = Callable[[], Awaitable[VectorStore]]
LLMConnectionResolver = Callable[[], LLMConnection | None]


class RagContext:
    """Holds the embedding service and vector store for one application.

    Args:
        settings: Application settings (vector store switch and type).
        config_service: Persistent embedding configuration store.
        llm_connection_resolver: Returns the active LLM connection, if any.
        embedding_factory: Builds a provider for a config; may raise.
        vector_store_factory: Opens the configured vector store; may raise.
    """

    def __init__(
        self,
        settings: Settings,
        config_service: EmbeddingConfigService,
        *,
        llm_connection_resolver: LLMConnectionResolver,
        embedding_factory: EmbeddingFactory,
        vector_store_factory: VectorStoreFactory,
    ):
        self._settings = settings
        self._config_service = config_service
        self._llm_connection_resolver = llm_connection_resolver
        self._embedding_factory = embedding_factory
        self._vector_store_factory = vector_store_factory

        self._embedding_service: EmbeddingProvider | None = None
        self._embedding_config_id: str | None = None
        self._vector_store: VectorStore | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config_service(self) -> EmbeddingConfigService:
        return self._config_service

    # ── Embedding service ───────────────────────────────────────────

    def is_embedding_enabled(self) -> bool:
        return self._config_service.is_enabled()

    async def get_embedding_service(self) -> EmbeddingProvider | None:
        """The provider for the active configuration, or None when unavailable.

        Reused while the active configuration id is unchanged; construction
        errors are logged and reported as None.
        """
        if not self._config_service.is_enabled():
            return None

        config = self._config_service.get_active_config()
        if config is None:
            return None

        if self._embedding_service is not None and self._embedding_config_id == config.id:
            return self._embedding_service

        await self.reset_embedding_service()

        try:
            service = self._embedding_factory(config, self._llm_connection_resolver())
        except Exception:
            logger.exception("Failed to create embedding service for config %s", config.name)
            return None

        self._embedding_service = service
        self._embedding_config_id = config.id
        logger.info("Using embedding service %s: %s", config.name, service.get_provider())
        return service

    async def reset_embedding_service(self) -> None:
        if self._embedding_service is None:
            return
        await self._embedding_service.dispose()
        self._embedding_service = None
        self._embedding_config_id = None
        logger.info("Embedding service reset")

    async def validate_embedding_config(
        self, config: EmbeddingServiceConfig | dict[str, Any]
    ) -> ValidationResult:
        """Probe a configuration with a throwaway provider.

        ``config`` may be a stored configuration or a partial mapping with
        any of ``api_source``, ``model``, ``base_url`` and ``api_key``.
        """
        try:
            if not isinstance(config, EmbeddingServiceConfig):
                config = EmbeddingServiceConfig(
                    id="temp",
                    name="temp",
                    api_source=ApiSource(config.get("api_source") or ApiSource.REUSE_LLM),
                    model=config.get("model") or DEFAULT_EMBEDDING_MODEL,
                    base_url=config.get("base_url"),
                    api_key=config.get("api_key"),
                )
            service = self._embedding_factory(config, self._llm_connection_resolver())
        except Exception as exc:
            return ValidationResult(success=False, error=str(exc))

        try:
            return await service.validate()
        finally:
            await service.dispose()

    # ── Configuration mutations (reset the service afterwards) ──────

    async def add_embedding_config(self, name: str, model: str, **kwargs: Any) -> EmbeddingServiceConfig:
        config = self._config_service.add_config(name, model, **kwargs)
        await self.reset_embedding_service()
        return config

    async def update_embedding_config(
        self, config_id: str, updates: dict[str, Any]
    ) -> EmbeddingServiceConfig:
        config = self._config_service.update_config(config_id, updates)
        await self.reset_embedding_service()
        return config

    async def delete_embedding_config(self, config_id: str) -> None:
        self._config_service.delete_config(config_id)
        await self.reset_embedding_service()

    async def set_active_embedding_config(self, config_id: str) -> None:
        self._config_service.set_active_config(config_id)
        await self.reset_embedding_service()

    async def set_embedding_enabled(self, enabled: bool) -> None:
        self._config_service.set_enabled(enabled)
        await self.reset_embedding_service()

    # ── Vector store ────────────────────────────────────────────────

    async def get_vector_store(self) -> VectorStore | None:
        """The configured vector store, or None when disabled or broken."""
        if not self._settings.vector_store_enabled:
            return None
        if self._vector_store is not None:
            return self._vector_store

        try:
            self._vector_store = await self._vector_store_factory()
        except Exception:
            logger.exception(
                "Failed to create %s vector store", self._settings.vector_store_type
            )
            return None
        return self._vector_store

    async def reset_vector_store(self) -> None:
        if self._vector_store is None:
            return
        await self._vector_store.close()
        self._vector_store = None
        logger.info("Vector store reset")

    async def get_vector_store_stats(self) -> dict[str, Any]:
        """``{enabled, type, count, dimensions, size_bytes}``; ``{enabled: False}`` when off."""
        if not self._settings.vector_store_enabled:
            return {"enabled": False}

        store_type = self._settings.vector_store_type
        store = await self.get_vector_store()
        if store is None:
            return {"enabled": True, "type": store_type}

        stats = await store.get_stats()
        return {
            "enabled": True,
            "type": store_type,
            "count": stats.count,
            "dimensions": stats.dimensions,
            "size_bytes": stats.size_bytes,
        }

    async def clear_vector_store(self) -> bool:
        """Drop every cached vector. Returns False when no store is available."""
        store = await self.get_vector_store()
        if store is None:
            return False
        await store.clear()
        return True

    async def close(self) -> None:
        await self.reset_embedding_service()
        await self.reset_vector_store()
