"""Embedding provider construction: endpoint resolution and provider dispatch."""

import httpx

from chatlab_rag.application.interfaces.embedding_provider import EmbeddingProvider
from chatlab_rag.domain.entities import (
    ApiSource,
    EmbeddingServiceConfig,
    LLMConnection,
    ResolvedEmbeddingEndpoint,
)
from chatlab_rag.domain.exceptions import EmbeddingConfigError

from .openai_compatible_embedding_provider import OpenAICompatibleEmbeddingProvider

DEFAULT_BASE_URLS: dict[str, str] = {
    "deepseek": "https://api.deepseek.com/v1",
    "qwen": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    "openai": "https://api.openai.com/v1",
    "openai-compatible": "http://localhost:11434/v1",
}
FALLBACK_BASE_URL = "http://localhost:11434/v1"


def default_base_url(provider: str) -> str:
    """Default OpenAI-compatible base URL for an LLM provider name."""
    return DEFAULT_BASE_URLS.get(provider, FALLBACK_BASE_URL)


def resolve_embedding_endpoint(
    config: EmbeddingServiceConfig,
    llm_connection: LLMConnection | None,
) -> ResolvedEmbeddingEndpoint:
    """Turn a stored embedding config into a concrete HTTP target.

    Raises:
        EmbeddingConfigError: ``reuse_llm`` without an active LLM connection,
            or ``custom`` without a base URL.
    """
    if config.api_source == ApiSource.REUSE_LLM:
        if llm_connection is None:
            raise EmbeddingConfigError(
                "No active LLM connection to reuse; configure an LLM first "
                "or switch the embedding config to a custom endpoint"
            )
        return ResolvedEmbeddingEndpoint(
            base_url=llm_connection.base_url or default_base_url(llm_connection.provider),
            model=config.model,
            api_key=llm_connection.api_key or None,
        )

    if config.api_source == ApiSource.CUSTOM:
        if not config.base_url:
            raise EmbeddingConfigError(
                f"Embedding config '{config.name}' uses a custom endpoint but has no base URL"
            )
        return ResolvedEmbeddingEndpoint(
            base_url=config.base_url,
            model=config.model,
            api_key=config.api_key or None,
        )

    raise EmbeddingConfigError(f"Unsupported embedding api_source: {config.api_source!r}")


def create_embedding_provider(
    config: EmbeddingServiceConfig,
    llm_connection: LLMConnection | None,
    *,
    timeout: float = 60.0,
    http_client: httpx.AsyncClient | None = None,
) -> EmbeddingProvider:
    """Build the embedding provider for ``config``.

    Every supported source speaks the OpenAI embeddings API, so resolution
    only decides where the requests go.
    """
    endpoint = resolve_embedding_endpoint(config, llm_connection)
    return OpenAICompatibleEmbeddingProvider(
        base_url=endpoint.base_url,
        model=endpoint.model,
        api_key=endpoint.api_key,
        timeout=timeout,
        http_client=http_client,
    )
