from .factory import (
    DEFAULT_BASE_URLS,
    create_embedding_provider,
    default_base_url,
    resolve_embedding_endpoint,
)
from .openai_compatible_embedding_provider import OpenAICompatibleEmbeddingProvider

__all__ = [
    "DEFAULT_BASE_URLS",
    "OpenAICompatibleEmbeddingProvider",
    "create_embedding_provider",
    "default_base_url",
    "resolve_embedding_endpoint",
]
