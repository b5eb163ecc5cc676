"""Domain-specific exceptions — framework-independent."""


class ConfigNotFoundError(Exception):
    """Raised when a requested configuration does not exist."""

    def __init__(self, config_type: str, config_id: str):
        self.config_type = config_type
        self.config_id = config_id
        super().__init__(f"{config_type} with id '{config_id}' not found")


class ConfigLimitError(Exception):
    """Raised when adding a configuration would exceed the allowed count."""

    def __init__(self, config_type: str, limit: int):
        self.config_type = config_type
        self.limit = limit
        super().__init__(f"At most {limit} {config_type} entries can be stored")


class EmbeddingConfigError(Exception):
    """Raised when an embedding configuration cannot be turned into a service."""


class VectorStoreError(Exception):
    """Raised when a vector store backend cannot be constructed or opened."""


class OperationCancelledError(Exception):
    """Raised when a cancellation token was triggered before an I/O call."""


class ChatProviderError(Exception):
    """Raised when a chat provider returns an error.

    Provider-agnostic — works for DeepSeek, Qwen, OpenAI, Ollama, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class EmbeddingProviderError(Exception):
    """Raised when an embedding endpoint fails or returns no vectors."""

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")
