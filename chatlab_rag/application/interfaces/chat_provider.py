"""Abstract chat provider interface — port for the LLM chat collaborator.

The RAG core only needs non-streaming completions (query rewriting). Each
AI provider adapter (OpenAI-compatible endpoints, DeepSeek, Qwen, Ollama,
etc.) implements this interface.
"""

from abc import ABC, abstractmethod

from chatlab_rag.domain.entities import ChatCompletionResult, ChatMessage, CancellationToken


class ChatProvider(ABC):
    """Port — defines what the application layer needs from any chat provider."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider (e.g. 'deepseek', 'openai')."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ChatCompletionResult:
        """Send a non-streaming chat completion request.

        Args:
            messages: The conversation history.
            model: The model identifier.
            temperature: Sampling temperature (0.0–2.0).
            max_tokens: Maximum tokens in the response.
            cancellation: Checked before the request is issued.

        Returns:
            A ChatCompletionResult with content and usage.

        Raises:
            ChatProviderError: If the provider returns an error.
            OperationCancelledError: If the token was already cancelled.
        """
        ...
