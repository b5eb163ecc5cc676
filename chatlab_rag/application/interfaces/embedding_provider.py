"""Abstract interface (port) for embedding generation."""

from abc import ABC, abstractmethod

from chatlab_rag.domain.entities import ValidationResult


class EmbeddingProvider(ABC):
    """Port for generating text embeddings — implemented in the infrastructure layer."""

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors, one per input text, in input order.

        Raises:
            EmbeddingProviderError: If the endpoint fails or returns no data.
        """
        ...

    async def embed(self, text: str) -> list[float]:
        """Generate a single embedding vector."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Dimensionality of produced vectors; 0 until the first successful call."""
        ...

    def get_dimensions(self) -> int:
        return self.dimensions

    @abstractmethod
    def get_provider(self) -> str:
        """Human-readable provider label (e.g. 'OpenAI Compatible (bge-m3)')."""
        ...

    @abstractmethod
    async def validate(self) -> ValidationResult:
        """Probe the provider with one embedding call."""
        ...

    async def dispose(self) -> None:
        """Release any held resources. No-op by default."""
        return None
