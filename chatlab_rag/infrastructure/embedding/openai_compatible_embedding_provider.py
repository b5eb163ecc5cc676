"""OpenAI-compatible embedding provider — calls the /embeddings endpoint.

Works against any server speaking the OpenAI embeddings API: OpenAI itself,
DeepSeek, DashScope compatible mode, Ollama, LM Studio, vLLM, ...
"""

import logging
from typing import Any

import httpx

from chatlab_rag.application.interfaces.embedding_provider import EmbeddingProvider
from chatlab_rag.domain.entities import ValidationResult
from chatlab_rag.domain.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)

_PROVIDER = "openai-compatible"
_PROBE_TEXT = "test"


class OpenAICompatibleEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter — generates embeddings via an OpenAI-style /embeddings API."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._http_client = http_client
        self._owned_client: httpx.AsyncClient | None = None
        self._dimensions = 0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_provider(self) -> str:
        return f"OpenAI Compatible ({self._model})"

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        if self._owned_client is None:
            self._owned_client = httpx.AsyncClient(timeout=self._timeout)
        return self._owned_client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        url = f"{self._base_url}/embeddings"
        payload: dict[str, Any] = {"model": self._model, "input": texts}

        client = self._get_client()
        try:
            response = await client.post(url, headers=self._get_headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.error("Embedding request to %s failed: %s", url, exc)
            raise EmbeddingProviderError(_PROVIDER, 0, str(exc)) from exc

        if not response.is_success:
            error_text = response.text[:500]
            logger.error("Embedding API error %d: %s", response.status_code, error_text)
            raise EmbeddingProviderError(_PROVIDER, response.status_code, error_text)

        embeddings_data = response.json().get("data") or []
        if not embeddings_data:
            raise EmbeddingProviderError(
                _PROVIDER, response.status_code, "Invalid embedding response: no data"
            )

        # Servers may answer out of order; "index" is authoritative
        embeddings_data.sort(key=lambda item: item.get("index", 0))
        result = [item["embedding"] for item in embeddings_data]

        if result[0]:
            self._dimensions = len(result[0])

        logger.debug(
            "Generated %d embeddings (model=%s, dims=%d)",
            len(result),
            self._model,
            self._dimensions,
        )
        return result

    async def validate(self) -> ValidationResult:
        try:
            vector = await self.embed(_PROBE_TEXT)
        except Exception as exc:
            logger.warning("Embedding validation failed for %s: %s", self.get_provider(), exc)
            return ValidationResult(success=False, error=str(exc))

        if not vector:
            return ValidationResult(success=False, error="Endpoint returned an empty vector")
        return ValidationResult(success=True)

    async def dispose(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None
