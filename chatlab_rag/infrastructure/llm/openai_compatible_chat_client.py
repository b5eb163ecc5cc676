"""OpenAI-compatible chat client — implements the ChatProvider interface.

Talks to any ``/chat/completions`` endpoint (OpenAI, DeepSeek, Qwen in
DashScope compatible mode, Ollama, ...). The retrieval pipeline only needs
short non-streaming completions for query rewriting.
"""

import logging
from typing import Any

import httpx

from chatlab_rag.application.interfaces.chat_provider import ChatProvider
from chatlab_rag.domain.entities import (
    CancellationToken,
    ChatCompletionResult,
    ChatMessage,
    TokenUsage,
)
from chatlab_rag.domain.exceptions import ChatProviderError, OperationCancelledError

logger = logging.getLogger(__name__)

_MAX_LOGGED_ERROR_CHARS = 500


class OpenAICompatibleChatClient(ChatProvider):
    """Infrastructure adapter for OpenAI-style chat APIs.

    An injected ``http_client`` is used as-is and never closed; without one,
    each request opens and closes its own client.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        provider: str = "openai-compatible",
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self._api_key = api_key
        self._provider = provider
        self._timeout = timeout
        self._http_client = http_client

    @property
    def provider_name(self) -> str:
        return self._provider

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    @staticmethod
    def _request_body(
        messages: list[ChatMessage],
        model: str,
        temperature: float | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        # Unset sampling options are left to the server defaults
        for key, value in (("temperature", temperature), ("max_tokens", max_tokens)):
            if value is not None:
                body[key] = value
        return body

    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ChatCompletionResult:
        """Send one chat completion and wait for the full answer.

        Raises:
            OperationCancelledError: ``cancellation`` was already set.
            ChatProviderError: Transport failure, non-200 status, or an
                error object / empty ``choices`` in the body.
        """
        if cancellation is not None and cancellation.cancelled:
            raise OperationCancelledError("Operation cancelled")

        body = self._request_body(messages, model, temperature, max_tokens)
        owns_client = self._http_client is None
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await client.post(self._endpoint, headers=self._headers(), json=body)
        except httpx.HTTPError as e:
            logger.error("Chat request to %s failed: %s", self._provider, e)
            raise ChatProviderError(self._provider, 0, f"Request failed: {e}") from e
        finally:
            if owns_client:
                await client.aclose()

        if response.status_code != 200:
            raise self._error_from_response(response)
        return self._to_result(response.json())

    def _to_result(self, data: dict[str, Any]) -> ChatCompletionResult:
        # Some gateways report errors with a 200 status
        error = data.get("error")
        if error:
            raise ChatProviderError(
                self._provider,
                error.get("code", 500),
                error.get("message", "Unknown error"),
            )

        choices = data.get("choices") or []
        if not choices:
            raise ChatProviderError(self._provider, 500, "No choices in response")

        first = choices[0]
        usage = data.get("usage") or {}
        return ChatCompletionResult(
            model=data.get("model", ""),
            content=(first.get("message") or {}).get("content") or "",
            finish_reason=first.get("finish_reason") or "stop",
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
            provider=self._provider,
        )

    def _error_from_response(self, response: httpx.Response) -> ChatProviderError:
        try:
            message = response.json().get("error", {}).get("message") or response.text
        except ValueError:
            message = response.text

        logger.error(
            "Chat API error %d from %s: %s",
            response.status_code,
            self._provider,
            message[:_MAX_LOGGED_ERROR_CHARS],
        )
        return ChatProviderError(self._provider, response.status_code, message)
