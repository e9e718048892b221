"""OpenRouter chat-completions client for pair comparison.

Features:
- Connection pooling (single httpx.AsyncClient per OpenRouterClient)
- Bounded output length and sampling temperature per request
- Optional retry with exponential backoff (off by default: a failed
  comparison call is final for its batch), respects Retry-After for 429

Example usage:

    async with OpenRouterClient() as client:
        call_model = create_model_callable(client, "openai/gpt-4o-mini")
        text = await call_model(prompt)
"""

import os
import json
import asyncio
import random
import logging
from typing import Any, Awaitable, Callable

import httpx

DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.5
MAX_ERROR_DETAIL_CHARS = (
    500  # Truncation limit for error details in log/exception messages
)
OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_API_KEY_ENV = "OPENROUTER_API_KEY"

log = logging.getLogger(__name__)

# async (prompt) -> completion text
ModelCallable = Callable[[str], Awaitable[str]]


class ModelServiceError(RuntimeError):
    """The model service could not produce a completion."""


def has_openrouter_api_key() -> bool:
    return bool(os.environ.get(OPENROUTER_API_KEY_ENV))


def get_headers() -> dict[str, str]:
    """Get API request headers."""
    api_key = os.environ.get(OPENROUTER_API_KEY_ENV)
    if not api_key:
        raise ValueError(f"{OPENROUTER_API_KEY_ENV} environment variable is required")

    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": "https://github.com/propmatch",
    }


def extract_message_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and item.get("type") == "text":
                text = item.get("text", "")
                if text:
                    parts.append(text)
        return "\n".join(parts)
    return ""


class OpenRouterClient:
    """Async client for the OpenRouter chat completions API.

    Must be used as an async context manager to ensure proper connection cleanup:

        async with OpenRouterClient() as client:
            response = await client.chat(model, messages)
    """

    def __init__(
        self,
        timeout: float = 120.0,
        max_retries: int = 0,
        api_url: str = OPENROUTER_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.api_url = api_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        # Status codes that should NOT be retried
        self.no_retry_codes = {401, 403, 404}

    async def __aenter__(self) -> "OpenRouterClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "OpenRouterClient must be used as async context manager: "
                "async with OpenRouterClient() as client: ..."
            )
        return self._client

    async def _backoff(self, attempt: int, backoff: float, reason: str) -> None:
        log.warning("[Retry %d/%d] %s", attempt + 1, self.max_retries, reason)
        await asyncio.sleep(backoff + random.uniform(0, 1))

    async def chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> dict[str, Any]:
        """
        Make a chat completion request.

        Args:
            model: Model identifier (e.g., "openai/gpt-4o-mini")
            messages: List of message dicts
            max_tokens: Upper bound on completion tokens
            temperature: Sampling temperature

        Returns:
            {
                "message": assistant message dict with 'content',
                "usage": usage dict with token counts
            }

        Raises:
            ModelServiceError: transport failure or non-200 response once
                retries are exhausted.
        """
        client = self._get_client()

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        backoff = 2.0
        max_backoff = 30.0
        attempt = 0

        while True:
            try:
                response = await client.post(
                    self.api_url,
                    headers=get_headers(),
                    json=payload,
                )
            except (httpx.TimeoutException, httpx.RequestError) as e:
                if attempt < self.max_retries:
                    await self._backoff(
                        attempt, backoff, f"Network error: {type(e).__name__}: {e}"
                    )
                    backoff = min(backoff * 2, max_backoff)
                    attempt += 1
                    continue
                raise ModelServiceError(
                    f"Model service unreachable: {type(e).__name__}: {e}"
                ) from e

            response_text = response.text
            try:
                response_data = json.loads(response_text) if response_text else {}
            except json.JSONDecodeError:
                response_data = {}
            if not isinstance(response_data, dict):
                response_data = {}

            if response.status_code == 200:
                if not response_data:
                    raise ModelServiceError(
                        f"Invalid JSON response: {response_text[:MAX_ERROR_DETAIL_CHARS]}"
                    )
                choice = (response_data.get("choices") or [{}])[0]
                return {
                    "message": choice.get("message", {}),
                    "usage": response_data.get("usage", {}),
                }

            error = response_data.get("error")
            error_detail = (
                error.get("message") if isinstance(error, dict) else None
            ) or response_text[:MAX_ERROR_DETAIL_CHARS]

            if response.status_code in self.no_retry_codes:
                raise ModelServiceError(
                    f"OpenRouter API error: {response.status_code} - {response.reason_phrase}: {error_detail}"
                )

            if attempt < self.max_retries:
                wait = backoff
                # Respect Retry-After header for 429
                if response.status_code == 429:
                    retry_after = response.headers.get("retry-after")
                    if retry_after:
                        try:
                            wait = float(retry_after)
                        except ValueError:
                            pass
                await self._backoff(
                    attempt, wait, f"HTTP {response.status_code}: {error_detail}"
                )
                backoff = min(backoff * 2, max_backoff)
                attempt += 1
                continue

            raise ModelServiceError(
                f"OpenRouter API error: {response.status_code}: {error_detail}"
            )


def create_model_callable(
    client: OpenRouterClient,
    model: str = DEFAULT_MODEL,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    temperature: float = DEFAULT_TEMPERATURE,
) -> ModelCallable:
    """Create the text-in/text-out callable used by the Comparator.

    Returns an async function (prompt) -> completion text
    """

    async def call_model(prompt: str) -> str:
        response = await client.chat(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return extract_message_text(response["message"].get("content"))

    return call_model
