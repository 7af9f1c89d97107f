"""
Ollama Chat Client

Async client for a local Ollama server (``/api/chat``) with bounded retries
and exponential backoff, plus helpers that pull JSON out of chatty model
replies.
"""

import asyncio
import json
import logging
from typing import Any

import httpx

from src.core.config import settings
from src.core.exceptions import CompletionError, MalformedCompletionError

logger = logging.getLogger(__name__)

# Retry configuration
_MAX_RETRIES = 3
_RETRY_BACKOFF_BASE = 1.0  # seconds


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object between the first ``{`` and the last ``}``.

    Models often wrap JSON in prose or code fences; everything outside the
    outermost braces is ignored.

    Raises:
        MalformedCompletionError: If no braces are found or the slice is not
            a valid JSON object.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise MalformedCompletionError("No JSON object found in completion", raw=text)
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedCompletionError(f"Invalid JSON in completion: {exc}", raw=text) from exc
    if not isinstance(parsed, dict):
        raise MalformedCompletionError("Completion JSON is not an object", raw=text)
    return parsed


def extract_json_list(text: str) -> list[Any]:
    """Parse the JSON array between the first ``[`` and the last ``]``.

    Raises:
        MalformedCompletionError: If no array can be parsed.
    """
    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end <= start:
        raise MalformedCompletionError("No JSON array found in completion", raw=text)
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise MalformedCompletionError(f"Invalid JSON in completion: {exc}", raw=text) from exc
    if not isinstance(parsed, list):
        raise MalformedCompletionError("Completion JSON is not an array", raw=text)
    return parsed


class OllamaClient:
    """
    Async Ollama chat client.

    Features:
        - Single prompt or full message list
        - Optional system message
        - Retry with exponential backoff on 429/5xx, timeouts and connection errors
        - Availability probe for health checks

    Args:
        base_url: Ollama server URL. Defaults to settings.OLLAMA_BASE_URL.
        model: Model name. Defaults to settings.OLLAMA_MODEL.
        timeout: Request timeout in seconds. Defaults to settings.OLLAMA_TIMEOUT.
        max_concurrent: Maximum concurrent requests to the server.
        client: Optional pre-configured httpx.AsyncClient for testing.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_concurrent: int = 4,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self._model = model or settings.OLLAMA_MODEL
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._external_client = client is not None
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout or settings.OLLAMA_TIMEOUT),
        )

    @property
    def model(self) -> str:
        """Name of the chat model."""
        return self._model

    async def close(self) -> None:
        """Close the underlying HTTP client (only if internally created)."""
        if not self._external_client:
            await self._client.aclose()

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def complete(
        self,
        prompt: str | list[dict[str, str]],
        system: str | None = None,
    ) -> str:
        """Get a chat completion.

        Args:
            prompt: A user prompt, or a list of {"role", "content"} messages.
            system: Optional system message placed first.

        Returns:
            The assistant reply, stripped.

        Raises:
            CompletionError: If the server keeps failing or the reply has no content.
        """
        if isinstance(prompt, str):
            messages = [{"role": "user", "content": prompt}]
        else:
            messages = list(prompt)
        if system:
            messages.insert(0, {"role": "system", "content": system})

        payload = {
            "model": self._model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": settings.OLLAMA_TEMPERATURE},
        }
        response = await self._post_with_retry("/api/chat", payload)

        try:
            content = response.json()["message"]["content"]
        except (ValueError, KeyError, TypeError) as exc:
            raise CompletionError(f"Unexpected Ollama response shape: {exc}") from exc

        logger.debug("Completion received (%d chars)", len(content))
        return str(content).strip()

    async def is_available(self) -> bool:
        """Whether the Ollama server answers ``GET /api/tags``."""
        try:
            response = await self._client.get("/api/tags", timeout=2.0)
        except httpx.HTTPError:
            logger.warning("Ollama availability check failed", exc_info=True)
            return False
        return response.status_code == 200

    async def _post_with_retry(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """
        POST with concurrency limiting and exponential backoff retry.

        Raises:
            CompletionError: After all retries are exhausted or on a
                non-retryable status.
        """
        last_exception: Exception | None = None

        for attempt in range(1, _MAX_RETRIES + 1):
            wait = _RETRY_BACKOFF_BASE * (2 ** (attempt - 1))
            async with self._semaphore:
                try:
                    response = await self._client.post(path, json=payload)

                    if response.status_code == 200:
                        return response

                    if response.status_code == 429 or response.status_code >= 500:
                        logger.warning(
                            "Ollama returned %d (attempt %d/%d), retrying in %.1fs",
                            response.status_code,
                            attempt,
                            _MAX_RETRIES,
                            wait,
                        )
                        await asyncio.sleep(wait)
                        continue

                    raise CompletionError(
                        f"Unexpected HTTP {response.status_code} from Ollama",
                        {"body": response.text[:200]},
                    )

                except httpx.TimeoutException as exc:
                    last_exception = exc
                    logger.warning(
                        "Timeout on Ollama request (attempt %d/%d), retrying in %.1fs",
                        attempt,
                        _MAX_RETRIES,
                        wait,
                    )
                    await asyncio.sleep(wait)

                except httpx.RequestError as exc:
                    last_exception = exc
                    logger.warning(
                        "Request error on Ollama (attempt %d/%d): %s, retrying in %.1fs",
                        attempt,
                        _MAX_RETRIES,
                        exc,
                        wait,
                    )
                    await asyncio.sleep(wait)

        raise CompletionError(
            f"All {_MAX_RETRIES} retries exhausted for {path}", {"model": self._model}
        ) from last_exception
