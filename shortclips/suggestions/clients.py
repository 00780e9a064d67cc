"""HTTP completion clients used by the suggestion providers."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)
DEFAULT_TIMEOUT_SECONDS = 120.0


class CompletionError(RuntimeError):
    """Raised when a completion service call fails."""


def _error_detail(response: httpx.Response) -> str:
    text = response.text.strip()
    if len(text) > 500:
        text = text[:500] + "..."
    return text or f"HTTP {response.status_code}"


class _HttpCompleter:
    """Shared request plumbing: optional injected client, error mapping."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def _post_json(self, path: str, payload: dict, headers: Optional[dict] = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"POST {url} (model={payload.get('model')})")
        try:
            async with self._http() as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise CompletionError(f"Completion request to {url} timed out") from exc
        except httpx.RequestError as exc:
            raise CompletionError(f"Unable to reach completion service at {url}: {exc}") from exc

        if response.status_code >= 400:
            raise CompletionError(
                f"Completion service returned {response.status_code}: {_error_detail(response)}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise CompletionError("Completion service returned a non-JSON body") from exc


class OllamaCompleter(_HttpCompleter):
    """Ollama ``/api/generate`` with JSON output mode."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3",
        system_prompt: str = SYSTEM_PROMPT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(base_url, timeout, client)
        self.model = model
        self.system_prompt = system_prompt

    def __repr__(self):
        return f"OllamaCompleter(model={self.model!r}, base_url={self.base_url!r})"

    async def complete(self, prompt: str) -> str:
        data = await self._post_json(
            "api/generate",
            {
                "model": self.model,
                "prompt": f"{self.system_prompt}\n\n{prompt}",
                "stream": False,
                "format": "json",
            },
        )
        if not isinstance(data, dict):
            raise CompletionError("Unexpected Ollama response shape")
        text = data.get("response")
        if not isinstance(text, str):
            raise CompletionError("Ollama response has no 'response' text")
        return text


class OpenAIChatCompleter(_HttpCompleter):
    """OpenAI-compatible ``/chat/completions`` in JSON-object mode."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        system_prompt: str = SYSTEM_PROMPT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(base_url, timeout, client)
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt

    def __repr__(self):
        return f"OpenAIChatCompleter(model={self.model!r}, base_url={self.base_url!r})"

    async def complete(self, prompt: str) -> str:
        data = await self._post_json(
            "chat/completions",
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "response_format": {"type": "json_object"},
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError("Chat completion response has no message content") from exc
        return content or ""
