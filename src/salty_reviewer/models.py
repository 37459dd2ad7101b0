"""Chat-completions client for any OpenAI-compatible endpoint.

Requests are plain ``POST {base_url}/chat/completions`` calls, so the same
client works against OpenAI, OpenRouter, Azure-style proxies or a local server.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass

import httpx

from .errors import ChatError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096

# Status codes that trigger a retry
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503}
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


@dataclass
class ChatMessage:
    """A single chat message."""

    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


def system_message(content: str) -> ChatMessage:
    return ChatMessage(role="system", content=content)


def user_message(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def assistant_message(content: str) -> ChatMessage:
    return ChatMessage(role="assistant", content=content)


@dataclass
class ModelResponse:
    """Response from a chat completion."""

    model: str
    content: str
    usage: dict | None = None  # Token usage stats

    def parse_json(self) -> dict:
        """Extract JSON from response, handling markdown fences."""
        text = self.content.strip()
        # Strip markdown code fences
        if text.startswith("```"):
            lines = text.split("\n")
            lines = [ln for ln in lines[1:] if not ln.strip().startswith("```")]
            text = "\n".join(lines).strip()
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Try to find JSON object in the text
            start = text.find("{")
            end = text.rfind("}") + 1
            if start >= 0 and end > start:
                return json.loads(text[start:end])
            raise


class ChatClient:
    """Stateless chat-completions client.

    One ``httpx.AsyncClient`` is created lazily and reused for every request
    until :meth:`close` is called.
    """

    def __init__(self, base_url: str, api_key: str, model: str, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def chat(
        self,
        messages: list[ChatMessage],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> ModelResponse:
        """Send a chat completion request and return the first choice.

        Retries with exponential backoff on 429/500/502/503 status codes.

        Args:
            messages: Conversation to send, usually a system and a user message
            temperature: Sampling temperature
            max_tokens: Maximum response tokens

        Returns:
            ModelResponse with the model's output

        Raises:
            ChatError: On transport failure, an API error payload, or no choices
        """
        payload = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        client = await self._get_client()
        url = f"{self.base_url}/chat/completions"

        for attempt in range(_MAX_RETRIES):
            try:
                resp = await client.post(url, json=payload)
            except httpx.HTTPError as e:
                raise ChatError(f"failed to send request: {e}") from e

            if resp.status_code in _RETRYABLE_STATUS_CODES and attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2 ** attempt) + random.uniform(0, 0.5)
                logger.warning(
                    "Chat API returned %s, retrying in %.1fs (attempt %d/%d)",
                    resp.status_code, backoff, attempt + 1, _MAX_RETRIES,
                )
                await asyncio.sleep(backoff)
                continue
            return self._parse_response(resp)

        # Unreachable: the last attempt always returns or raises
        raise ChatError("retries exhausted")

    def _parse_response(self, resp: httpx.Response) -> ModelResponse:
        try:
            data = resp.json()
        except ValueError as e:
            raise ChatError(
                f"failed to parse response: {e} (body: {resp.text[:500]})"
            ) from e

        if not isinstance(data, dict):
            raise ChatError(f"unexpected response body: {resp.text[:500]}")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise ChatError(
                    f"API error: {error.get('message', '')} (type: {error.get('type', '')})"
                )
            raise ChatError(f"API error: {error}")

        if resp.status_code >= 400:
            raise ChatError(f"API returned HTTP {resp.status_code}: {resp.text[:500]}")

        choices = data.get("choices") or []
        if not choices:
            raise ChatError("no choices in response")

        content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug("Chat response from %s: %d chars", data.get("model", self.model), len(content))
        return ModelResponse(
            model=data.get("model", self.model),
            content=content,
            usage=data.get("usage"),
        )
