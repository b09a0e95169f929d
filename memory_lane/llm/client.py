"""Async Claude API client helpers."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import anthropic

from memory_lane.config import settings

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


class CompleteFn(Protocol):
    async def __call__(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        model: str | None = None,
        max_tokens: int = 1000,
        temperature: float | None = None,
    ) -> str: ...


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client.

    Every request is bounded by ``request_timeout_seconds``; a timeout raises
    like any other transport error.
    """
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.request_timeout_seconds,
            max_retries=1,
        )
    return _client


def response_text(response: Any) -> str:
    """Join the text blocks of a Messages API response."""
    content = getattr(response, "content", None)
    if not isinstance(content, list):
        return ""
    parts = [
        block.text
        for block in content
        if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
    ]
    return "\n".join(parts).strip()


async def complete_text(
    messages: list[dict[str, Any]],
    *,
    system: str | None = None,
    model: str | None = None,
    max_tokens: int = 1000,
    temperature: float | None = None,
) -> str:
    """Single-shot Claude call — no tools, no streaming."""
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or settings.chat_model,
        "max_tokens": max_tokens,
        "messages": messages,
    }
    if system is not None:
        kwargs["system"] = system
    if temperature is not None:
        kwargs["temperature"] = temperature
    response = await client.messages.create(**kwargs)
    return response_text(response)


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the outermost JSON object in a model reply.

    Tolerates markdown fences and chatter around the object. Raises
    ``ValueError`` when no object can be parsed.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        msg = "No JSON object found in model response"
        raise ValueError(msg)
    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        msg = "Model response JSON is not an object"
        raise ValueError(msg)
    return data
