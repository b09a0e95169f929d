"""HTTP client for the generation/embedding gateway."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from memory_lane.config import settings
from memory_lane.errors import EmbeddingError, GatewayError
from memory_lane.gifts import GiftCandidate, GiftIdeas, parse_gift_ideas
from memory_lane.memory.embeddings import EmbeddingBatch, validate_batch
from memory_lane.memory.models import ChatMessage, MemoryRecord

logger = logging.getLogger(__name__)


class GatewayClient:
    """Calls ``/api/chat``, ``/api/embed`` and ``/api/gift-ideas``.

    Also satisfies the ``Embedder`` protocol, so a ``MemoryStore`` can use it
    directly to resolve missing vectors.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = (base_url or settings.gateway_url).rstrip("/")
        self.timeout = timeout or settings.request_timeout_seconds

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            msg = f"Timeout calling {path}"
            raise GatewayError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Request to {path} failed: {exc}"
            raise GatewayError(msg) from exc

        if resp.status_code != 200:
            msg = f"{path} returned {resp.status_code}: {resp.text[:200]}"
            raise GatewayError(msg, status=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            msg = f"{path} returned invalid JSON"
            raise GatewayError(msg, status=resp.status_code) from exc
        if not isinstance(data, dict):
            msg = f"{path} returned a non-object body"
            raise GatewayError(msg, status=resp.status_code)
        return data

    async def chat(
        self,
        message: str,
        memories: Sequence[MemoryRecord],
        chat_history: Sequence[ChatMessage],
        semantic: bool = False,
    ) -> str:
        data = await self._post(
            "/api/chat",
            {
                "message": message,
                "memories": [m.to_json() for m in memories],
                "chatHistory": [m.model_dump() for m in chat_history],
                "semantic": semantic,
            },
        )
        response = data.get("response")
        if not isinstance(response, str):
            msg = "/api/chat response is missing the reply text"
            raise GatewayError(msg)
        return response

    async def embed(self, inputs: list[str]) -> EmbeddingBatch:
        """Fetch vectors; any transport or validation problem is an ``EmbeddingError``."""
        try:
            data = await self._post("/api/embed", {"inputs": inputs})
        except GatewayError as exc:
            raise EmbeddingError(str(exc)) from exc

        vectors = data.get("vectors")
        model = data.get("model")
        if not isinstance(vectors, list):
            msg = "/api/embed response is missing vectors"
            raise EmbeddingError(msg)
        return validate_batch(
            inputs,
            EmbeddingBatch(vectors=vectors, model=model if isinstance(model, str) else "unknown"),
        )

    async def gift_ideas(self, question: str, candidates: Sequence[GiftCandidate]) -> GiftIdeas:
        data = await self._post(
            "/api/gift-ideas",
            {"question": question, "memories": [c.to_json() for c in candidates]},
        )
        return parse_gift_ideas(data)
