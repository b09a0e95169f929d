"""Gateway HTTP server: chat, embed and gift-idea endpoints.

The browser-side app (or ``GatewayClient``) posts plain JSON here; every
Anthropic call happens server-side so the API key never leaves it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from memory_lane.config import settings
from memory_lane.errors import EmbeddingError, GenerationError
from memory_lane.gifts import generate_gift_ideas, sanitize_candidates
from memory_lane.llm.client import complete_text
from memory_lane.llm.embeddings import ClaudeEmbedder
from memory_lane.memory.models import MemoryRecord
from memory_lane.pipeline import ChatPipeline

if TYPE_CHECKING:
    from memory_lane.llm.client import CompleteFn
    from memory_lane.memory.embeddings import Embedder

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

PIPELINE_KEY = web.AppKey("pipeline", ChatPipeline)
EMBEDDER_KEY = web.AppKey("embedder", object)
COMPLETE_KEY = web.AppKey("complete", object)


def _json(data: dict[str, Any], status: int = 200) -> web.Response:
    return web.json_response(data, status=status, headers=CORS_HEADERS)


async def _read_json(request: web.Request) -> dict[str, Any] | None:
    try:
        payload = await request.json()
    except Exception:
        return None
    return payload if isinstance(payload, dict) else None


async def _preflight(request: web.Request) -> web.Response:
    return web.Response(status=200, headers=CORS_HEADERS)


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _handle_chat(request: web.Request) -> web.Response:
    """POST /api/chat — route, retrieve and answer one message."""
    payload = await _read_json(request)
    if payload is None:
        return _json({"error": "invalid JSON"}, status=400)

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        return _json({"error": "message is required"}, status=400)

    raw_memories = payload.get("memories")
    memories = [
        MemoryRecord.normalize(m)
        for m in (raw_memories if isinstance(raw_memories, list) else [])
    ]
    history = payload.get("chatHistory")

    try:
        outcome = await request.app[PIPELINE_KEY].answer(
            message,
            memories,
            history if isinstance(history, list) else [],
            semantic=payload.get("semantic") is True,
        )
    except GenerationError as exc:
        return _json({"error": "Failed to process request", "details": str(exc)}, status=500)

    return _json({"response": outcome.response})


async def _handle_embed(request: web.Request) -> web.Response:
    """POST /api/embed — one vector per input, in order."""
    payload = await _read_json(request)
    inputs = payload.get("inputs") if payload else None
    if (
        not isinstance(inputs, list)
        or not inputs
        or not all(isinstance(item, str) for item in inputs)
    ):
        return _json({"error": "inputs must be a non-empty array of strings"}, status=400)

    embedder: Embedder = request.app[EMBEDDER_KEY]
    try:
        batch = await embedder.embed(inputs)
    except EmbeddingError:
        logger.exception("Embedding error")
        return _json({"error": "Failed to generate embeddings"}, status=500)

    return _json({"vectors": batch.vectors, "model": batch.model})


async def _handle_gift_ideas(request: web.Request) -> web.Response:
    """POST /api/gift-ideas — ideas grounded in the posted memory projection."""
    payload = await _read_json(request)
    if payload is None:
        return _json({"error": "invalid JSON"}, status=400)

    question = payload.get("question")
    if not isinstance(question, str) or not question.strip():
        return _json({"error": "question is required"}, status=400)

    candidates = sanitize_candidates(payload.get("memories"))
    try:
        ideas = await generate_gift_ideas(
            question, candidates, complete=request.app[COMPLETE_KEY]
        )
    except GenerationError:
        return _json({"error": "Failed to generate gift ideas"}, status=500)

    return _json(ideas.to_json())


def create_web_app(
    pipeline: ChatPipeline | None = None,
    embedder: Embedder | None = None,
    complete: CompleteFn | None = None,
) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[COMPLETE_KEY] = complete or complete_text
    app[EMBEDDER_KEY] = embedder or ClaudeEmbedder(complete=app[COMPLETE_KEY])
    app[PIPELINE_KEY] = pipeline or ChatPipeline(
        complete=app[COMPLETE_KEY], embedder=app[EMBEDDER_KEY]
    )

    app.router.add_get("/health", _health)
    for path, handler in (
        ("/api/chat", _handle_chat),
        ("/api/embed", _handle_embed),
        ("/api/gift-ideas", _handle_gift_ideas),
    ):
        app.router.add_post(path, handler)
        app.router.add_route("OPTIONS", path, _preflight)
    return app


class GatewayServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, port: int | None = None, host: str | None = None) -> None:
        self.port = port or settings.server_port
        self.host = host or settings.server_host
        self._runner: web.AppRunner | None = None

    async def start(self, app: web.Application | None = None) -> None:
        if not settings.anthropic_api_key:
            logger.warning("ANTHROPIC_API_KEY is empty, every model call will fail")

        self._runner = web.AppRunner(app or create_web_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Gateway listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Gateway stopped")
