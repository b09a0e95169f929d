"""Per-query chat pipeline.

classification -> retrieval -> sufficiency -> mode -> context -> generation,
strictly in sequence. WORLD-intent queries skip retrieval and the
sufficiency check entirely.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from memory_lane.config import settings
from memory_lane.context import build_context
from memory_lane.errors import GenerationError
from memory_lane.llm.client import CompleteFn, complete_text
from memory_lane.llm.prompt import build_conversation, build_system_prompt
from memory_lane.memory.store import MemoryStore
from memory_lane.result import Degraded
from memory_lane.retrieval.hybrid import HybridRetriever
from memory_lane.routing import Intent, IntentRouter, Mode, Sufficiency, resolve_mode

if TYPE_CHECKING:
    from memory_lane.memory.embeddings import Embedder
    from memory_lane.memory.models import MemoryRecord

logger = logging.getLogger(__name__)


@dataclass
class ChatOutcome:
    """The reply plus how it was routed."""

    response: str
    intent: Intent
    sufficiency: Sufficiency
    mode: Mode
    retrieved: list[MemoryRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ChatPipeline:
    def __init__(
        self,
        router: IntentRouter | None = None,
        complete: CompleteFn | None = None,
        model: str | None = None,
        retrieval_limit: int | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self._complete = complete or complete_text
        self._embedder = embedder
        self._router = router or IntentRouter(complete=self._complete)
        self._model = model or settings.chat_model
        self._retrieval_limit = (
            settings.retrieval_limit if retrieval_limit is None else retrieval_limit
        )

    async def answer(
        self,
        message: str,
        memories: Sequence[MemoryRecord],
        chat_history: Sequence[Any] = (),
        semantic: bool = False,
    ) -> ChatOutcome:
        """Route and answer *message*.

        With *semantic*, memories are ranked by embedding similarity,
        falling back to keyword ranking if vectors cannot be fetched.

        Raises ``GenerationError`` if the final reply cannot be generated;
        every earlier stage falls back to its default instead.
        """
        warnings: list[str] = []

        intent_result = await self._router.classify_intent(message)
        intent = intent_result.value
        if isinstance(intent_result, Degraded):
            warnings.append(intent_result.reason)

        if intent == Intent.WORLD:
            retrieved: list[MemoryRecord] = []
            sufficiency = Sufficiency.NOT_NEEDED
        else:
            retriever = HybridRetriever(MemoryStore(memories, embedder=self._embedder))
            retrieval = await retriever.retrieve(
                message, semantic=semantic, limit=self._retrieval_limit
            )
            retrieved = [c.memory for c in retrieval.value]
            if isinstance(retrieval, Degraded):
                warnings.append(retrieval.reason)
            sufficiency_result = await self._router.check_sufficiency(message, retrieved)
            sufficiency = sufficiency_result.value
            if isinstance(sufficiency_result, Degraded):
                warnings.append(sufficiency_result.reason)

        mode = resolve_mode(intent, sufficiency)
        logger.info(
            "Routed query: intent=%s sufficiency=%s mode=%s retrieved=%d",
            intent,
            sufficiency,
            mode,
            len(retrieved),
        )

        system_prompt = build_system_prompt(
            mode=mode,
            memory_context=build_context(retrieved),
            intent=intent,
            sufficiency=sufficiency,
        )

        try:
            response = await self._complete(
                build_conversation(chat_history, message),
                system=system_prompt,
                model=self._model,
                max_tokens=settings.chat_max_tokens,
            )
        except Exception as exc:
            logger.exception("Chat generation failed")
            msg = f"Chat generation failed: {exc}"
            raise GenerationError(msg) from exc

        return ChatOutcome(
            response=response,
            intent=intent,
            sufficiency=sufficiency,
            mode=mode,
            retrieved=retrieved,
            warnings=warnings,
        )
