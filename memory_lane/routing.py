"""Intent classification, sufficiency checks and mode resolution.

Both classifier calls recover every failure locally: an unusable answer,
a transport error or a timeout yields the documented default wrapped in
``Degraded``, so the chat reply is always generated.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import StrEnum
from typing import TYPE_CHECKING

from memory_lane.config import settings
from memory_lane.llm.client import CompleteFn, complete_text
from memory_lane.llm.prompt import (
    INTENT_SYSTEM_PROMPT,
    SUFFICIENCY_SYSTEM_PROMPT,
    build_memory_digest,
    build_sufficiency_prompt,
)
from memory_lane.result import Degraded, Ok, Result

if TYPE_CHECKING:
    from memory_lane.memory.models import MemoryRecord

logger = logging.getLogger(__name__)

ROUTER_MAX_TOKENS = 10


class Intent(StrEnum):
    MEMORY = "MEMORY"
    WORLD = "WORLD"
    HYBRID = "HYBRID"


class Sufficiency(StrEnum):
    ENOUGH = "ENOUGH"
    NOT_ENOUGH = "NOT_ENOUGH"
    NOT_NEEDED = "NOT_NEEDED"


class Mode(StrEnum):
    WORLD = "WORLD"
    HYBRID = "HYBRID"


def resolve_mode(intent: Intent, sufficiency: Sufficiency) -> Mode:
    """Pick the reply framing from intent and sufficiency."""
    if intent == Intent.MEMORY and sufficiency == Sufficiency.NOT_ENOUGH:
        return Mode.WORLD
    if intent == Intent.WORLD:
        return Mode.WORLD
    return Mode.HYBRID


class IntentRouter:
    """Stateless classifier front-end; safe to share across requests."""

    def __init__(
        self,
        complete: CompleteFn | None = None,
        model: str | None = None,
        digest_size: int | None = None,
    ) -> None:
        self._complete = complete or complete_text
        self._model = model or settings.router_model
        self._digest_size = digest_size or settings.digest_size

    async def _ask(self, system: str, content: str) -> str:
        text = await self._complete(
            [{"role": "user", "content": content}],
            system=system,
            model=self._model,
            max_tokens=ROUTER_MAX_TOKENS,
            temperature=0,
        )
        return text.strip().upper()

    async def classify_intent(self, message: str) -> Result[Intent]:
        """Classify *message*; anything unexpected resolves to HYBRID."""
        try:
            label = await self._ask(INTENT_SYSTEM_PROMPT, message)
        except Exception as exc:
            logger.warning("Intent classification failed, defaulting to HYBRID: %s", exc)
            return Degraded(Intent.HYBRID, f"classification failed: {exc}")

        if label in Intent.__members__:
            return Ok(Intent(label))
        logger.warning("Unexpected intent label %r, defaulting to HYBRID", label)
        return Degraded(Intent.HYBRID, f"unexpected intent label: {label!r}")

    async def check_sufficiency(
        self,
        message: str,
        memories: Sequence[MemoryRecord],
    ) -> Result[Sufficiency]:
        """Ask whether *memories* answer *message*; defaults to NOT_ENOUGH."""
        if not memories:
            return Ok(Sufficiency.NOT_ENOUGH)

        digest = build_memory_digest(memories, self._digest_size)
        try:
            verdict = await self._ask(
                SUFFICIENCY_SYSTEM_PROMPT, build_sufficiency_prompt(message, digest)
            )
        except Exception as exc:
            logger.warning("Sufficiency check failed, defaulting to NOT_ENOUGH: %s", exc)
            return Degraded(Sufficiency.NOT_ENOUGH, f"sufficiency check failed: {exc}")

        if verdict in (Sufficiency.ENOUGH.value, Sufficiency.NOT_ENOUGH.value):
            return Ok(Sufficiency(verdict))
        logger.warning("Unexpected sufficiency verdict %r, defaulting to NOT_ENOUGH", verdict)
        return Degraded(Sufficiency.NOT_ENOUGH, f"unexpected verdict: {verdict!r}")
